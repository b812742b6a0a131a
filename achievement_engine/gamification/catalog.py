"""
Achievement Catalog

Static, versioned list of achievement definitions. The catalog is passed to
the engine explicitly; PREDEFINED_ACHIEVEMENTS is only the default.

Building a catalog validates it: every special_condition requirement must
name a registered condition. A typo in the catalog fails at load time
instead of producing an achievement nobody can ever earn.
"""

from typing import Dict, Iterable, Iterator, List, Optional
import logging

from achievement_engine.exceptions import CatalogError, UnknownConditionError
from achievement_engine.gamification.conditions import DEFAULT_REGISTRY, ConditionRegistry
from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementDifficulty,
    Requirement,
    RequirementType,
    RequirementUnit,
)

logger = logging.getLogger(__name__)

CATALOG_VERSION = "2025.1"

HOUR = 3600
DAY = 24 * HOUR


def _achievement(
    id: str,
    name: str,
    description: str,
    category: AchievementCategory,
    icon: str,
    difficulty: AchievementDifficulty,
    points: int,
    type: RequirementType,
    value: float,
    unit: RequirementUnit = RequirementUnit.COUNT,
    condition: Optional[str] = None,
    is_hidden: bool = False,
) -> Achievement:
    return Achievement(
        id=id,
        name=name,
        description=description,
        category=category,
        icon=icon,
        difficulty=difficulty,
        points=points,
        requirements=[Requirement(type=type, value=value, unit=unit, condition=condition)],
        is_hidden=is_hidden,
    )


_S = AchievementCategory.SESSION_MILESTONES
_C = AchievementCategory.CONSISTENCY_BADGES
_K = AchievementCategory.STREAK_ACHIEVEMENTS
_G = AchievementCategory.GOAL_BASED
_T = AchievementCategory.TASK_COMPLETION
_X = AchievementCategory.SPECIAL_ACHIEVEMENTS

_common = AchievementDifficulty.COMMON
_uncommon = AchievementDifficulty.UNCOMMON
_rare = AchievementDifficulty.RARE
_epic = AchievementDifficulty.EPIC
_legendary = AchievementDifficulty.LEGENDARY

_seconds = RequirementUnit.SECONDS
_days = RequirementUnit.DAYS

PREDEFINED_ACHIEVEMENTS: List[Achievement] = [
    # Session milestones
    _achievement("first_session", "First Steps", "Complete your first session",
                 _S, "🎯", _common, 10, RequirementType.SESSION_COUNT, 1),
    _achievement("one_day_session", "One Day Down", "Complete a session lasting 24 hours",
                 _S, "⏱️", _common, 25, RequirementType.SESSION_DURATION, DAY, _seconds),
    _achievement("one_week_session", "Week Warrior", "Complete a session lasting 7 days",
                 _S, "📅", _uncommon, 75, RequirementType.SESSION_DURATION, 7 * DAY, _seconds),
    _achievement("one_month_session", "Monthly Master", "Complete a session lasting 30 days",
                 _S, "🗓️", _rare, 200, RequirementType.SESSION_DURATION, 30 * DAY, _seconds),
    _achievement("three_month_session", "Quarter Champion", "Complete a session lasting 90 days",
                 _S, "🏅", _epic, 500, RequirementType.SESSION_DURATION, 90 * DAY, _seconds),
    _achievement("one_year_session", "Year of Dedication", "Complete a session lasting 365 days",
                 _S, "👑", _legendary, 2000, RequirementType.SESSION_DURATION, 365 * DAY, _seconds),

    # Consistency badges
    _achievement("ten_sessions", "Getting Consistent", "Complete 10 sessions",
                 _C, "🔟", _common, 50, RequirementType.SESSION_COUNT, 10),
    _achievement("twenty_five_sessions", "Dedicated", "Complete 25 sessions",
                 _C, "💪", _uncommon, 100, RequirementType.SESSION_COUNT, 25),
    _achievement("fifty_sessions", "Committed", "Complete 50 sessions",
                 _C, "🌟", _rare, 250, RequirementType.SESSION_COUNT, 50),
    _achievement("hundred_sessions", "Centurion", "Complete 100 sessions",
                 _C, "💯", _epic, 600, RequirementType.SESSION_COUNT, 100),

    # Streaks
    _achievement("streak_3_days", "Three in a Row", "Sessions on 3 consecutive days",
                 _K, "🔥", _common, 30, RequirementType.STREAK_DAYS, 3, _days),
    _achievement("streak_7_days", "Full Week", "Sessions on 7 consecutive days",
                 _K, "🔥", _uncommon, 80, RequirementType.STREAK_DAYS, 7, _days),
    _achievement("streak_30_days", "Unbroken Month", "Sessions on 30 consecutive days",
                 _K, "☄️", _epic, 400, RequirementType.STREAK_DAYS, 30, _days),

    # Goal-based
    _achievement("first_goal", "Goal Getter", "Complete your first goal",
                 _G, "🥅", _common, 20, RequirementType.GOAL_COMPLETION, 1),
    _achievement("ten_goals", "Goal Crusher", "Complete 10 goals",
                 _G, "🎖️", _rare, 200, RequirementType.GOAL_COMPLETION, 10),
    _achievement("overachiever", "Overachiever", "Finish a goal at 150% of its target",
                 _G, "🚀", _rare, 150, RequirementType.SPECIAL_CONDITION, 1,
                 condition="exceed_goal_by_50_percent"),
    _achievement("precision", "Precision", "Finish a goal within an hour of its target",
                 _G, "🎯", _uncommon, 100, RequirementType.SPECIAL_CONDITION, 1,
                 condition="exact_goal_achievement"),

    # Task completion
    _achievement("first_task", "Task Starter", "Complete your first task",
                 _T, "✅", _common, 10, RequirementType.TASK_COMPLETION, 1),
    _achievement("twenty_five_tasks", "Task Master", "Complete 25 tasks",
                 _T, "📋", _rare, 150, RequirementType.TASK_COMPLETION, 25),
    _achievement("perfect_record", "Perfect Record", "Keep a 90% task approval rate",
                 _T, "⭐", _epic, 300, RequirementType.SPECIAL_CONDITION, 90,
                 condition="task_approval_rate"),
    _achievement("early_bird_tasks", "Ahead of Schedule", "Complete 5 tasks before they are due",
                 _T, "⏰", _uncommon, 75, RequirementType.SPECIAL_CONDITION, 5,
                 condition="tasks_completed_early"),

    # Special
    _achievement("early_riser", "Early Riser", "Start 5 sessions before 8 AM",
                 _X, "🌅", _uncommon, 50, RequirementType.SPECIAL_CONDITION, 5,
                 condition="sessions_before_8am"),
    _achievement("night_owl", "Night Owl", "Start 5 sessions after 10 PM",
                 _X, "🦉", _uncommon, 50, RequirementType.SPECIAL_CONDITION, 5,
                 condition="sessions_after_10pm"),
    _achievement("weekend_warrior", "Weekend Warrior", "Start sessions on 4 different weekends",
                 _X, "🏖️", _uncommon, 60, RequirementType.SPECIAL_CONDITION, 4,
                 condition="weekend_sessions"),
    _achievement("new_year_resolution", "New Year's Resolution", "Start a session on January 1st",
                 _X, "🎆", _rare, 100, RequirementType.SPECIAL_CONDITION, 1,
                 condition="new_year_session", is_hidden=True),
    _achievement("holiday_spirit", "Holiday Spirit", "Start a session on a holiday",
                 _X, "🎄", _uncommon, 50, RequirementType.SPECIAL_CONDITION, 1,
                 condition="holiday_session", is_hidden=True),
]


def validate_achievement(achievement: Achievement, registry: ConditionRegistry = DEFAULT_REGISTRY) -> None:
    """
    Raise if an achievement references conditions the registry can't evaluate

    Raises:
        UnknownConditionError: special_condition without a registered condition
    """
    for requirement in achievement.requirements:
        if requirement.type != RequirementType.SPECIAL_CONDITION:
            continue
        if not requirement.condition:
            raise UnknownConditionError(
                f"Achievement '{achievement.id}' has a special_condition requirement without a condition",
                condition=None,
                achievement_id=achievement.id
            )
        if requirement.condition not in registry:
            raise UnknownConditionError(
                f"Achievement '{achievement.id}' references unregistered condition '{requirement.condition}'",
                condition=requirement.condition,
                achievement_id=achievement.id
            )


class AchievementCatalog:
    """Read-only, validated collection of achievement definitions"""

    def __init__(
        self,
        achievements: Optional[Iterable[Achievement]] = None,
        registry: ConditionRegistry = DEFAULT_REGISTRY,
        version: str = CATALOG_VERSION
    ):
        achievements = list(PREDEFINED_ACHIEVEMENTS if achievements is None else achievements)
        self.registry = registry
        self.version = version

        by_id: Dict[str, Achievement] = {}
        for achievement in achievements:
            if achievement.id in by_id:
                raise CatalogError(
                    f"Duplicate achievement id '{achievement.id}' in catalog",
                    achievement_id=achievement.id
                )
            validate_achievement(achievement, registry)
            by_id[achievement.id] = achievement
        self._by_id = by_id

        logger.debug(f"Loaded achievement catalog v{version} with {len(by_id)} entries")

    def get(self, achievement_id: str) -> Optional[Achievement]:
        return self._by_id.get(achievement_id)

    def by_category(self, category: AchievementCategory) -> List[Achievement]:
        return [a for a in self._by_id.values() if a.category == category]

    def all(self) -> List[Achievement]:
        return list(self._by_id.values())

    def __iter__(self) -> Iterator[Achievement]:
        return iter(list(self._by_id.values()))

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, achievement_id: object) -> bool:
        return achievement_id in self._by_id
