"""
Special Conditions

Named predicates behind `special_condition` requirements. Each condition is
registered under the string used in the catalog (e.g. "sessions_before_8am")
and declares which slice of activity it reads, so the engine only loads the
history a category actually needs.

New conditions are added with the registry decorator:

    @DEFAULT_REGISTRY.register("sessions_at_midnight", ActivitySource.SESSIONS)
    def _midnight(requirement, activity):
        ...
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional
import logging

from achievement_engine.config import EXACT_GOAL_TOLERANCE_SECONDS, GOAL_EXCEED_MULTIPLIER
from achievement_engine.models.achievement import Requirement
from achievement_engine.models.activity import Goal, Session, Task, TaskStatus
from achievement_engine.utils.datetime_helpers import TimezoneLike, local_date, to_local

logger = logging.getLogger(__name__)


class ActivitySource(str, Enum):
    """Which activity feed a requirement is judged against"""
    SESSIONS = "sessions"
    TASKS = "tasks"
    GOALS = "goals"
    GOAL_EVENT = "goal_event"  # the single goal that triggered the event


@dataclass(frozen=True)
class EvaluationResult:
    current_value: float
    is_satisfied: bool


NOT_SATISFIED = EvaluationResult(current_value=0, is_satisfied=False)


@dataclass
class ActivitySnapshot:
    """Activity history handed to evaluators for one evaluation pass"""
    sessions: List[Session] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    goal: Optional[Goal] = None
    timezone: TimezoneLike = None
    exact_goal_tolerance: float = EXACT_GOAL_TOLERANCE_SECONDS
    goal_exceed_multiplier: float = GOAL_EXCEED_MULTIPLIER


ConditionFn = Callable[[Requirement, ActivitySnapshot], EvaluationResult]


@dataclass(frozen=True)
class SpecialCondition:
    name: str
    evaluate: ConditionFn
    source: ActivitySource
    # Cumulative conditions accumulate across events and get progress records;
    # per-event ones (judged on a single goal) do not.
    cumulative: bool = True


class ConditionRegistry:
    """Maps condition names to their predicates"""

    def __init__(self, conditions: Optional[Dict[str, SpecialCondition]] = None):
        self._conditions: Dict[str, SpecialCondition] = dict(conditions or {})

    def register(
        self,
        name: str,
        source: ActivitySource,
        cumulative: bool = True
    ) -> Callable[[ConditionFn], ConditionFn]:
        """Decorator registering a condition predicate under `name`"""
        def decorator(fn: ConditionFn) -> ConditionFn:
            if name in self._conditions:
                logger.warning(f"Special condition '{name}' re-registered")
            self._conditions[name] = SpecialCondition(
                name=name,
                evaluate=fn,
                source=source,
                cumulative=cumulative
            )
            return fn
        return decorator

    def get(self, name: Optional[str]) -> Optional[SpecialCondition]:
        if name is None:
            return None
        return self._conditions.get(name)

    def names(self) -> List[str]:
        return sorted(self._conditions)

    def copy(self) -> "ConditionRegistry":
        return ConditionRegistry(self._conditions)

    def __contains__(self, name: object) -> bool:
        return name in self._conditions

    def __len__(self) -> int:
        return len(self._conditions)


DEFAULT_REGISTRY = ConditionRegistry()

# (month, day)
HOLIDAYS = frozenset([
    (1, 1),    # New Year's Day
    (2, 14),   # Valentine's Day
    (7, 4),    # Independence Day (US)
    (10, 31),  # Halloween
    (11, 25),  # Thanksgiving (approximation)
    (12, 25),  # Christmas
    (12, 31),  # New Year's Eve
])


def _count_result(count: float, requirement: Requirement) -> EvaluationResult:
    return EvaluationResult(
        current_value=count,
        is_satisfied=count > 0 and count >= requirement.value
    )


def _count_sessions(activity: ActivitySnapshot, predicate: Callable[[Session], bool]) -> int:
    return sum(1 for session in activity.sessions if predicate(session))


# ==========================================
# Session Conditions
# ==========================================

@DEFAULT_REGISTRY.register("sessions_before_8am", ActivitySource.SESSIONS)
def sessions_before_8am(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Sessions started before 08:00 local time"""
    count = _count_sessions(
        activity,
        lambda s: to_local(s.start_time, activity.timezone).hour < 8
    )
    return _count_result(count, requirement)


@DEFAULT_REGISTRY.register("sessions_after_10pm", ActivitySource.SESSIONS)
def sessions_after_10pm(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Sessions started at or after 22:00 local time"""
    count = _count_sessions(
        activity,
        lambda s: to_local(s.start_time, activity.timezone).hour >= 22
    )
    return _count_result(count, requirement)


def _weekend_key(day: date) -> Optional[date]:
    """Saturday that opens the weekend `day` belongs to, None on weekdays"""
    weekday = day.weekday()  # Monday=0 ... Saturday=5, Sunday=6
    if weekday == 5:
        return day
    if weekday == 6:
        return day - timedelta(days=1)
    return None


@DEFAULT_REGISTRY.register("weekend_sessions", ActivitySource.SESSIONS)
def weekend_sessions(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Distinct weekends with at least one session (Sat + Sun count once)"""
    weekends = set()
    for session in activity.sessions:
        key = _weekend_key(local_date(session.start_time, activity.timezone))
        if key is not None:
            weekends.add(key)
    return _count_result(len(weekends), requirement)


@DEFAULT_REGISTRY.register("new_year_session", ActivitySource.SESSIONS)
def new_year_session(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Sessions started on January 1st"""
    def on_new_year(session: Session) -> bool:
        day = local_date(session.start_time, activity.timezone)
        return day.month == 1 and day.day == 1

    return _count_result(_count_sessions(activity, on_new_year), requirement)


@DEFAULT_REGISTRY.register("holiday_session", ActivitySource.SESSIONS)
def holiday_session(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Sessions started on one of the HOLIDAYS"""
    def on_holiday(session: Session) -> bool:
        day = local_date(session.start_time, activity.timezone)
        return (day.month, day.day) in HOLIDAYS

    return _count_result(_count_sessions(activity, on_holiday), requirement)


# ==========================================
# Goal Conditions (judged on the just-completed goal)
# ==========================================

@DEFAULT_REGISTRY.register("exceed_goal_by_50_percent", ActivitySource.GOAL_EVENT, cumulative=False)
def exceed_goal_by_50_percent(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Goal finished at >= 150% of its target"""
    goal = activity.goal
    if goal is None or goal.target_value <= 0:
        return NOT_SATISFIED
    exceeded = goal.current_value >= goal.target_value * activity.goal_exceed_multiplier
    return EvaluationResult(current_value=goal.current_value, is_satisfied=exceeded)


@DEFAULT_REGISTRY.register("exact_goal_achievement", ActivitySource.GOAL_EVENT, cumulative=False)
def exact_goal_achievement(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Goal finished within the tolerance window of its target"""
    goal = activity.goal
    if goal is None:
        return NOT_SATISFIED
    difference = abs(goal.current_value - goal.target_value)
    return EvaluationResult(
        current_value=goal.current_value,
        is_satisfied=difference <= activity.exact_goal_tolerance
    )


# ==========================================
# Task Conditions
# ==========================================

@DEFAULT_REGISTRY.register("task_approval_rate", ActivitySource.TASKS)
def task_approval_rate(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """approved / (approved + rejected) as a percentage, compared to requirement.value"""
    approved = sum(1 for t in activity.tasks if t.status == TaskStatus.APPROVED)
    rejected = sum(1 for t in activity.tasks if t.status == TaskStatus.REJECTED)
    judged = approved + rejected
    if judged == 0:
        return NOT_SATISFIED
    rate = approved * 100 / judged
    return EvaluationResult(current_value=rate, is_satisfied=rate >= requirement.value)


@DEFAULT_REGISTRY.register("tasks_completed_early", ActivitySource.TASKS)
def tasks_completed_early(requirement: Requirement, activity: ActivitySnapshot) -> EvaluationResult:
    """Tasks completed before their due date"""
    count = sum(
        1 for t in activity.tasks
        if t.completed_at is not None and t.due_date is not None and t.completed_at < t.due_date
    )
    return _count_result(count, requirement)
