"""
Achievement Engine

Evaluates a user's activity history against the achievement catalog and
awards achievements at most once per (user, achievement).

Per (user, achievement) pair the state moves
    not-evaluated -> in-progress -> earned
and `earned` is terminal.

Events:
- session_start: special achievements (time-of-day, weekend, holiday)
- session_end: session milestones, consistency badges, streaks
- task_completed / task_approved: task completion
- goal_completed: goal-based (per-event conditions use the triggering goal)
- full check: every category, for backfill/recovery

Awarding is best-effort: a storage failure aborts the current pass, is
logged, and never propagates to the operation that triggered the event.
The next qualifying event (or a full check) picks it up again.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from enum import Enum
from typing import Dict, Iterable, List, Optional

from achievement_engine.config import (
    DEFAULT_TIMEZONE,
    EXACT_GOAL_TOLERANCE_SECONDS,
    GOAL_EXCEED_MULTIPLIER,
)
from achievement_engine.exceptions import (
    AchievementEngineError,
    EvaluationError,
    RecordNotFoundError,
    ValidationError,
)
from achievement_engine.gamification.catalog import AchievementCatalog
from achievement_engine.gamification.conditions import (
    ActivitySnapshot,
    ActivitySource,
    ConditionRegistry,
    EvaluationResult,
)
from achievement_engine.gamification.evaluators import (
    all_satisfied,
    evaluate_requirements,
    is_cumulative,
    required_sources,
)
from achievement_engine.gamification.progress_tracker import ProgressTracker
from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementNotification,
    NotificationType,
    UserAchievement,
)
from achievement_engine.models.activity import Goal, Session
from achievement_engine.observability.metrics import (
    record_award,
    record_evaluation_error,
    track_evaluation,
)
from achievement_engine.storage import AchievementStorage, ActivityHistoryProvider
from achievement_engine.utils.datetime_helpers import TimezoneLike

logger = logging.getLogger(__name__)


class SessionEventType(str, Enum):
    SESSION_START = "session_start"
    SESSION_END = "session_end"


class TaskEventType(str, Enum):
    TASK_COMPLETED = "task_completed"
    TASK_APPROVED = "task_approved"
    TASK_REJECTED = "task_rejected"
    TASK_SUBMITTED = "task_submitted"


class GoalEventType(str, Enum):
    GOAL_COMPLETED = "goal_completed"


SESSION_START_CATEGORIES = [AchievementCategory.SPECIAL_ACHIEVEMENTS]
SESSION_END_CATEGORIES = [
    AchievementCategory.SESSION_MILESTONES,
    AchievementCategory.CONSISTENCY_BADGES,
    AchievementCategory.STREAK_ACHIEVEMENTS,
]
TASK_CATEGORIES = [AchievementCategory.TASK_COMPLETION]
GOAL_CATEGORIES = [AchievementCategory.GOAL_BASED]
FULL_CHECK_CATEGORIES = [
    AchievementCategory.SESSION_MILESTONES,
    AchievementCategory.CONSISTENCY_BADGES,
    AchievementCategory.STREAK_ACHIEVEMENTS,
    AchievementCategory.TASK_COMPLETION,
    AchievementCategory.GOAL_BASED,
    AchievementCategory.SPECIAL_ACHIEVEMENTS,
]

# Task events that can move task achievements forward
TASK_EVALUATION_EVENTS = frozenset([TaskEventType.TASK_COMPLETED, TaskEventType.TASK_APPROVED])

UNLOCK_TITLE = "Achievement Unlocked!"


def _event_value(event_type) -> str:
    return event_type.value if isinstance(event_type, Enum) else str(event_type)


class AchievementEngine:
    """
    Orchestrates evaluation, progress tracking and awarding.

    Args:
        storage: Achievement storage (catalog, awards, progress, notifications)
        activity: Read-only activity history
        catalog: Catalog seeded on initialize() (defaults to PREDEFINED_ACHIEVEMENTS)
        registry: Special condition registry (defaults to the catalog's)
        timezone: Timezone used for time-of-day and calendar conditions
    """

    def __init__(
        self,
        storage: AchievementStorage,
        activity: ActivityHistoryProvider,
        catalog: Optional[AchievementCatalog] = None,
        registry: Optional[ConditionRegistry] = None,
        timezone: TimezoneLike = DEFAULT_TIMEZONE,
        exact_goal_tolerance: float = EXACT_GOAL_TOLERANCE_SECONDS,
        goal_exceed_multiplier: float = GOAL_EXCEED_MULTIPLIER,
    ):
        self.storage = storage
        self.activity = activity
        self.catalog = catalog if catalog is not None else AchievementCatalog()
        self.registry = registry if registry is not None else self.catalog.registry
        self.progress = ProgressTracker(storage)
        self.timezone = timezone
        self.exact_goal_tolerance = exact_goal_tolerance
        self.goal_exceed_multiplier = goal_exceed_multiplier

        self._initialized = False
        self._init_lock = asyncio.Lock()
        # One evaluation pass at a time per user; entries live only while held or awaited
        self._user_locks: Dict[str, asyncio.Lock] = {}
        self._lock_holders: Dict[str, int] = defaultdict(int)

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ==========================================
    # Initialization / seeding
    # ==========================================

    async def initialize(self) -> None:
        """
        Seed the catalog into storage once

        If storage already holds any achievement the whole seed is skipped
        (no partial merge). Later calls in this process are no-ops.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            logger.info("Initializing achievement engine")
            existing = await self.storage.get_all_achievements()

            if not existing:
                for achievement in self.catalog:
                    await self.storage.create_achievement(achievement)
                logger.info(f"Seeded {len(self.catalog)} achievements (catalog v{self.catalog.version})")
            else:
                logger.info(f"Found {len(existing)} existing achievements, skipping seed")

            self._initialized = True

    # ==========================================
    # Event processing
    # ==========================================

    async def process_session_event(
        self,
        user_id: str,
        event_type: str,
        session: Optional[Session] = None
    ) -> List[UserAchievement]:
        """
        Evaluate achievements after a session starts or ends

        Args:
            user_id: User whose session changed
            event_type: 'session_start' or 'session_end'
            session: The session that triggered the event; replaces the stored
                copy with the same id, or is added when storage hasn't caught up

        Returns:
            Newly awarded achievements (empty on failure)
        """
        try:
            event = SessionEventType(_event_value(event_type))
        except ValueError:
            logger.warning(f"Ignoring unknown session event '{event_type}' for user {user_id}")
            return []

        categories = (
            SESSION_START_CATEGORIES if event == SessionEventType.SESSION_START
            else SESSION_END_CATEGORIES
        )
        return await self._run_pass(user_id, event.value, categories, session=session)

    async def process_task_event(self, user_id: str, event_type: str) -> List[UserAchievement]:
        """Evaluate task achievements after task_completed / task_approved"""
        try:
            event = TaskEventType(_event_value(event_type))
        except ValueError:
            logger.warning(f"Ignoring unknown task event '{event_type}' for user {user_id}")
            return []

        if event not in TASK_EVALUATION_EVENTS:
            logger.debug(f"Task event {event.value} does not trigger achievement checks")
            return []

        return await self._run_pass(user_id, event.value, TASK_CATEGORIES)

    async def process_goal_event(
        self,
        user_id: str,
        event_type: str,
        goal: Optional[Goal] = None
    ) -> List[UserAchievement]:
        """
        Evaluate goal-based achievements after goal_completed

        Per-event conditions (exceed by 50%, exact match) are judged on
        `goal`, the one just completed, not on the whole history.
        """
        try:
            event = GoalEventType(_event_value(event_type))
        except ValueError:
            logger.warning(f"Ignoring unknown goal event '{event_type}' for user {user_id}")
            return []

        return await self._run_pass(user_id, event.value, GOAL_CATEGORIES, goal=goal)

    async def perform_full_check(self, user_id: str, strict: bool = False) -> List[UserAchievement]:
        """
        Re-evaluate every category against the full current history

        Used for backfill after bulk imports. Only genuinely new awards
        produce notifications. Per-event goal conditions need a triggering
        goal and are not re-judged here.

        Args:
            user_id: User to check
            strict: Raise instead of logging; failures outside the engine's
                own hierarchy are wrapped in EvaluationError
        """
        logger.info(f"Performing full achievement check for user {user_id}")
        awarded = await self._run_pass(user_id, "full_check", FULL_CHECK_CATEGORIES, strict=strict)
        logger.info(f"Full achievement check for user {user_id} awarded {len(awarded)} achievements")
        return awarded

    # ==========================================
    # Awarding
    # ==========================================

    async def has_achievement(self, user_id: str, achievement_id: str) -> bool:
        user_achievements = await self.storage.get_user_achievements(user_id)
        return any(ua.achievement_id == achievement_id for ua in user_achievements)

    async def award_achievement(self, user_id: str, achievement_id: str) -> Optional[UserAchievement]:
        """
        Award an achievement directly (admin/manual grant)

        Returns None if the user already has it, or if the achievement has no
        requirements and so can never be earned.

        Raises:
            ValidationError: user_id is blank
            RecordNotFoundError: achievement_id is not in storage
        """
        if not user_id or not user_id.strip():
            raise ValidationError("user_id must not be blank", field="user_id", value=user_id)
        await self.initialize()
        achievement = await self.storage.get_achievement_by_id(achievement_id)
        if achievement is None:
            raise RecordNotFoundError(
                f"Achievement {achievement_id} does not exist",
                record_type="Achievement",
                record_id=achievement_id,
                user_id=user_id,
                operation="award_achievement"
            )
        if not achievement.requirements:
            logger.warning(f"Achievement {achievement_id} has no requirements and cannot be awarded")
            return None

        async with self._user_lock(user_id):
            return await self._award(user_id, achievement)

    async def _award(self, user_id: str, achievement: Achievement) -> Optional[UserAchievement]:
        """Insert the award and its 'earned' notification as one unit"""
        notification = AchievementNotification(
            user_id=user_id,
            achievement_id=achievement.id,
            type=NotificationType.EARNED,
            title=UNLOCK_TITLE,
            message=f'You\'ve earned the "{achievement.name}" achievement!'
        )
        user_achievement = await self.storage.award_achievement(
            user_id,
            achievement.id,
            achievement.points,
            notification=notification
        )

        if user_achievement is None:
            logger.debug(f"User {user_id} already has {achievement.id}, not awarding again")
            return None

        record_award(achievement.category.value)
        logger.info(
            f"User {user_id} earned achievement: {achievement.id} "
            f"({achievement.name}) +{achievement.points} points"
        )
        return user_achievement

    # ==========================================
    # Evaluation pass
    # ==========================================

    @asynccontextmanager
    async def _user_lock(self, user_id: str):
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        self._lock_holders[user_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[user_id] -= 1
            if not self._lock_holders[user_id]:
                del self._lock_holders[user_id]
                del self._user_locks[user_id]

    async def _run_pass(
        self,
        user_id: str,
        event_type: str,
        categories: List[AchievementCategory],
        goal: Optional[Goal] = None,
        session: Optional[Session] = None,
        strict: bool = False
    ) -> List[UserAchievement]:
        awarded: List[UserAchievement] = []

        with track_evaluation(event_type):
            try:
                await self.initialize()
                async with self._user_lock(user_id):
                    await self._evaluate_categories(user_id, categories, awarded, goal, session)
            except Exception as e:
                record_evaluation_error(event_type)
                logger.error(
                    f"Achievement evaluation failed for user {user_id} on {event_type}: {e}",
                    exc_info=True
                )
                if strict:
                    if isinstance(e, AchievementEngineError):
                        raise
                    raise EvaluationError(
                        f"Achievement evaluation failed on {event_type}: {e}",
                        event_type=event_type,
                        user_id=user_id,
                        operation="evaluate",
                        cause=e
                    ) from e

        return awarded

    async def _evaluate_categories(
        self,
        user_id: str,
        categories: List[AchievementCategory],
        awarded: List[UserAchievement],
        goal: Optional[Goal],
        session: Optional[Session]
    ) -> None:
        achievements: List[Achievement] = []
        for category in categories:
            achievements.extend(
                a for a in await self.storage.get_achievements_by_category(category)
                if a.is_active
            )
        if not achievements:
            return

        earned_ids = {ua.achievement_id for ua in await self.storage.get_user_achievements(user_id)}
        pending = [a for a in achievements if a.id not in earned_ids]
        if not pending:
            logger.debug(f"User {user_id} already earned every achievement in {[c.value for c in categories]}")
            return

        activity = await self._load_activity(
            user_id,
            (r for a in pending for r in a.requirements),
            goal,
            session
        )

        for achievement in pending:
            user_achievement = await self._evaluate_achievement(user_id, achievement, activity)
            if user_achievement is not None:
                awarded.append(user_achievement)

    async def _load_activity(
        self,
        user_id: str,
        requirements: Iterable,
        goal: Optional[Goal],
        session: Optional[Session]
    ) -> ActivitySnapshot:
        """Load only the feeds the pending requirements read"""
        sources = required_sources(requirements, self.registry)
        snapshot = ActivitySnapshot(
            goal=goal,
            timezone=self.timezone,
            exact_goal_tolerance=self.exact_goal_tolerance,
            goal_exceed_multiplier=self.goal_exceed_multiplier
        )

        if ActivitySource.SESSIONS in sources:
            sessions = await self.activity.get_user_sessions(user_id)
            if session is not None:
                # The triggering copy is newer than a stored one with the same id
                if any(s.id == session.id for s in sessions):
                    sessions = [session if s.id == session.id else s for s in sessions]
                else:
                    sessions = [*sessions, session]
            snapshot.sessions = sessions
        if ActivitySource.TASKS in sources:
            snapshot.tasks = await self.activity.get_tasks(user_id)
        if ActivitySource.GOALS in sources:
            snapshot.goals = await self.activity.get_goals(user_id)

        return snapshot

    async def _evaluate_achievement(
        self,
        user_id: str,
        achievement: Achievement,
        activity: ActivitySnapshot
    ) -> Optional[UserAchievement]:
        if not achievement.requirements:
            logger.debug(f"Achievement {achievement.id} has no requirements, skipping")
            return None

        results = evaluate_requirements(achievement.requirements, activity, self.registry)

        if all_satisfied(results):
            user_achievement = await self._award(user_id, achievement)
            if user_achievement is not None:
                try:
                    await self._track_progress(user_id, achievement, results, completed=True)
                except Exception as e:
                    # The award and its notification are already stored
                    logger.warning(
                        f"Progress update failed after awarding {achievement.id} to user {user_id}: {e}",
                        exc_info=True
                    )
            return user_achievement

        await self._track_progress(user_id, achievement, results)
        return None

    async def _track_progress(
        self,
        user_id: str,
        achievement: Achievement,
        results: List[EvaluationResult],
        completed: bool = False
    ) -> None:
        """
        Record progress on the first cumulative requirement

        Nothing is written before the first qualifying activity, and per-event
        requirements never get a progress record.
        """
        for requirement, result in zip(achievement.requirements, results):
            if not is_cumulative(requirement, self.registry):
                continue
            if result.current_value <= 0 and not completed:
                return
            await self.progress.update_progress(
                user_id,
                achievement.id,
                result.current_value,
                requirement.value
            )
            return
