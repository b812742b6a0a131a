"""
In-memory achievement store

Implements both ActivityHistoryProvider and AchievementStorage in process
memory. Used by the test suite and for running the engine without a
database. Nothing is persisted.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementNotification,
    AchievementProgress,
    UserAchievement,
)
from achievement_engine.models.activity import Goal, Session, Task
from achievement_engine.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)


class InMemoryAchievementStore:
    """In-process store for achievements and activity history"""

    def __init__(self):
        self._achievements: Dict[str, Achievement] = {}
        self._user_achievements: Dict[Tuple[str, str], UserAchievement] = {}
        self._progress: Dict[Tuple[str, str], AchievementProgress] = {}
        self._notifications: List[AchievementNotification] = []
        self._sessions: Dict[str, List[Session]] = {}
        self._tasks: Dict[str, List[Task]] = {}
        self._goals: Dict[str, List[Goal]] = {}
        # Makes check-and-insert in award_achievement atomic
        self._award_lock = asyncio.Lock()

    # ==========================================
    # Activity history (write side used by callers/tests)
    # ==========================================

    def add_session(self, user_id: str, session: Session) -> None:
        self._sessions.setdefault(user_id, []).append(session)

    def end_session(self, user_id: str, session_id: str, end_time) -> Session:
        sessions = self._sessions.get(user_id, [])
        for index, session in enumerate(sessions):
            if session.id == session_id:
                ended = session.model_copy(update={"end_time": end_time})
                sessions[index] = ended
                return ended
        raise KeyError(f"Session {session_id} not found for user {user_id}")

    def add_task(self, user_id: str, task: Task) -> None:
        self._tasks.setdefault(user_id, []).append(task)

    def add_goal(self, user_id: str, goal: Goal) -> None:
        self._goals.setdefault(user_id, []).append(goal)

    # ==========================================
    # ActivityHistoryProvider
    # ==========================================

    async def get_user_sessions(self, user_id: str) -> List[Session]:
        return list(self._sessions.get(user_id, []))

    async def get_tasks(self, user_id: str) -> List[Task]:
        return list(self._tasks.get(user_id, []))

    async def get_goals(self, user_id: str) -> List[Goal]:
        return list(self._goals.get(user_id, []))

    # ==========================================
    # AchievementStorage
    # ==========================================

    async def get_all_achievements(self) -> List[Achievement]:
        return list(self._achievements.values())

    async def create_achievement(self, achievement: Achievement) -> Achievement:
        self._achievements[achievement.id] = achievement
        logger.debug(f"Stored achievement {achievement.id}")
        return achievement

    async def get_achievements_by_category(self, category: AchievementCategory) -> List[Achievement]:
        return [a for a in self._achievements.values() if a.category == category]

    async def get_achievement_by_id(self, achievement_id: str) -> Optional[Achievement]:
        return self._achievements.get(achievement_id)

    async def get_user_achievements(self, user_id: str) -> List[UserAchievement]:
        return [ua for (uid, _), ua in self._user_achievements.items() if uid == user_id]

    async def award_achievement(
        self,
        user_id: str,
        achievement_id: str,
        points: int,
        notification: Optional[AchievementNotification] = None
    ) -> Optional[UserAchievement]:
        """Insert-if-absent; returns None when the user already has it"""
        key = (user_id, achievement_id)
        async with self._award_lock:
            if key in self._user_achievements:
                return None
            user_achievement = UserAchievement(
                user_id=user_id,
                achievement_id=achievement_id,
                progress=100,
                metadata={"points": points}
            )
            self._user_achievements[key] = user_achievement
            if notification is not None:
                self._notifications.append(notification)
            return user_achievement

    async def set_achievement_visibility(self, user_id: str, achievement_id: str, is_visible: bool) -> bool:
        """Toggle display flag - the only mutation allowed on an award"""
        key = (user_id, achievement_id)
        user_achievement = self._user_achievements.get(key)
        if user_achievement is None:
            return False
        self._user_achievements[key] = user_achievement.model_copy(update={"is_visible": is_visible})
        return True

    async def get_achievement_progress(self, user_id: str, achievement_id: str) -> Optional[AchievementProgress]:
        return self._progress.get((user_id, achievement_id))

    async def update_achievement_progress(
        self,
        user_id: str,
        achievement_id: str,
        current_value: float,
        target_value: float
    ) -> AchievementProgress:
        progress = AchievementProgress(
            user_id=user_id,
            achievement_id=achievement_id,
            current_value=current_value,
            target_value=target_value,
            last_updated=now_utc()
        )
        self._progress[(user_id, achievement_id)] = progress
        return progress

    async def get_user_progress(self, user_id: str) -> List[AchievementProgress]:
        return [p for (uid, _), p in self._progress.items() if uid == user_id]

    async def create_notification(self, notification: AchievementNotification) -> AchievementNotification:
        self._notifications.append(notification)
        return notification

    async def get_notifications(self, user_id: str) -> List[AchievementNotification]:
        return [n for n in self._notifications if n.user_id == user_id]
