"""PostgreSQL-backed implementations of the engine's storage contracts"""
import logging
from typing import List, Optional

from achievement_engine.db import queries
from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementNotification,
    AchievementProgress,
    UserAchievement,
)
from achievement_engine.models.activity import Goal, Session, Task

logger = logging.getLogger(__name__)


class PostgresActivityHistory:
    """ActivityHistoryProvider over the application's sessions/tasks/goals tables"""

    async def get_user_sessions(self, user_id: str) -> List[Session]:
        return [Session.model_validate(row) for row in await queries.get_user_sessions(user_id)]

    async def get_tasks(self, user_id: str) -> List[Task]:
        return [Task.model_validate(row) for row in await queries.get_tasks(user_id)]

    async def get_goals(self, user_id: str) -> List[Goal]:
        return [Goal.model_validate(row) for row in await queries.get_goals(user_id)]


class PostgresAchievementStore:
    """AchievementStorage over the achievement tables"""

    async def get_all_achievements(self) -> List[Achievement]:
        return [Achievement.model_validate(row) for row in await queries.get_all_achievements()]

    async def create_achievement(self, achievement: Achievement) -> Achievement:
        inserted = await queries.create_achievement(achievement)
        if not inserted:
            logger.debug(f"Achievement {achievement.id} already present")
        return achievement

    async def get_achievements_by_category(self, category: AchievementCategory) -> List[Achievement]:
        rows = await queries.get_achievements_by_category(AchievementCategory(category).value)
        return [Achievement.model_validate(row) for row in rows]

    async def get_achievement_by_id(self, achievement_id: str) -> Optional[Achievement]:
        row = await queries.get_achievement_by_id(achievement_id)
        return Achievement.model_validate(row) if row else None

    async def get_user_achievements(self, user_id: str) -> List[UserAchievement]:
        return [UserAchievement.model_validate(row) for row in await queries.get_user_achievements(user_id)]

    async def award_achievement(
        self,
        user_id: str,
        achievement_id: str,
        points: int,
        notification: Optional[AchievementNotification] = None
    ) -> Optional[UserAchievement]:
        row = await queries.award_achievement(user_id, achievement_id, points, notification)
        return UserAchievement.model_validate(row) if row else None

    async def set_achievement_visibility(self, user_id: str, achievement_id: str, is_visible: bool) -> bool:
        return await queries.set_achievement_visibility(user_id, achievement_id, is_visible)

    async def get_achievement_progress(self, user_id: str, achievement_id: str) -> Optional[AchievementProgress]:
        row = await queries.get_achievement_progress(user_id, achievement_id)
        return AchievementProgress.model_validate(row) if row else None

    async def update_achievement_progress(
        self,
        user_id: str,
        achievement_id: str,
        current_value: float,
        target_value: float
    ) -> AchievementProgress:
        row = await queries.update_achievement_progress(user_id, achievement_id, current_value, target_value)
        return AchievementProgress.model_validate(row)

    async def get_user_progress(self, user_id: str) -> List[AchievementProgress]:
        return [AchievementProgress.model_validate(row) for row in await queries.get_user_progress(user_id)]

    async def create_notification(self, notification: AchievementNotification) -> AchievementNotification:
        await queries.create_notification(notification)
        return notification

    async def get_notifications(self, user_id: str, unread_only: bool = False) -> List[AchievementNotification]:
        rows = await queries.get_user_notifications(user_id, unread_only)
        return [AchievementNotification.model_validate(row) for row in rows]
