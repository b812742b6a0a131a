"""
Storage contracts used by the achievement engine

The engine never talks to a database directly. It reads activity through an
ActivityHistoryProvider and reads/writes achievement state through an
AchievementStorage. Two implementations ship with the package:

- achievement_engine.gamification.memory_store (in-process, tests)
- achievement_engine.db.store (PostgreSQL)
"""

from typing import List, Optional, Protocol, runtime_checkable

from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementNotification,
    AchievementProgress,
    UserAchievement,
)
from achievement_engine.models.activity import Goal, Session, Task


@runtime_checkable
class ActivityHistoryProvider(Protocol):
    """Read-only activity feeds"""

    async def get_user_sessions(self, user_id: str) -> List[Session]: ...

    async def get_tasks(self, user_id: str) -> List[Task]: ...

    async def get_goals(self, user_id: str) -> List[Goal]: ...


@runtime_checkable
class AchievementStorage(Protocol):
    """Achievement catalog, awards, progress and notifications"""

    async def get_all_achievements(self) -> List[Achievement]: ...

    async def create_achievement(self, achievement: Achievement) -> Achievement: ...

    async def get_achievements_by_category(self, category: AchievementCategory) -> List[Achievement]: ...

    async def get_achievement_by_id(self, achievement_id: str) -> Optional[Achievement]: ...

    async def get_user_achievements(self, user_id: str) -> List[UserAchievement]: ...

    async def award_achievement(
        self,
        user_id: str,
        achievement_id: str,
        points: int,
        notification: Optional[AchievementNotification] = None
    ) -> Optional[UserAchievement]:
        """
        Insert-if-absent keyed on (user_id, achievement_id)

        Returns the new UserAchievement, or None when the pair already exists.
        When `notification` is given it is written in the same unit of work,
        and only if the award itself was inserted.
        """
        ...

    async def get_achievement_progress(self, user_id: str, achievement_id: str) -> Optional[AchievementProgress]: ...

    async def update_achievement_progress(
        self,
        user_id: str,
        achievement_id: str,
        current_value: float,
        target_value: float
    ) -> AchievementProgress: ...

    async def get_user_progress(self, user_id: str) -> List[AchievementProgress]: ...

    async def create_notification(self, notification: AchievementNotification) -> AchievementNotification: ...
