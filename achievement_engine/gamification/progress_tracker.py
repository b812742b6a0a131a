"""
Progress Tracker

Keeps one AchievementProgress record per (user, achievement) for
requirements that accumulate over time ("10 sessions before 8 AM").

The tracker does not clamp: callers pass monotonically non-decreasing
values for count-based requirements.
"""

from typing import List, Optional
import logging

from achievement_engine.models.achievement import AchievementProgress
from achievement_engine.storage import AchievementStorage

logger = logging.getLogger(__name__)


def calculate_progress_percentage(current: float, target: float) -> float:
    """
    Percentage of target reached, capped at 100

    Examples:
        >>> calculate_progress_percentage(5, 10)
        50.0
        >>> calculate_progress_percentage(15, 10)
        100
    """
    if target <= 0:
        return 0
    return min(100, current / target * 100)


class ProgressTracker:
    """Upserts and reads progress records through AchievementStorage"""

    def __init__(self, storage: AchievementStorage):
        self.storage = storage

    async def update_progress(
        self,
        user_id: str,
        achievement_id: str,
        current_value: float,
        target_value: float
    ) -> AchievementProgress:
        """
        Upsert progress; is_completed = current_value >= target_value

        Writing the same current_value twice only refreshes last_updated.
        """
        progress = await self.storage.update_achievement_progress(
            user_id, achievement_id, current_value, target_value
        )
        logger.debug(
            f"Progress for user {user_id} on {achievement_id}: "
            f"{current_value}/{target_value} "
            f"({calculate_progress_percentage(current_value, target_value):.0f}%)"
        )
        return progress

    async def get_progress(self, user_id: str, achievement_id: str) -> Optional[AchievementProgress]:
        """None when the achievement was never evaluated for this user"""
        return await self.storage.get_achievement_progress(user_id, achievement_id)

    async def get_user_progress(self, user_id: str) -> List[AchievementProgress]:
        return await self.storage.get_user_progress(user_id)
