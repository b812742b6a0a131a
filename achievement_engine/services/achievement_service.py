"""
AchievementService - hooks the achievement engine into application events

The tracking application calls these methods when a session starts or ends,
a task is completed or approved, or a goal is completed. Every handler is
fire-and-forget from the caller's point of view: it returns the newly earned
achievements (possibly none) and never raises.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from achievement_engine.gamification.engine import AchievementEngine
from achievement_engine.gamification.helpers import (
    calculate_total_points,
    format_achievement_unlock_message,
    get_recent_achievements,
    map_achievements_with_progress,
)
from achievement_engine.models.achievement import UserAchievement
from achievement_engine.models.activity import Goal, Session

logger = logging.getLogger(__name__)


class AchievementService:
    """
    Service for achievement features.

    Responsibilities:
    - Translating application events into engine events
    - Building user-facing unlock messages
    - Achievement summaries (earned, in progress, points)
    - Backfill across many users
    """

    def __init__(self, engine: AchievementEngine):
        """
        Initialize AchievementService.

        Args:
            engine: Configured AchievementEngine
        """
        self.engine = engine
        logger.debug("AchievementService initialized")

    async def initialize(self) -> None:
        await self.engine.initialize()

    # ==========================================
    # Event hooks
    # ==========================================

    async def on_session_start(self, user_id: str, session: Optional[Session] = None) -> List[UserAchievement]:
        awarded = await self.engine.process_session_event(user_id, "session_start", session)
        logger.debug(f"Processed session start for user {user_id}")
        return awarded

    async def on_session_end(self, user_id: str, session: Optional[Session] = None) -> List[UserAchievement]:
        awarded = await self.engine.process_session_event(user_id, "session_end", session)
        logger.debug(f"Processed session end for user {user_id}")
        return awarded

    async def on_task_completed(self, user_id: str) -> List[UserAchievement]:
        return await self.engine.process_task_event(user_id, "task_completed")

    async def on_task_approved(self, user_id: str) -> List[UserAchievement]:
        return await self.engine.process_task_event(user_id, "task_approved")

    async def on_goal_completed(self, user_id: str, goal: Optional[Goal] = None) -> List[UserAchievement]:
        return await self.engine.process_goal_event(user_id, "goal_completed", goal)

    async def run_backfill(self, user_ids: Iterable[str]) -> Dict[str, int]:
        """
        Full check for each user

        Returns:
            {user_id: number of newly awarded achievements}
        """
        results = {}
        for user_id in user_ids:
            awarded = await self.engine.perform_full_check(user_id)
            results[user_id] = len(awarded)
        logger.info(
            f"Backfill finished for {len(results)} users, "
            f"{sum(results.values())} achievements awarded"
        )
        return results

    # ==========================================
    # Presentation
    # ==========================================

    async def build_unlock_messages(self, awarded: List[UserAchievement]) -> List[str]:
        """Celebration messages for newly awarded achievements"""
        messages = []
        for user_achievement in awarded:
            achievement = await self.engine.storage.get_achievement_by_id(user_achievement.achievement_id)
            if achievement is not None:
                messages.append(format_achievement_unlock_message(achievement))
        return messages

    async def get_user_summary(self, user_id: str, recent_limit: int = 5) -> Dict[str, Any]:
        """
        Get user's achievements with progress

        Returns:
            {
                'achievements': [mapped achievements, see map_achievements_with_progress],
                'recent': [most recently earned UserAchievement],
                'total_earned': int,
                'total_achievements': int,
                'total_points': int
            }
        """
        storage = self.engine.storage
        achievements = [a for a in await storage.get_all_achievements() if a.is_active]
        user_achievements = await storage.get_user_achievements(user_id)
        progress = await storage.get_user_progress(user_id)

        mapped = map_achievements_with_progress(achievements, user_achievements, progress)
        # Closest to completion first, earned achievements last
        mapped.sort(key=lambda m: (m['is_earned'], -m['progress']))

        return {
            'achievements': mapped,
            'recent': get_recent_achievements(user_achievements, recent_limit),
            'total_earned': len(user_achievements),
            'total_achievements': len(achievements),
            'total_points': calculate_total_points(achievements, user_achievements),
        }
