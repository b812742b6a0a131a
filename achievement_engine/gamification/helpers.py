"""
Achievement display helpers

Lookup and formatting utilities for code presenting achievements to users.
None of these touch storage.
"""

from typing import Dict, List, Optional

from achievement_engine.gamification.progress_tracker import calculate_progress_percentage
from achievement_engine.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementDifficulty,
    AchievementProgress,
    UserAchievement,
)

DIFFICULTY_EMOJI = {
    AchievementDifficulty.COMMON: '🥉',
    AchievementDifficulty.UNCOMMON: '🥈',
    AchievementDifficulty.RARE: '🥇',
    AchievementDifficulty.EPIC: '💎',
    AchievementDifficulty.LEGENDARY: '💫',
}


def find_achievement_by_id(achievements: List[Achievement], achievement_id: str) -> Optional[Achievement]:
    return next((a for a in achievements if a.id == achievement_id), None)


def check_has_achievement(user_achievements: List[UserAchievement], achievement_id: str) -> bool:
    return any(ua.achievement_id == achievement_id for ua in user_achievements)


def find_progress_for_achievement(
    progress: List[AchievementProgress],
    achievement_id: str
) -> Optional[AchievementProgress]:
    return next((p for p in progress if p.achievement_id == achievement_id), None)


def filter_achievements_by_category(
    achievements: List[Achievement],
    category: AchievementCategory
) -> List[Achievement]:
    return [a for a in achievements if a.category == category]


def filter_user_achievements_by_category(
    user_achievements: List[UserAchievement],
    achievements: List[Achievement],
    category: AchievementCategory
) -> List[UserAchievement]:
    """User achievements whose catalog entry is in `category`"""
    in_category = {a.id for a in achievements if a.category == category}
    return [ua for ua in user_achievements if ua.achievement_id in in_category]


def map_achievements_with_progress(
    achievements: List[Achievement],
    user_achievements: List[UserAchievement],
    progress: List[AchievementProgress]
) -> List[Dict]:
    """
    Join catalog entries with the user's awards and progress

    Hidden achievements are left out unless earned or actively tracked.

    Returns:
        [
            {
                'achievement': Achievement,
                'is_earned': bool,
                'earned_at': datetime | None,
                'progress': float,        # 0-100
                'current_value': float,
                'target_value': float,
                'is_visible': bool
            }
        ]
    """
    awards = {ua.achievement_id: ua for ua in user_achievements}
    progress_by_id = {p.achievement_id: p for p in progress}

    mapped = []
    for achievement in achievements:
        user_achievement = awards.get(achievement.id)
        record = progress_by_id.get(achievement.id)

        if achievement.is_hidden and user_achievement is None and record is None:
            continue

        if user_achievement is not None:
            percentage = 100
        elif record is not None:
            percentage = calculate_progress_percentage(record.current_value, record.target_value)
        else:
            percentage = 0

        mapped.append({
            'achievement': achievement,
            'is_earned': user_achievement is not None,
            'earned_at': user_achievement.earned_at if user_achievement else None,
            'progress': percentage,
            'current_value': record.current_value if record else 0,
            'target_value': record.target_value if record else (
                achievement.requirements[0].value if achievement.requirements else 0
            ),
            'is_visible': user_achievement.is_visible if user_achievement else True,
        })

    return mapped


def get_recent_achievements(user_achievements: List[UserAchievement], limit: int = 5) -> List[UserAchievement]:
    """Most recently earned first"""
    return sorted(user_achievements, key=lambda ua: ua.earned_at, reverse=True)[:limit]


def calculate_total_points(achievements: List[Achievement], user_achievements: List[UserAchievement]) -> int:
    earned = {ua.achievement_id for ua in user_achievements}
    return sum(a.points for a in achievements if a.id in earned)


def format_achievement_unlock_message(achievement: Achievement) -> str:
    """
    Format achievement unlock message for celebration

    Args:
        achievement: The achievement just earned

    Returns:
        Formatted celebration message
    """
    symbol = DIFFICULTY_EMOJI.get(achievement.difficulty, '🏆')

    return f"""🎉 ACHIEVEMENT UNLOCKED! 🎉

{symbol} {achievement.icon} {achievement.name} {symbol}

{achievement.description}

⭐ +{achievement.points} points"""
