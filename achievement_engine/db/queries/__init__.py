"""
Database queries - re-exports every query function.

Module organization:
- achievements.py: Catalog, awards, progress, notifications
- activity.py: Sessions, tasks, goals (read-only)
"""

from achievement_engine.db.queries.achievements import (
    get_all_achievements,
    create_achievement,
    get_achievements_by_category,
    get_achievement_by_id,
    get_user_achievements,
    award_achievement,
    set_achievement_visibility,
    get_achievement_progress,
    update_achievement_progress,
    get_user_progress,
    create_notification,
    get_user_notifications,
)

from achievement_engine.db.queries.activity import (
    get_user_sessions,
    get_tasks,
    get_goals,
)

__all__ = [
    "get_all_achievements",
    "create_achievement",
    "get_achievements_by_category",
    "get_achievement_by_id",
    "get_user_achievements",
    "award_achievement",
    "set_achievement_visibility",
    "get_achievement_progress",
    "update_achievement_progress",
    "get_user_progress",
    "create_notification",
    "get_user_notifications",
    "get_user_sessions",
    "get_tasks",
    "get_goals",
]
