"""Achievement database queries"""
import functools
import json
import logging
from typing import Optional

import psycopg

from achievement_engine.db.connection import db
from achievement_engine.exceptions import wrap_database_exception
from achievement_engine.models.achievement import Achievement, AchievementNotification
from achievement_engine.observability.metrics import record_storage_error

logger = logging.getLogger(__name__)

ACHIEVEMENT_COLUMNS = """
    id, name, description, category, icon, difficulty, points,
    requirements, is_hidden, is_active
"""

USER_ACHIEVEMENT_COLUMNS = """
    id::text AS id, user_id, achievement_id, earned_at, progress, is_visible, metadata
"""

PROGRESS_COLUMNS = """
    user_id, achievement_id, current_value, target_value, is_completed, last_updated
"""


def db_operation(operation: str):
    """Wrap psycopg errors raised by a query function into QueryError/ConnectionError"""
    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except psycopg.Error as e:
                record_storage_error(operation)
                raise wrap_database_exception(e, operation=operation) from e
        return wrapper
    return decorator


# ==========================================
# Catalog
# ==========================================

@db_operation("get_all_achievements")
async def get_all_achievements() -> list[dict]:
    """Get all achievement definitions"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {ACHIEVEMENT_COLUMNS} FROM achievements ORDER BY category, points"
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@db_operation("create_achievement")
async def create_achievement(achievement: Achievement) -> bool:
    """
    Insert an achievement definition

    Returns True if inserted, False if the id already existed
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO achievements
                    (id, name, description, category, icon, difficulty, points,
                     requirements, is_hidden, is_active)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO NOTHING
                RETURNING id
                """,
                (
                    achievement.id,
                    achievement.name,
                    achievement.description,
                    achievement.category.value,
                    achievement.icon,
                    achievement.difficulty.value,
                    achievement.points,
                    json.dumps([r.model_dump(mode="json") for r in achievement.requirements]),
                    achievement.is_hidden,
                    achievement.is_active,
                )
            )
            result = await cur.fetchone()
            await conn.commit()
            return result is not None


@db_operation("get_achievements_by_category")
async def get_achievements_by_category(category: str) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {ACHIEVEMENT_COLUMNS} FROM achievements WHERE category = %s ORDER BY points",
                (category,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@db_operation("get_achievement_by_id")
async def get_achievement_by_id(achievement_id: str) -> Optional[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {ACHIEVEMENT_COLUMNS} FROM achievements WHERE id = %s",
                (achievement_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


# ==========================================
# Awards
# ==========================================

@db_operation("get_user_achievements")
async def get_user_achievements(user_id: str) -> list[dict]:
    """Get every achievement the user has earned, most recent first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {USER_ACHIEVEMENT_COLUMNS}
                FROM user_achievements
                WHERE user_id = %s
                ORDER BY earned_at DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@db_operation("award_achievement")
async def award_achievement(
    user_id: str,
    achievement_id: str,
    points: int,
    notification: Optional[AchievementNotification] = None
) -> Optional[dict]:
    """
    Award an achievement to a user

    The UNIQUE (user_id, achievement_id) constraint makes this an atomic
    insert-if-absent. The notification is written in the same transaction
    and only when the award row was actually inserted.

    Returns the new user_achievements row, or None if already earned
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO user_achievements (user_id, achievement_id, progress, metadata)
                VALUES (%s, %s, 100, %s)
                ON CONFLICT (user_id, achievement_id) DO NOTHING
                RETURNING {USER_ACHIEVEMENT_COLUMNS}
                """,
                (user_id, achievement_id, json.dumps({"points": points}))
            )
            row = await cur.fetchone()

            if row and notification is not None:
                await cur.execute(
                    """
                    INSERT INTO achievement_notifications
                        (id, user_id, achievement_id, type, title, message, is_read, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        notification.id,
                        notification.user_id,
                        notification.achievement_id,
                        notification.type.value,
                        notification.title,
                        notification.message,
                        notification.is_read,
                        notification.created_at,
                    )
                )

            await conn.commit()
            return dict(row) if row else None


@db_operation("set_achievement_visibility")
async def set_achievement_visibility(user_id: str, achievement_id: str, is_visible: bool) -> bool:
    """Toggle the user's display flag. Returns False if the award doesn't exist"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE user_achievements
                SET is_visible = %s
                WHERE user_id = %s AND achievement_id = %s
                RETURNING id
                """,
                (is_visible, user_id, achievement_id)
            )
            result = await cur.fetchone()
            await conn.commit()
            return result is not None


# ==========================================
# Progress
# ==========================================

@db_operation("get_achievement_progress")
async def get_achievement_progress(user_id: str, achievement_id: str) -> Optional[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {PROGRESS_COLUMNS}
                FROM achievement_progress
                WHERE user_id = %s AND achievement_id = %s
                """,
                (user_id, achievement_id)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


@db_operation("update_achievement_progress")
async def update_achievement_progress(
    user_id: str,
    achievement_id: str,
    current_value: float,
    target_value: float
) -> dict:
    """Upsert progress; is_completed follows current_value >= target_value"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO achievement_progress
                    (user_id, achievement_id, current_value, target_value, is_completed, last_updated)
                VALUES (%s, %s, %s, %s, %s, CURRENT_TIMESTAMP)
                ON CONFLICT (user_id, achievement_id) DO UPDATE
                SET current_value = EXCLUDED.current_value,
                    target_value = EXCLUDED.target_value,
                    is_completed = EXCLUDED.is_completed,
                    last_updated = CURRENT_TIMESTAMP
                RETURNING {PROGRESS_COLUMNS}
                """,
                (user_id, achievement_id, current_value, target_value, current_value >= target_value)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row)


@db_operation("get_user_progress")
async def get_user_progress(user_id: str) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {PROGRESS_COLUMNS}
                FROM achievement_progress
                WHERE user_id = %s
                ORDER BY last_updated DESC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


# ==========================================
# Notifications
# ==========================================

@db_operation("create_notification")
async def create_notification(notification: AchievementNotification) -> None:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO achievement_notifications
                    (id, user_id, achievement_id, type, title, message, is_read, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    notification.id,
                    notification.user_id,
                    notification.achievement_id,
                    notification.type.value,
                    notification.title,
                    notification.message,
                    notification.is_read,
                    notification.created_at,
                )
            )
            await conn.commit()


@db_operation("get_user_notifications")
async def get_user_notifications(user_id: str, unread_only: bool = False) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id, user_id, achievement_id, type, title, message, is_read, created_at
                FROM achievement_notifications
                WHERE user_id = %s AND (NOT %s OR NOT is_read)
                ORDER BY created_at DESC
                """,
                (user_id, unread_only)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
