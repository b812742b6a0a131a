"""Activity history queries (sessions, tasks, goals)

These tables belong to the tracking application; the achievement engine
only reads them.
"""
import logging

from achievement_engine.db.connection import db
from achievement_engine.db.queries.achievements import db_operation

logger = logging.getLogger(__name__)


@db_operation("get_user_sessions")
async def get_user_sessions(user_id: str) -> list[dict]:
    """Get all sessions for a user, oldest first"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id, user_id, start_time, end_time
                FROM sessions
                WHERE user_id = %s
                ORDER BY start_time ASC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@db_operation("get_tasks")
async def get_tasks(user_id: str) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id, user_id, status, completed_at, due_date
                FROM tasks
                WHERE user_id = %s
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


@db_operation("get_goals")
async def get_goals(user_id: str) -> list[dict]:
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id::text AS id, user_id, current_value, target_value, is_completed
                FROM goals
                WHERE user_id = %s
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
