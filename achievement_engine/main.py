"""
Achievement backfill entry point

Runs a full achievement check for the given users against the PostgreSQL
store. Safe to run repeatedly: users never receive an achievement twice.

Usage:
    python -m achievement_engine.main --init-schema --seed
    python -m achievement_engine.main --user-id user-1 --user-id user-2
"""
import argparse
import asyncio
import logging
import sys

from achievement_engine.config import configure_logging, validate_config
from achievement_engine.db.connection import db
from achievement_engine.db.schema import init_schema
from achievement_engine.db.store import PostgresAchievementStore, PostgresActivityHistory
from achievement_engine.exceptions import AchievementEngineError, ValidationError
from achievement_engine.observability.sentry_config import init_sentry, shutdown_sentry
from achievement_engine.services.container import init_container

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Achievement engine maintenance")
    parser.add_argument(
        "--user-id",
        action="append",
        default=[],
        dest="user_ids",
        help="User to run a full achievement check for (repeatable)"
    )
    parser.add_argument("--init-schema", action="store_true", help="Create achievement tables")
    parser.add_argument("--seed", action="store_true", help="Seed the catalog if storage is empty")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    """Returns process exit code"""
    blank = [u for u in args.user_ids if not u.strip()]
    if blank:
        raise ValidationError("--user-id must not be blank", field="user_id", value=blank[0])

    container = init_container(PostgresAchievementStore(), PostgresActivityHistory())

    try:
        logger.info("Validating configuration...")
        validate_config()

        logger.info("Initializing database connection pool...")
        await db.init_pool()
        await db.check_connection()

        if args.init_schema:
            await init_schema()

        if args.seed or args.user_ids:
            await container.achievement_service.initialize()

        failed = []
        for user_id in args.user_ids:
            try:
                awarded = await container.engine.perform_full_check(user_id, strict=True)
                logger.info(f"User {user_id}: {len(awarded)} new achievements")
            except AchievementEngineError as e:
                # Already logged with context by the exception itself
                failed.append(user_id)
                logger.warning(f"Full check failed for user {user_id} (request {e.request_id})")

        if failed:
            logger.error(f"Backfill failed for {len(failed)} users: {', '.join(failed)}")
            return 1
        return 0

    finally:
        logger.info("Closing database connection...")
        await db.close_pool()


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    init_sentry()
    try:
        return asyncio.run(run(args))
    except AchievementEngineError as e:
        logger.error(f"Fatal error: {e.message}")
        return 1
    finally:
        shutdown_sentry()


if __name__ == "__main__":
    sys.exit(main())
