"""Database connection management"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from achievement_engine.config import DATABASE_URL, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE
from achievement_engine.exceptions import ConnectionError

logger = logging.getLogger(__name__)

APPLICATION_NAME = "achievement-engine"


class Database:
    """
    Async connection pool shared by every query module

    The achievement tables and the host application's activity tables are
    read through the same pool; rows come back as dicts.
    """

    def __init__(
        self,
        connection_string: str = DATABASE_URL,
        min_size: int = DB_POOL_MIN_SIZE,
        max_size: int = DB_POOL_MAX_SIZE
    ):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def init_pool(self) -> None:
        """Open the pool (no-op when already open)"""
        if self._pool is not None:
            return
        logger.info(f"Initializing database connection pool (min={self.min_size}, max={self.max_size})")
        self._pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            kwargs={"application_name": APPLICATION_NAME},
            open=False
        )
        await self._pool.open()

    async def close_pool(self) -> None:
        """Close connection pool"""
        if self._pool:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    async def check_connection(self) -> None:
        """
        Round-trip a trivial query

        Raises:
            ConnectionError: database unreachable
        """
        try:
            async with self.connection() as conn:
                await conn.execute("SELECT 1")
        except psycopg.OperationalError as e:
            raise ConnectionError(
                f"Database unreachable: {e}",
                operation="check_connection",
                cause=e
            ) from e
        logger.info("Database connection OK")

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Get database connection from pool"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn


# Global database instance
db = Database()
