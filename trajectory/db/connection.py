"""Database connection management"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from trajectory.config import DATABASE_URL

logger = logging.getLogger(__name__)


class Database:
    """Async connection pool for the wellness store"""

    def __init__(self, connection_string: str = DATABASE_URL, min_size: int = 2, max_size: int = 10):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    def pool_stats(self) -> dict:
        """psycopg_pool counters, empty while the pool is closed"""
        return self._pool.get_stats() if self._pool else {}

    async def init_pool(self) -> None:
        """Open the connection pool"""
        logger.info("Initializing database connection pool")
        self._pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False
        )
        await self._pool.open()

    async def close_pool(self) -> None:
        """Close connection pool"""
        if self._pool:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a connection whose rows come back as dicts"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn

    async def ping(self) -> bool:
        """Return True when a trivial query succeeds"""
        try:
            async with self.connection() as conn:
                await conn.execute("SELECT 1")
            return True
        except (psycopg.Error, RuntimeError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False


# Global database instance
db = Database()
