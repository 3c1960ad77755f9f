"""
Async PostgreSQL connection pool
"""

import os
from typing import Any, Dict, List, Optional

import asyncpg

from edulearn.services.errors import PersistenceCategory, PersistenceError
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "db", "schema.sql")


class DatabaseManager:
    """Async PostgreSQL database manager using asyncpg"""

    def __init__(self, dsn: str, max_size: int = 10):
        self.dsn = dsn
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None

    @property
    def connected(self) -> bool:
        return self.pool is not None

    async def connect(self):
        """Create connection pool"""
        timezone = os.getenv("TZ", "UTC")

        self.pool = await asyncpg.create_pool(
            self.dsn,
            min_size=1,
            max_size=self.max_size,
            init=lambda conn: conn.execute(f"SET TIME ZONE '{timezone}'"),
            command_timeout=60.0,
            server_settings={"application_name": "edulearn_upload"}
        )
        logger.info("Database pool created")

    async def disconnect(self):
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None

    def _require_pool(self) -> asyncpg.Pool:
        if not self.pool:
            raise PersistenceError("Database not connected", PersistenceCategory.UNAVAILABLE)
        return self.pool

    async def apply_schema(self, path: str = SCHEMA_PATH):
        """Create tables and policies if they do not exist yet"""
        with open(path, encoding="utf-8") as schema_file:
            await self.execute(schema_file.read())
        logger.info(f"Applied schema from {path}")

    async def execute(self, query: str, *args) -> str:
        """Execute a query and return status"""
        async with self._require_pool().acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """Fetch single row"""
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """Fetch all rows"""
        async with self._require_pool().acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def fetch_val(self, query: str, *args) -> Any:
        """Fetch single value"""
        async with self._require_pool().acquire() as conn:
            return await conn.fetchval(query, *args)
