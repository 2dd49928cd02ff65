"""Async database manager.

Thin wrapper over a SQLAlchemy async engine. One instance is created by
the process entrypoint and injected into every component that needs the
store; nothing in the package holds a module-level engine.
"""

from __future__ import annotations

from typing import Any

import bittensor as bt
from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import Executable

from .schema.base import Base


class DatabaseManager:
    """Owns the async engine and exposes read/write helpers."""

    def __init__(
        self,
        url: str,
        echo: bool = False,
        pool_pre_ping: bool = True,
        engine: AsyncEngine | None = None,
    ):
        self.url = url
        self.engine = engine or create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=pool_pre_ping,
        )

    async def create_all(self) -> None:
        """Create missing tables (local/dev bootstrap and tests)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        bt.logging.debug({"database": "schema_ready"})

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def read(
        self,
        query: Executable,
        params: dict[str, Any] | None = None,
        mappings: bool = False,
    ) -> list[Any]:
        """Run a read query and return all rows.

        With ``mappings=True`` rows are returned as plain dicts.
        """
        async with self.engine.connect() as conn:
            result: Result = await conn.execute(query, params or {})
            if mappings:
                return [dict(row) for row in result.mappings().all()]
            return list(result.all())

    async def write(
        self,
        query: Executable,
        params: dict[str, Any] | None = None,
    ) -> int:
        """Run one write statement in its own transaction. Returns rowcount."""
        async with self.engine.begin() as conn:
            result = await conn.execute(query, params or {})
            return int(result.rowcount or 0)

    async def write_returning(
        self,
        query: Executable,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Run a write with a RETURNING clause and return the first scalar."""
        async with self.engine.begin() as conn:
            result = await conn.execute(query, params or {})
            return result.scalar()

    def begin(self) -> Any:
        """Open a transaction for multi-statement units of work.

        Usage:
            async with database.begin() as conn:
                await conn.execute(...)
        """
        return self.engine.begin()


__all__ = ["DatabaseManager"]
