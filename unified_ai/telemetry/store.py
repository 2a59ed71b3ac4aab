"""
Unified AI - Persistent Telemetry Store

Telemetry handler that persists lifecycle events to SQLite through
SQLAlchemy's async engine (aiosqlite driver).
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..errors import AiError
from .db_models import Base, TelemetryEventRecord
from .handler import ErrorTelemetry, RequestTelemetry, ResponseTelemetry, TelemetryHandler

logger = logging.getLogger(__name__)


class TelemetryStore(TelemetryHandler):
    """
    SQLite-backed telemetry handler.

    Provides:
    - Automatic schema creation on first write
    - Async session management
    - Event queries for diagnostics
    """

    def __init__(self, db_path: str = "./data/telemetry.db"):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file (relative or absolute)
        """
        self.db_path = Path(db_path).resolve()
        self.db_url = f"sqlite+aiosqlite:///{self.db_path}"

        self.engine: AsyncEngine = create_async_engine(
            self.db_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        self._initialized = False
        self._initialization_lock = asyncio.Lock()
        # request_id -> (provider, operation) for response events, which carry neither
        self._pending: dict[str, tuple[str, str]] = {}

    async def initialize(self) -> None:
        """Create tables if they don't exist (idempotent)."""
        async with self._initialization_lock:
            if self._initialized:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._initialized = True

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session (context manager)."""
        if not self._initialized:
            await self.initialize()

        async with self.session_factory() as session:
            yield session

    async def _store(self, record: TelemetryEventRecord) -> None:
        async with self.get_session() as session:
            session.add(record)
            await session.commit()

    async def on_request(self, event: RequestTelemetry) -> None:
        self._pending[event.request_id] = (event.provider, event.operation)
        await self._store(
            TelemetryEventRecord(
                kind="request",
                request_id=event.request_id,
                provider=event.provider,
                operation=event.operation,
                payload=json.dumps(event.metadata or {}, default=str),
                timestamp=event.timestamp,
            )
        )

    async def on_response(self, event: ResponseTelemetry) -> None:
        provider, operation = self._pending.pop(event.request_id, (None, None))
        await self._store(
            TelemetryEventRecord(
                kind="response",
                request_id=event.request_id,
                provider=provider,
                operation=operation,
                latency_ms=event.latency_ms,
                tokens_used=event.tokens_used,
                payload=json.dumps({"cached": event.cached, **(event.metadata or {})}, default=str),
            )
        )

    async def on_error(self, event: ErrorTelemetry) -> None:
        self._pending.pop(event.request_id, None)
        await self._store(
            TelemetryEventRecord(
                kind="error",
                request_id=event.request_id,
                provider=event.provider,
                operation=event.operation,
                error_code=event.error.code if isinstance(event.error, AiError) else None,
                payload=json.dumps(event.to_dict(), default=str),
                timestamp=event.timestamp,
            )
        )

    async def get_events(
        self,
        request_id: str | None = None,
        provider: str | None = None,
        limit: int = 1000,
    ) -> list[dict[str, Any]]:
        """
        Query stored events, oldest first.

        Args:
            request_id: Optional filter by request id
            provider: Optional filter by provider id
            limit: Maximum number of records to return
        """
        async with self.get_session() as session:
            query = select(TelemetryEventRecord).order_by(TelemetryEventRecord.id).limit(limit)
            if request_id:
                query = query.where(TelemetryEventRecord.request_id == request_id)
            if provider:
                query = query.where(TelemetryEventRecord.provider == provider)

            result = await session.execute(query)
            return [record.to_dict() for record in result.scalars().all()]

    async def clear(self) -> None:
        """Delete all stored events."""
        async with self.get_session() as session:
            await session.execute(delete(TelemetryEventRecord))
            await session.commit()

    async def close(self) -> None:
        """Close database connections gracefully."""
        await self.engine.dispose()
        self._initialized = False
