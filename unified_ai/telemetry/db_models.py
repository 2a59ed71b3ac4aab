"""
Unified AI - Telemetry Database Models

SQLAlchemy models for persisted telemetry events.
"""

import json
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Float, Index, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""

    pass


class TelemetryEventRecord(Base):
    """
    One request lifecycle event.

    kind is one of 'request', 'response', 'error'; nullable columns are only
    filled for the kinds they apply to.
    """

    __tablename__ = "telemetry_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    request_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    provider: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    operation: Mapped[str | None] = mapped_column(String(32), nullable=True)
    latency_ms: Mapped[float | None] = mapped_column(Float, nullable=True)
    tokens_used: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="{}")  # JSON string
    timestamp: Mapped[datetime] = mapped_column(nullable=False, index=True, default=lambda: datetime.now(UTC))

    __table_args__ = (Index("idx_telemetry_provider_timestamp", "provider", "timestamp"),)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "kind": self.kind,
            "request_id": self.request_id,
            "provider": self.provider,
            "operation": self.operation,
            "latency_ms": self.latency_ms,
            "tokens_used": self.tokens_used,
            "error_code": self.error_code,
            "payload": json.loads(self.payload) if self.payload else {},
            "timestamp": self.timestamp.isoformat(),
        }
