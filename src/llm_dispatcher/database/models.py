"""Database models for the dispatcher audit trail."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LLMExecutionLog(Base):
    """One row per provider attempt."""

    __tablename__ = "llm_execution_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider = Column(String(64), nullable=False, index=True)
    model = Column(String(255), nullable=False)
    success = Column(Boolean, nullable=False)
    latency_ms = Column(Float, nullable=False)
    tokens = Column(Integer, nullable=True)
    prompt_preview = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "provider": self.provider,
            "model": self.model,
            "success": self.success,
            "latency_ms": self.latency_ms,
            "tokens": self.tokens,
            "prompt_preview": self.prompt_preview,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
