"""
Audit sinks recording one entry per provider attempt.

Sinks are best-effort: the dispatcher fires them without awaiting the
result, and a failing sink only produces a warning.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy import Engine

from llm_dispatcher.config.settings import Settings
from llm_dispatcher.database import (
    Base,
    LLMExecutionLog,
    create_engine_for_url,
    create_session_factory,
    session_scope,
)
from llm_dispatcher.telemetry.logger import audit_log, get_logger

logger = get_logger(__name__)

PROMPT_PREVIEW_LENGTH = 100


@dataclass
class AuditEntry:
    provider_name: str
    model: str
    success: bool
    latency_ms: float
    token_count: Optional[int]
    prompt_preview: str

    def to_dict(self) -> dict:
        return asdict(self)


def prompt_preview(prompt: str, length: int = PROMPT_PREVIEW_LENGTH) -> str:
    return prompt[:length]


class AuditSink(ABC):
    """Destination for per-attempt audit entries."""

    @abstractmethod
    async def record(
        self,
        provider_name: str,
        model: str,
        success: bool,
        latency_ms: float,
        token_count: Optional[int],
        prompt_preview: str,
    ) -> None:
        """Persist one entry."""

    async def close(self) -> None:
        return None


class NullAuditSink(AuditSink):
    """Discards every entry."""

    async def record(self, provider_name, model, success, latency_ms, token_count, prompt_preview) -> None:
        return None


class LoggingAuditSink(AuditSink):
    """Writes entries as structured ``audit_event`` log lines."""

    async def record(self, provider_name, model, success, latency_ms, token_count, prompt_preview) -> None:
        audit_log(
            action="llm_execution",
            resource=provider_name,
            result="success" if success else "failure",
            metadata=AuditEntry(
                provider_name=provider_name,
                model=model,
                success=success,
                latency_ms=round(latency_ms, 2),
                token_count=token_count,
                prompt_preview=prompt_preview,
            ).to_dict(),
        )


class DatabaseAuditSink(AuditSink):
    """Inserts ``llm_execution_log`` rows through SQLAlchemy.

    The synchronous insert runs in a worker thread. The table is created on
    first use.
    """

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None and not database_url:
            raise ValueError("DatabaseAuditSink needs a database_url or an engine")
        self.engine = engine or create_engine_for_url(database_url)
        self._session_factory = create_session_factory(self.engine)
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    def _ensure_schema(self) -> None:
        with self._schema_lock:
            if not self._schema_ready:
                Base.metadata.create_all(self.engine, tables=[LLMExecutionLog.__table__])
                self._schema_ready = True

    def _insert(self, entry: AuditEntry) -> None:
        self._ensure_schema()
        with session_scope(self._session_factory) as db:
            db.add(
                LLMExecutionLog(
                    provider=entry.provider_name,
                    model=entry.model,
                    success=entry.success,
                    latency_ms=entry.latency_ms,
                    tokens=entry.token_count,
                    prompt_preview=entry.prompt_preview,
                )
            )
            db.commit()

    async def record(self, provider_name, model, success, latency_ms, token_count, prompt_preview) -> None:
        entry = AuditEntry(
            provider_name=provider_name,
            model=model,
            success=success,
            latency_ms=latency_ms,
            token_count=token_count,
            prompt_preview=prompt_preview,
        )
        await asyncio.to_thread(self._insert, entry)

    def recent(self, limit: int = 50) -> list[dict]:
        """Most recent rows first."""
        self._ensure_schema()
        with session_scope(self._session_factory) as db:
            rows = (
                db.query(LLMExecutionLog)
                .order_by(LLMExecutionLog.id.desc())
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]

    async def close(self) -> None:
        await asyncio.to_thread(self.engine.dispose)


def build_audit_sink(settings: Settings) -> AuditSink:
    """Pick the sink the settings ask for."""
    if not settings.audit_enabled:
        return NullAuditSink()
    if settings.has_database:
        logger.info("audit_sink_selected", sink="database")
        return DatabaseAuditSink(settings.database_url)
    logger.info("audit_sink_selected", sink="logging")
    return LoggingAuditSink()
