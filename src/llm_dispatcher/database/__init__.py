"""Database module for the audit trail."""

from .models import Base, LLMExecutionLog
from .session import create_engine_for_url, create_session_factory, session_scope

__all__ = [
    "Base",
    "LLMExecutionLog",
    "create_engine_for_url",
    "create_session_factory",
    "session_scope",
]
