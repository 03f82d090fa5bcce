"""Telemetry module for logging and metrics."""

from llm_dispatcher.telemetry.logger import audit_log, get_logger, setup_logging

__all__ = ["get_logger", "setup_logging", "audit_log"]
