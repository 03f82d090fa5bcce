"""HTTP API for the dispatcher."""

from llm_dispatcher.api.routes import get_dispatcher, router

__all__ = ["router", "get_dispatcher"]
