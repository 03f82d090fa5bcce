"""Server module for the HTTP API."""

from llm_dispatcher.server.main import create_app, start_server

__all__ = ["create_app", "start_server"]
