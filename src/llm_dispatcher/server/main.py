"""FastAPI application factory and server entry point."""

import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from llm_dispatcher import __version__
from llm_dispatcher.api.routes import router as llm_router
from llm_dispatcher.config.settings import Settings, get_settings
from llm_dispatcher.exceptions import DispatcherException
from llm_dispatcher.orchestrator.dispatcher import Dispatcher
from llm_dispatcher.telemetry.logger import RequestContext, get_logger
from llm_dispatcher.telemetry.metrics import export_metrics

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request ID to the logging context and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        with RequestContext(request_id):
            start_time = time.time()
            response = await call_next(request)
            process_time = time.time() - start_time

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = str(process_time)

            logger.info(
                "request_processed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                process_time=round(process_time, 4),
            )
        return response


def _error_body(message: str, code: str, details: Optional[dict] = None) -> dict:
    body = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return body


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the dispatcher if none was injected, run the prober, clean up."""
    settings: Settings = app.state.settings
    logger.info("dispatcher_starting", version=__version__, environment=settings.environment)

    if app.state.dispatcher is None:
        app.state.dispatcher = Dispatcher.initialize(settings)
    dispatcher: Dispatcher = app.state.dispatcher
    dispatcher.start()

    yield

    logger.info("dispatcher_stopping")
    await dispatcher.aclose()


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[Dispatcher] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Multi-provider LLM dispatch with caching, fallback and reliability tracking",
        version=__version__,
        redoc_url=None if settings.is_production else "/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(DispatcherException)
    async def dispatcher_exception_handler(request: Request, exc: DispatcherException):
        logger.warning(
            "request_rejected",
            path=request.url.path,
            code=exc.error_code,
            error=exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.error_code, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(
                first.get("msg", "Invalid request"),
                "VALIDATION_ERROR",
                {"field": field} if field else None,
            ),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("unexpected_error", path=request.url.path, error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error", "INTERNAL_ERROR"),
        )

    app.include_router(llm_router)

    @app.get("/health")
    async def health(request: Request):
        """Liveness plus a summary of provider availability."""
        current: Optional[Dispatcher] = request.app.state.dispatcher
        active = len(current.registry.active_configs()) if current else 0
        registered = len(current.registry) if current else 0
        return {
            "status": "healthy" if active else "degraded",
            "version": __version__,
            "service": "llm-dispatcher",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
            "providers": {"registered": registered, "active": active},
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus scrape endpoint."""
        payload, content_type = export_metrics()
        return Response(content=payload, media_type=content_type)

    return app


def start_server(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False):
    """Start the server programmatically."""
    settings = get_settings()
    uvicorn.run(
        "llm_dispatcher.server.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
        reload=reload,
        access_log=settings.is_development,
    )


if __name__ == "__main__":
    start_server()
