"""Multi-provider dispatch with caching, ordered fallback and reliability tracking."""

import asyncio
import time
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from pydantic import ValidationError

from llm_dispatcher.audit import AuditSink, NullAuditSink, build_audit_sink, prompt_preview
from llm_dispatcher.cache import ResponseCache, fingerprint_for
from llm_dispatcher.config.settings import Settings, get_settings
from llm_dispatcher.exceptions import ProviderNotFoundException, ValidationException
from llm_dispatcher.providers.base import (
    BaseAdapter,
    DispatchRequest,
    DispatchResponse,
    ProviderCompletion,
    ProviderConfig,
    ProviderError,
    ProviderTimeoutError,
)
from llm_dispatcher.providers.registry import (
    ProviderFamily,
    ProviderRegistry,
    RegistrationReport,
    RegistrationResult,
)
from llm_dispatcher.telemetry import metrics
from llm_dispatcher.telemetry.logger import get_logger

from .health import HealthProber
from .tracker import ReliabilityStats, ReliabilityTracker

logger = get_logger(__name__)

FALLBACK_PROVIDER = "fallback"
FALLBACK_MODEL = "emergency-mode"
FALLBACK_MESSAGE = (
    "All AI providers are temporarily unavailable. Please try again in a few moments."
)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class Dispatcher:
    """Routes a request across registered providers until one answers.

    Per call: cache lookup, then the active providers ordered by
    ``success_rate - avg_latency_ms / 100`` (ties keep registration order),
    tried one at a time. The first success is cached and returned. When
    every provider fails the caller gets a fallback response; exhaustion is
    never raised.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ProviderRegistry] = None,
        cache: Optional[ResponseCache] = None,
        audit_sink: Optional[AuditSink] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or ProviderRegistry()
        self.tracker = ReliabilityTracker(
            self.registry,
            deactivation_success_rate=self.settings.deactivation_success_rate,
            deactivation_min_requests=self.settings.deactivation_min_requests,
        )
        self.cache = cache or ResponseCache(ttl_seconds=self.settings.cache_ttl_seconds)
        self.audit_sink = audit_sink or NullAuditSink()
        self.prober = HealthProber(
            self.registry,
            self.tracker,
            interval_seconds=self.settings.health_check_interval_seconds,
        )
        self.registration_report = RegistrationReport()
        self._audit_tasks: Set[asyncio.Task] = set()

        for config in self.registry.configs():
            self.tracker.seed(config)

    @classmethod
    def initialize(
        cls,
        settings: Optional[Settings] = None,
        audit_sink: Optional[AuditSink] = None,
        families: Optional[Tuple[ProviderFamily, ...]] = None,
    ) -> "Dispatcher":
        """Build a dispatcher and register every configured provider family."""
        settings = settings or get_settings()
        dispatcher = cls(
            settings=settings,
            audit_sink=audit_sink if audit_sink is not None else build_audit_sink(settings),
        )
        dispatcher.registration_report = dispatcher.registry.initialize(settings, families)
        for config in dispatcher.registry.configs():
            dispatcher.tracker.seed(config)

        if not len(dispatcher.registry):
            logger.warning("no_providers_registered", rejected=dispatcher.registration_report.to_dict()["rejected"])
        return dispatcher

    def register_provider(self, config: ProviderConfig, adapter: BaseAdapter) -> RegistrationResult:
        result = self.registry.register_provider(config, adapter)
        if result.admitted:
            self.tracker.seed(config)
        self.registration_report.add(result)
        return result

    # Dispatch

    async def dispatch(self, request: Union[DispatchRequest, Mapping]) -> DispatchResponse:
        request = self._with_defaults(self._coerce_request(request))
        started = time.perf_counter()

        fingerprint = fingerprint_for(request, self.settings.default_temperature)

        cached = self.cache.get(fingerprint)
        if cached is not None:
            metrics.record_dispatch("cache_hit")
            logger.debug("dispatch_cache_hit", provider=cached.provider)
            return cached.model_copy(
                update={"cached": True, "latency_ms": _elapsed_ms(started)}, deep=True
            )

        ordered = self.ordered_providers()
        if not ordered:
            logger.warning("dispatch_no_active_providers", registered=len(self.registry))
            return self._fallback(started, attempts=0, errors=[])

        preview = prompt_preview(request.prompt, self.settings.prompt_preview_length)
        errors: List[str] = []

        for attempt, config in enumerate(ordered, start=1):
            adapter = self.registry.get_adapter(config.name)
            model = request.model_key or config.preferred_model
            attempt_started = time.perf_counter()

            try:
                completion = await self._call(adapter, config, model, request)
            except ProviderError as e:
                latency_ms = _elapsed_ms(attempt_started)
                self.tracker.record_outcome(config.name, False, latency_ms)
                metrics.record_attempt(config.name, False, latency_ms)
                errors.append(f"{config.name}: {e}")
                logger.warning(
                    "provider_attempt_failed",
                    provider=config.name,
                    model=model,
                    attempt=attempt,
                    error=str(e),
                    error_code=e.error_code,
                    retryable=e.retryable,
                )
                self._emit_audit(config.name, model, False, latency_ms, None, preview)
                continue

            latency_ms = _elapsed_ms(attempt_started)
            self.tracker.record_outcome(config.name, True, latency_ms)
            metrics.record_attempt(config.name, True, latency_ms)

            response = DispatchResponse(
                response=completion.content,
                provider=config.name,
                model_used=model,
                latency_ms=_elapsed_ms(started),
                tokens_used=completion.tokens_used,
                success=True,
                attempt_count=attempt,
                cached=False,
                errors=errors,
            )
            self._store(fingerprint, response)

            token_count = completion.tokens_used.total if completion.tokens_used else None
            self._emit_audit(config.name, model, True, latency_ms, token_count, preview)
            metrics.record_dispatch("success")
            logger.info(
                "dispatch_succeeded",
                provider=config.name,
                model=model,
                attempt_count=attempt,
                latency_ms=round(response.latency_ms, 2),
            )
            return response

        return self._fallback(started, attempts=len(ordered), errors=errors)

    def ordered_providers(self) -> List[ProviderConfig]:
        """Active providers, best score first. ``sorted`` is stable."""
        active = self.registry.active_configs()
        return sorted(active, key=lambda config: -self.tracker.score(config.name))

    async def _call(
        self, adapter: BaseAdapter, config: ProviderConfig, model: str, request: DispatchRequest
    ) -> ProviderCompletion:
        try:
            return await asyncio.wait_for(
                adapter.call(config, model, request), timeout=config.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"request timed out after {config.timeout_seconds}s", provider=config.name
            ) from e
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Unexpected provider error: {e}",
                provider=config.name,
                error_code="unexpected_error",
            ) from e

    def _coerce_request(self, request: Any) -> DispatchRequest:
        if isinstance(request, Mapping):
            try:
                request = DispatchRequest.model_validate(dict(request))
            except ValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(part) for part in first.get("loc", ())) or None
                raise ValidationException(first.get("msg", "invalid request"), field=field) from e
        elif not isinstance(request, DispatchRequest):
            raise ValidationException("request must be a DispatchRequest or a mapping")

        # model_construct skips validation
        if not isinstance(request.prompt, str) or not request.prompt.strip():
            raise ValidationException("prompt must not be empty", field="prompt")
        if request.temperature is not None and not 0 <= request.temperature <= 2:
            raise ValidationException("temperature must be between 0 and 2", field="temperature")
        if request.max_tokens is not None and request.max_tokens < 1:
            raise ValidationException("max_tokens must be at least 1", field="max_tokens")
        return request

    def _with_defaults(self, request: DispatchRequest) -> DispatchRequest:
        """Fill unset generation settings from configuration before adapters see them."""
        updates = {}
        if request.temperature is None:
            updates["temperature"] = self.settings.default_temperature
        if request.max_tokens is None:
            updates["max_tokens"] = self.settings.default_max_tokens
        return request.model_copy(update=updates) if updates else request

    def _store(self, fingerprint: str, response: DispatchResponse) -> None:
        try:
            self.cache.put(fingerprint, response.model_copy(deep=True))
        except Exception as e:
            logger.warning("cache_store_failed", error=str(e))

    def _fallback(self, started: float, attempts: int, errors: List[str]) -> DispatchResponse:
        metrics.record_dispatch("fallback")
        logger.error("dispatch_exhausted", attempts=attempts, errors=errors)
        return DispatchResponse(
            response=FALLBACK_MESSAGE,
            provider=FALLBACK_PROVIDER,
            model_used=FALLBACK_MODEL,
            latency_ms=_elapsed_ms(started),
            tokens_used=None,
            success=False,
            attempt_count=attempts,
            cached=False,
            errors=errors,
        )

    # Audit

    def _emit_audit(
        self,
        provider_name: str,
        model: str,
        success: bool,
        latency_ms: float,
        token_count: Optional[int],
        preview: str,
    ) -> None:
        task = asyncio.create_task(
            self._record_audit(provider_name, model, success, latency_ms, token_count, preview)
        )
        self._audit_tasks.add(task)
        task.add_done_callback(self._audit_tasks.discard)

    async def _record_audit(self, *args) -> None:
        try:
            await self.audit_sink.record(*args)
        except Exception as e:
            logger.warning("audit_record_failed", sink=type(self.audit_sink).__name__, error=str(e))

    async def drain_audit(self) -> None:
        """Wait for every pending audit write."""
        while self._audit_tasks:
            await asyncio.gather(*list(self._audit_tasks), return_exceptions=True)

    # Administration

    def get_provider_stats(self) -> List[ReliabilityStats]:
        return self.tracker.snapshot()

    def get_provider_status(self) -> List[Dict[str, Any]]:
        status = []
        for config in self.registry.configs():
            stats = self.tracker.get(config.name)
            status.append(
                {
                    "name": config.name,
                    "display_name": config.label,
                    "is_active": config.is_active,
                    "priority": config.priority,
                    "models_available": list(config.candidate_models),
                    "score": round(stats.score, 2) if stats else None,
                    "last_tested_at": stats.last_tested_at.isoformat()
                    if stats and stats.last_tested_at
                    else None,
                }
            )
        return status

    async def force_refresh(self) -> Dict[str, bool]:
        """Clear the cache, reset statistics and probe every provider now."""
        self.cache.clear()
        self.tracker.reset()
        results = await self.prober.probe_all()
        logger.info("providers_refreshed", results=results)
        return results

    def set_provider_active(self, name: str, active: bool) -> ProviderConfig:
        if not self.registry.set_active(name, active):
            raise ProviderNotFoundException(name)
        logger.info("provider_toggled", provider=name, is_active=active)
        return self.registry.get(name)

    # Lifecycle

    def start(self) -> None:
        if self.settings.health_check_enabled and len(self.registry):
            self.prober.start()

    async def aclose(self) -> None:
        await self.prober.stop()
        await self.drain_audit()
        for adapter in self.registry.adapters():
            try:
                await adapter.aclose()
            except Exception as e:
                logger.warning("adapter_close_failed", adapter=type(adapter).__name__, error=str(e))
        await self.audit_sink.close()
