"""Prometheus metrics for dispatch, provider attempts and the response cache."""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

NAMESPACE = "llm_dispatcher"

DISPATCH_REQUESTS = Counter(
    f"{NAMESPACE}_dispatch_requests_total",
    "Dispatch calls by outcome",
    ["outcome"],
)

PROVIDER_ATTEMPTS = Counter(
    f"{NAMESPACE}_provider_attempts_total",
    "Provider attempts by status",
    ["provider", "status"],
)

PROVIDER_LATENCY = Histogram(
    f"{NAMESPACE}_provider_latency_seconds",
    "Provider call latency",
    ["provider"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

CACHE_LOOKUPS = Counter(
    f"{NAMESPACE}_cache_lookups_total",
    "Response cache lookups",
    ["result"],
)

PROVIDER_ACTIVE = Gauge(
    f"{NAMESPACE}_provider_active",
    "Provider active flag (1=active, 0=inactive)",
    ["provider"],
)


def record_attempt(provider: str, success: bool, latency_ms: float) -> None:
    status = "success" if success else "failure"
    PROVIDER_ATTEMPTS.labels(provider=provider, status=status).inc()
    PROVIDER_LATENCY.labels(provider=provider).observe(latency_ms / 1000)


def record_dispatch(outcome: str) -> None:
    DISPATCH_REQUESTS.labels(outcome=outcome).inc()


def record_cache_lookup(hit: bool) -> None:
    CACHE_LOOKUPS.labels(result="hit" if hit else "miss").inc()


def set_provider_active(provider: str, active: bool) -> None:
    PROVIDER_ACTIVE.labels(provider=provider).set(1 if active else 0)


def export_metrics() -> tuple[bytes, str]:
    """Render the default registry in the Prometheus text format."""
    return generate_latest(), CONTENT_TYPE_LATEST
