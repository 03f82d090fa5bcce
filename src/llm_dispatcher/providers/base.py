"""
Base adapter abstract class and common models for LLM providers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048


class DispatchRequest(BaseModel):
    """A single text-generation request handed to the dispatcher."""

    prompt: str = Field(..., min_length=1, description="User prompt")
    system_message: Optional[str] = Field(default=None, description="Optional system message")
    temperature: Optional[float] = Field(default=None, ge=0, le=2, description="Sampling temperature")
    max_tokens: Optional[int] = Field(default=None, ge=1, description="Maximum output tokens")
    model_key: Optional[str] = Field(default=None, description="Explicit model override")

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "prompt": "What is 2+2?",
                "system_message": "Answer with a single number.",
                "temperature": 0.7,
                "max_tokens": 64,
            }
        },
    )

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v

    def effective_temperature(self, default: float = DEFAULT_TEMPERATURE) -> float:
        return default if self.temperature is None else self.temperature

    def effective_max_tokens(self, default: int = DEFAULT_MAX_TOKENS) -> int:
        return self.max_tokens or default


class TokenUsage(BaseModel):
    """Token usage statistics. Every field is optional; providers report what they have."""

    prompt: Optional[int] = Field(default=None, description="Prompt tokens")
    completion: Optional[int] = Field(default=None, description="Completion tokens")
    total: Optional[int] = Field(default=None, description="Total tokens")


class ProviderCompletion(BaseModel):
    """What an adapter returns for one successful call."""

    content: str
    tokens_used: Optional[TokenUsage] = None


class DispatchResponse(BaseModel):
    """Structured result of a dispatch. Returned for success and for exhaustion alike."""

    response: str = Field(..., description="Completion text or the fallback message")
    provider: str = Field(..., description="Provider name, or 'fallback'")
    model_used: str = Field(..., description="Model identifier used")
    latency_ms: float = Field(default=0.0, description="End-to-end latency in milliseconds")
    tokens_used: Optional[TokenUsage] = Field(default=None, description="Token usage if reported")
    success: bool = Field(..., description="False in emergency mode")
    attempt_count: int = Field(default=0, ge=0, description="Providers tried, 1-based")
    cached: bool = Field(default=False, description="Served from the response cache")
    errors: List[str] = Field(default_factory=list, description="Provider errors seen")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "response": "4",
                "provider": "groq",
                "model_used": "llama-3.1-8b-instant",
                "latency_ms": 412.5,
                "tokens_used": {"prompt": 9, "completion": 3, "total": 12},
                "success": True,
                "attempt_count": 2,
                "cached": False,
                "errors": ["openrouter: request timed out after 30.0s"],
            }
        }
    )


class ProviderConfig(BaseModel):
    """Provider configuration. Only ``is_active`` changes after startup."""

    name: str = Field(..., description="Unique provider key")
    display_name: Optional[str] = Field(default=None, description="Human readable name")
    credential: Optional[SecretStr] = Field(default=None, description="API key")
    base_endpoint: str = Field(..., description="Base URL for the provider API")
    candidate_models: List[str] = Field(default_factory=list, description="Preferred model first")
    priority: int = Field(default=100, description="Lower is seeded earlier")
    timeout_ms: int = Field(default=30000, description="Per-call timeout in milliseconds")
    max_retries: int = Field(default=0, ge=0, description="Retry budget (informational)")
    default_latency_ms: float = Field(default=5000.0, description="Latency estimate before samples")
    headers: Optional[Dict[str, str]] = Field(default=None, description="Additional headers")
    is_active: bool = Field(default=True, description="Selectable for dispatch")

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def preferred_model(self) -> str:
        return self.candidate_models[0]

    def api_key(self) -> str:
        return self.credential.get_secret_value() if self.credential else ""


class ProviderError(Exception):
    """Base exception for provider-related errors."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict] = None,
        error_code: Optional[str] = None,
        retryable: bool = True,
    ):
        """
        Initialize provider error.

        Args:
            message: Error message
            provider: Provider name
            status_code: HTTP status code if applicable
            details: Additional error details
            error_code: Error code for categorization
            retryable: Whether another attempt could succeed
        """
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        self.retryable = retryable

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (status {self.status_code})"
        return self.message


class ProviderTimeoutError(ProviderError):
    """Request timeout error."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, provider=provider, error_code="timeout", **kwargs)


class RateLimitError(ProviderError):
    """Rate limit exceeded error."""

    def __init__(self, message: str, provider: Optional[str] = None, retry_after: Optional[int] = None, **kwargs):
        super().__init__(message, provider=provider, error_code="rate_limit", **kwargs)
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Authentication/API key error."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, provider=provider, error_code="authentication", retryable=False, **kwargs)


class ModelNotFoundError(ProviderError):
    """Model not found error."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, provider=provider, error_code="model_not_found", retryable=False, **kwargs)


class EmptyResponseError(ProviderError):
    """The upstream payload carried no completion text."""

    def __init__(self, message: str = "Empty response from provider", provider: Optional[str] = None, **kwargs):
        super().__init__(message, provider=provider, error_code="empty_response", **kwargs)


def build_messages(request: DispatchRequest) -> List[Dict[str, str]]:
    """Chat message list with the system message prepended as its own role."""
    messages = []
    if request.system_message:
        messages.append({"role": "system", "content": request.system_message})
    messages.append({"role": "user", "content": request.prompt})
    return messages


def error_for_status(status_code: int, message: str, provider: str) -> ProviderError:
    """Map an HTTP status to the matching provider error."""
    if status_code in (401, 403):
        return AuthenticationError(message, provider=provider, status_code=status_code)
    if status_code == 404:
        return ModelNotFoundError(message, provider=provider, status_code=status_code)
    if status_code == 429:
        return RateLimitError(message, provider=provider, status_code=status_code)
    if status_code in (408, 504):
        return ProviderTimeoutError(message, provider=provider, status_code=status_code)
    return ProviderError(
        message, provider=provider, status_code=status_code, retryable=status_code >= 500
    )


class BaseAdapter(ABC):
    """Translates a DispatchRequest into one provider family's wire format.

    An adapter performs exactly one network call per ``call`` and never
    retries; fallback across providers belongs to the dispatcher.
    """

    family: str = "base"
    default_temperature: float = DEFAULT_TEMPERATURE
    default_max_tokens: int = DEFAULT_MAX_TOKENS

    @abstractmethod
    async def call(
        self, config: ProviderConfig, model: str, request: DispatchRequest
    ) -> ProviderCompletion:
        """
        Issue one completion call.

        Args:
            config: Provider configuration (credential, endpoint, timeout)
            model: Model identifier to request
            request: The dispatch request

        Returns:
            ProviderCompletion: Completion text and best-effort token usage

        Raises:
            ProviderError: On timeout, non-2xx, malformed or empty payloads
        """

    async def aclose(self) -> None:
        """Release any HTTP resources held by the adapter."""
        return None

    def _temperature(self, request: DispatchRequest) -> float:
        return request.effective_temperature(self.default_temperature)

    def _max_tokens(self, request: DispatchRequest) -> int:
        return request.effective_max_tokens(self.default_max_tokens)

    def _log_request(self, config: ProviderConfig, model: str, request: DispatchRequest) -> None:
        logger.debug(
            f"Provider {config.name} request",
            extra={
                "provider": config.name,
                "model": model,
                "has_system_message": bool(request.system_message),
                "temperature": self._temperature(request),
                "max_tokens": self._max_tokens(request),
            },
        )


def usage_from_mapping(usage: Optional[Dict[str, Any]], prompt_key: str, completion_key: str, total_key: Optional[str] = None) -> Optional[TokenUsage]:
    """Build TokenUsage from a raw usage mapping, or None when nothing was reported."""
    if not usage:
        return None
    prompt = usage.get(prompt_key)
    completion = usage.get(completion_key)
    total = usage.get(total_key) if total_key else None
    if total is None and prompt is not None and completion is not None:
        total = prompt + completion
    if prompt is None and completion is None and total is None:
        return None
    return TokenUsage(prompt=prompt, completion=completion, total=total)
