"""LLM provider adapters and the provider registry."""

from .anthropic_provider import AnthropicAdapter
from .base import (
    AuthenticationError,
    BaseAdapter,
    DispatchRequest,
    DispatchResponse,
    EmptyResponseError,
    ModelNotFoundError,
    ProviderCompletion,
    ProviderConfig,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TokenUsage,
)
from .gemini import GeminiAdapter
from .mock_provider import MockAdapter
from .openai_compatible import (
    GroqAdapter,
    OpenAICompatibleAdapter,
    OpenRouterAdapter,
    TogetherAdapter,
)
from .registry import (
    PROVIDER_FAMILIES,
    ProviderFamily,
    ProviderRegistry,
    RegistrationReport,
    RegistrationResult,
)

__all__ = [
    "BaseAdapter",
    "DispatchRequest",
    "DispatchResponse",
    "ProviderCompletion",
    "ProviderConfig",
    "TokenUsage",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "EmptyResponseError",
    "OpenAICompatibleAdapter",
    "OpenRouterAdapter",
    "GroqAdapter",
    "TogetherAdapter",
    "GeminiAdapter",
    "AnthropicAdapter",
    "MockAdapter",
    "PROVIDER_FAMILIES",
    "ProviderFamily",
    "ProviderRegistry",
    "RegistrationReport",
    "RegistrationResult",
]
