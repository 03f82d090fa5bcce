"""
Adapters for providers that speak the OpenAI chat-completions protocol
(OpenRouter, Groq, Together AI).
"""

import logging
from typing import Dict, Optional

import httpx
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI

from .base import (
    BaseAdapter,
    DispatchRequest,
    EmptyResponseError,
    ProviderCompletion,
    ProviderConfig,
    ProviderError,
    ProviderTimeoutError,
    TokenUsage,
    build_messages,
    error_for_status,
)

logger = logging.getLogger(__name__)


class OpenAICompatibleAdapter(BaseAdapter):
    """Chat-completions adapter over the OpenAI SDK pointed at a custom base URL."""

    family = "openai_compatible"
    extra_headers: Dict[str, str] = {}

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None) -> None:
        """
        Args:
            http_client: Optional shared httpx client (tests pass one with a mock transport)
        """
        self._http_client = http_client
        self._clients: Dict[str, AsyncOpenAI] = {}

    def _get_client(self, config: ProviderConfig) -> AsyncOpenAI:
        client = self._clients.get(config.name)
        if client is None:
            headers = {**self.extra_headers, **(config.headers or {})}
            client = AsyncOpenAI(
                api_key=config.api_key(),
                base_url=config.base_endpoint,
                timeout=config.timeout_seconds,
                max_retries=0,  # fallback is the dispatcher's job
                default_headers=headers or None,
                http_client=self._http_client,
            )
            self._clients[config.name] = client
        return client

    async def call(
        self, config: ProviderConfig, model: str, request: DispatchRequest
    ) -> ProviderCompletion:
        client = self._get_client(config)
        self._log_request(config, model, request)

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=build_messages(request),
                temperature=self._temperature(request),
                max_tokens=self._max_tokens(request),
                stream=False,
            )
        except APITimeoutError as e:
            raise ProviderTimeoutError(
                f"{config.label} request timed out after {config.timeout_seconds}s",
                provider=config.name,
            ) from e
        except APIConnectionError as e:
            raise ProviderError(
                f"Failed to connect to {config.label} API", provider=config.name
            ) from e
        except APIStatusError as e:
            raise error_for_status(
                e.status_code, f"{config.label} API error: {e.message}", config.name
            ) from e
        except APIError as e:
            raise ProviderError(f"{config.label} API error: {e.message}", provider=config.name) from e

        if not response.choices:
            raise EmptyResponseError(f"{config.label} returned no choices", provider=config.name)

        message = response.choices[0].message
        content = message.content if message else None
        if not content or not content.strip():
            raise EmptyResponseError(f"{config.label} returned an empty completion", provider=config.name)

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt=response.usage.prompt_tokens,
                completion=response.usage.completion_tokens,
                total=response.usage.total_tokens,
            )

        return ProviderCompletion(content=content, tokens_used=usage)

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


class OpenRouterAdapter(OpenAICompatibleAdapter):
    """OpenRouter requires attribution headers on every request."""

    family = "openrouter"
    extra_headers = {
        "HTTP-Referer": "https://autvision.ai",
        "X-Title": "LLM Dispatcher",
    }


class GroqAdapter(OpenAICompatibleAdapter):
    family = "groq"


class TogetherAdapter(OpenAICompatibleAdapter):
    family = "together"
