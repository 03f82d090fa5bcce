"""
Anthropic adapter over the Messages API.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from anthropic import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncAnthropic

from .base import (
    BaseAdapter,
    DispatchRequest,
    EmptyResponseError,
    ProviderCompletion,
    ProviderConfig,
    ProviderError,
    ProviderTimeoutError,
    TokenUsage,
    error_for_status,
)

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseAdapter):
    """Anthropic adapter. Anthropic expects the system message as a separate parameter."""

    family = "anthropic"

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self._http_client = http_client
        self._clients: Dict[str, AsyncAnthropic] = {}

    def _get_client(self, config: ProviderConfig) -> AsyncAnthropic:
        client = self._clients.get(config.name)
        if client is None:
            client = AsyncAnthropic(
                api_key=config.api_key(),
                base_url=config.base_endpoint,
                timeout=config.timeout_seconds,
                max_retries=0,
                default_headers=config.headers,
                http_client=self._http_client,
            )
            self._clients[config.name] = client
        return client

    async def call(
        self, config: ProviderConfig, model: str, request: DispatchRequest
    ) -> ProviderCompletion:
        client = self._get_client(config)
        self._log_request(config, model, request)

        request_params: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": request.prompt}],
            # Anthropic caps temperature at 1.0
            "temperature": min(self._temperature(request), 1.0),
            "max_tokens": self._max_tokens(request),
        }
        if request.system_message:
            request_params["system"] = request.system_message

        try:
            response = await client.messages.create(**request_params)
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

        content = "".join(
            getattr(block, "text", "") for block in (response.content or [])
            if getattr(block, "type", None) == "text"
        )
        if not content.strip():
            raise EmptyResponseError(f"{config.label} returned an empty completion", provider=config.name)

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt=response.usage.input_tokens,
                completion=response.usage.output_tokens,
                total=response.usage.input_tokens + response.usage.output_tokens,
            )

        return ProviderCompletion(content=content, tokens_used=usage)

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
