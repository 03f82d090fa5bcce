"""
Google Gemini adapter over the generateContent REST endpoint.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .base import (
    BaseAdapter,
    DispatchRequest,
    EmptyResponseError,
    ProviderCompletion,
    ProviderConfig,
    ProviderError,
    ProviderTimeoutError,
    error_for_status,
    usage_from_mapping,
)

logger = logging.getLogger(__name__)


class GeminiAdapter(BaseAdapter):
    """Gemini adapter. The system message travels as ``systemInstruction``."""

    family = "gemini"

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    def _build_payload(self, request: DispatchRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": self._temperature(request),
                "maxOutputTokens": self._max_tokens(request),
            },
        }
        if request.system_message:
            payload["systemInstruction"] = {"parts": [{"text": request.system_message}]}
        return payload

    async def call(
        self, config: ProviderConfig, model: str, request: DispatchRequest
    ) -> ProviderCompletion:
        url = f"{config.base_endpoint.rstrip('/')}/models/{model}:generateContent"
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": config.api_key(),
            **(config.headers or {}),
        }
        self._log_request(config, model, request)

        try:
            response = await self._get_client().post(
                url,
                json=self._build_payload(request),
                headers=headers,
                timeout=config.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"{config.label} request timed out after {config.timeout_seconds}s",
                provider=config.name,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Failed to connect to {config.label} API: {e}", provider=config.name
            ) from e

        if response.is_error:
            raise error_for_status(
                response.status_code,
                f"{config.label} API error: {self._error_message(response)}",
                config.name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{config.label} returned a malformed payload", provider=config.name
            ) from e

        content = self._extract_text(data)
        if not content:
            raise EmptyResponseError(f"{config.label} returned an empty completion", provider=config.name)

        usage = usage_from_mapping(
            data.get("usageMetadata"), "promptTokenCount", "candidatesTokenCount", "totalTokenCount"
        )
        return ProviderCompletion(content=content, tokens_used=usage)

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message") or response.text
        except ValueError:
            return response.text or response.reason_phrase

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
