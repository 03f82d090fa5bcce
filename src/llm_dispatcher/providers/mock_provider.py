"""Mock adapter for local development and tests."""

import asyncio
from collections.abc import Callable, Iterable
from typing import Optional, Union

from .base import (
    BaseAdapter,
    DispatchRequest,
    ProviderCompletion,
    ProviderConfig,
    TokenUsage,
)

Outcome = Union[str, ProviderCompletion, BaseException]


class MockAdapter(BaseAdapter):
    """In-process adapter without real API calls.

    By default it echoes the prompt. ``outcomes`` scripts successive calls:
    a string or ProviderCompletion is returned, an exception is raised. Once
    the script runs out the last outcome repeats.
    """

    family = "mock"

    def __init__(
        self,
        outcomes: Optional[Iterable[Outcome]] = None,
        delay: float = 0.0,
        responder: Optional[Callable[[DispatchRequest], Outcome]] = None,
    ):
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.responder = responder
        self.calls: list[tuple[str, str, DispatchRequest]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def _next_outcome(self, request: DispatchRequest) -> Outcome:
        if self.responder is not None:
            return self.responder(request)
        if not self.outcomes:
            return ProviderCompletion(
                content=f"Mock response to: {request.prompt}",
                tokens_used=TokenUsage(prompt=10, completion=15, total=25),
            )
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]

    async def call(
        self, config: ProviderConfig, model: str, request: DispatchRequest
    ) -> ProviderCompletion:
        self.calls.append((config.name, model, request))
        if self.delay:
            await asyncio.sleep(self.delay)

        outcome = self._next_outcome(request)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, ProviderCompletion):
            return outcome
        return ProviderCompletion(content=outcome)
