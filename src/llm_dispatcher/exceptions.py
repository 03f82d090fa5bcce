"""Custom exceptions for the LLM dispatcher."""

from typing import Optional, Dict, Any


class DispatcherException(Exception):
    """Base exception for the LLM dispatcher."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}


class ValidationException(DispatcherException):
    """Malformed dispatch request. Raised before any provider is contacted."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="VALIDATION_ERROR", status_code=400, **kwargs)
        self.field = field
        if field:
            self.details["field"] = field


class ProviderNotFoundException(DispatcherException):
    """Administrative operation referenced an unknown provider."""

    def __init__(self, provider: str, **kwargs):
        super().__init__(
            f"Provider '{provider}' is not registered",
            error_code="PROVIDER_NOT_FOUND",
            status_code=404,
            **kwargs,
        )
        self.provider = provider
        self.details["provider"] = provider


__all__ = [
    "DispatcherException",
    "ValidationException",
    "ProviderNotFoundException",
]
