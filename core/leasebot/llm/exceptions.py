"""Exceptions for LLM providers."""

from __future__ import annotations


class LLMError(RuntimeError):
    """Base exception for all LLM provider errors."""

    #: HTTP status reported to the chat caller when this error ends a request.
    http_status: int = 500


class LLMConfigError(LLMError):
    """Raised when configuration is missing or invalid."""


class LLMProviderError(LLMError):
    """Raised for provider-specific unexpected errors.

    Attributes:
        status_code: Upstream HTTP status, when the failure was a non-success response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMAuthError(LLMProviderError):
    """Raised when the provider rejects the credential."""

    http_status = 401


class LLMRateLimitError(LLMProviderError):
    """Raised when a provider rate-limits requests."""

    http_status = 429


class LLMTimeoutError(LLMProviderError):
    """Raised on request timeouts."""
