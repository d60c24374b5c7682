"""LLM-specific error hierarchy.

All LLM errors inherit from BranchTreeError for consistent exception handling.
Inside merge and title generation they are caught and downgraded to
fallback values.
"""

from __future__ import annotations

from branchtree.exceptions import BranchTreeError


class LLMClientError(BranchTreeError):
    """Base for all text-generation failures."""


class LLMConfigError(LLMClientError):
    """Missing or invalid LLM configuration (e.g., no API key)."""


class LLMRateLimitError(LLMClientError):
    """Rate limited by the API (429).

    Attributes:
        retry_after: Seconds to wait before retrying (from Retry-After header),
            or None if not provided.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMAuthError(LLMClientError):
    """Authentication failed (401/403)."""


class LLMResponseError(LLMClientError):
    """Unexpected response format from LLM API."""


class GenerationTimeoutError(LLMClientError):
    """Text generation did not finish within its time bound."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Text generation timed out after {timeout}s")
