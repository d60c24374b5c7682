"""OpenAI-compatible completion client used for merge summaries and titles.

``OpenAIClient`` speaks the ``/chat/completions`` wire format over httpx,
retries transient failures with tenacity, and implements both the
:class:`LLMClient` and :class:`TextGenerator` protocols, so it can be handed
straight to :meth:`Forest.configure_generator`.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx
import tenacity
from pydantic import BaseModel, Field

from branchtree.llm.errors import (
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "BRANCHTREE_OPENAI_"

_TRANSIENT_STATUS = frozenset({429, 500, 502, 503, 504})
_AUTH_STATUS = frozenset({401, 403})


class ClientSettings(BaseModel):
    """Connection and sampling settings for :class:`OpenAIClient`."""

    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    timeout: float = Field(default=20.0, gt=0)
    max_attempts: int = Field(default=3, gt=0)
    temperature: Optional[float] = 0.3
    max_tokens: Optional[int] = 512

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientSettings:
        """Build settings from ``BRANCHTREE_OPENAI_*`` variables.

        Explicit non-None *overrides* win over the environment.
        """
        values: dict[str, Any] = {}
        for field in ("api_key", "base_url", "model"):
            env_value = os.environ.get(f"{ENV_PREFIX}{field.upper()}")
            if env_value:
                values[field] = env_value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def extract_content(response: dict) -> str:
    """Return the first choice's message text; a null content becomes ``""``.

    Raises:
        LLMResponseError: If the response has no usable first choice.
    """
    try:
        return response["choices"][0]["message"].get("content") or ""
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise LLMResponseError(f"Cannot extract content from response: {exc!r}") from exc


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, LLMAuthError):
        return False
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUS
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _check_response(response: httpx.Response) -> dict:
    """Map an HTTP response onto the LLM error hierarchy, returning its JSON."""
    status = response.status_code
    if status in _AUTH_STATUS:
        raise LLMAuthError(f"Authentication failed: HTTP {status}")
    if status == 429:
        raise LLMRateLimitError("Rate limited: HTTP 429", retry_after=_retry_after(response))
    response.raise_for_status()

    data = response.json()
    if not isinstance(data, dict) or "choices" not in data:
        raise LLMResponseError("Unexpected response format: missing 'choices' key")
    return data


class OpenAIClient:
    """Sync httpx client for OpenAI-compatible completion endpoints.

    Transient failures (429, 5xx, connection errors) are retried with
    exponential backoff up to ``max_attempts``; authentication failures
    are raised at once.

    Usage::

        with OpenAIClient(api_key="sk-...") as client:
            summary = client.complete("Summarize.", "USER: hi\\nASSISTANT: hello")
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if settings is None:
            settings = ClientSettings.from_env(api_key=api_key, base_url=base_url, model=model)
        if not settings.api_key:
            raise LLMConfigError(
                f"No API key provided. Pass api_key= or set {ENV_PREFIX}API_KEY."
            )
        self._settings = settings
        self._endpoint = f"{settings.base_url.rstrip('/')}/chat/completions"
        self._http = httpx.Client(
            timeout=settings.timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {settings.api_key}"},
        )

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def closed(self) -> bool:
        return self._http.is_closed

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict:
        """POST a chat completion, retrying transient failures.

        Unset sampling arguments fall back to the client settings.

        Raises:
            LLMAuthError: On 401/403.
            LLMRateLimitError: On 429 once attempts are exhausted.
            LLMResponseError: When the body has no ``choices``.
            httpx.HTTPStatusError: On other HTTP errors.
        """
        payload: dict[str, Any] = {
            "model": model or self._settings.model,
            "messages": messages,
            **kwargs,
        }
        if temperature is None:
            temperature = self._settings.temperature
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is None:
            max_tokens = self._settings.max_tokens
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_exception(_is_transient),
            wait=tenacity.wait_exponential(multiplier=1, min=1, max=20) + tenacity.wait_random(0, 1),
            stop=tenacity.stop_after_attempt(self._settings.max_attempts),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retryer(self._post, payload)

    def _post(self, payload: dict[str, Any]) -> dict:
        logger.debug("POST %s model=%s", self._endpoint, payload["model"])
        return _check_response(self._http.post(self._endpoint, json=payload))

    def complete(self, system: str, prompt: str) -> str:
        """Run one system + user exchange and return the reply text."""
        response = self.chat(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ]
        )
        return extract_content(response)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> OpenAIClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
