"""Text-generation protocols.

Defines the pluggable interfaces the core consumes: a chat-style LLM
client and the narrower ``complete(system, prompt)`` contract used by
merge summaries and branch titles.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LLMClient(Protocol):
    """Protocol for pluggable chat-completion clients.

    Any object with chat() and close() methods matching this signature works.
    The built-in OpenAIClient implements this protocol, as well as
    TextGenerator.
    """

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict:
        """Send messages, return response dict."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...


@runtime_checkable
class TextGenerator(Protocol):
    """Protocol for the text-completion collaborator.

    Fallible; callers are expected to bound it with a timeout
    (see :func:`branchtree.llm.generator.bounded_complete`).
    """

    def complete(self, system: str, prompt: str) -> str:
        """Return generated text for *prompt* under *system* instructions."""
        ...
