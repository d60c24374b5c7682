"""Text generation adapters and the time-bounded call wrapper.

``ChatTextGenerator`` adapts any :class:`LLMClient` to the narrow
``complete(system, prompt)`` contract.  ``bounded_complete`` runs a
generator under a deadline and degrades to a fallback value on timeout,
error, or empty output.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from branchtree.llm.client import extract_content
from branchtree.llm.errors import GenerationTimeoutError, LLMResponseError

if TYPE_CHECKING:
    from branchtree.llm.protocols import LLMClient, TextGenerator

logger = logging.getLogger(__name__)

# Generation threads that have not returned yet.  A worker leaves the set
# before it publishes its outcome.
_in_flight: set[threading.Thread] = set()
_in_flight_lock = threading.Lock()


class ChatTextGenerator:
    """TextGenerator backed by an arbitrary chat-completion client.

    Usage::

        generator = ChatTextGenerator(my_client, model="llama-3.1-8b")
        text = generator.complete("You write titles.", "Hello world")
    """

    def __init__(
        self,
        client: LLMClient,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def client(self) -> LLMClient:
        return self._client

    def complete(self, system: str, prompt: str) -> str:
        response = self._client.chat(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        return extract_content(response)

    def close(self) -> None:
        self._client.close()


@dataclass(frozen=True)
class Generation:
    """Result of a bounded generation call.

    Attributes:
        text: Generated text, or the fallback when degraded.
        degraded: True when the fallback was used.
        error: The failure that caused degradation, if any.
    """

    text: str
    degraded: bool = False
    error: BaseException | None = None


def generations_in_flight() -> int:
    """Number of generation calls still running, including timed-out ones."""
    with _in_flight_lock:
        return len(_in_flight)


def _start_worker(
    generator: TextGenerator, system: str, prompt: str
) -> queue.Queue[tuple[str | None, Exception | None]]:
    outcome: queue.Queue[tuple[str | None, Exception | None]] = queue.Queue(maxsize=1)

    def run() -> None:
        text: str | None = None
        error: Exception | None = None
        try:
            text = generator.complete(system, prompt)
        except Exception as exc:  # handed to the caller, which degrades
            error = exc
        finally:
            with _in_flight_lock:
                _in_flight.discard(threading.current_thread())
        outcome.put((text, error))

    # Daemon: an abandoned call must not hold the interpreter open at exit.
    worker = threading.Thread(target=run, name="branchtree-generate", daemon=True)
    with _in_flight_lock:
        _in_flight.add(worker)
    worker.start()
    return outcome


def bounded_complete(
    generator: TextGenerator | None,
    system: str,
    prompt: str,
    *,
    timeout: float,
    fallback: str,
) -> Generation:
    """Call *generator* with a deadline, never raising.

    The call runs on a daemon thread so a hung collaborator blocks neither
    the caller past *timeout* nor interpreter shutdown.  On timeout the
    thread is abandoned and counted by :func:`generations_in_flight` until
    it returns.

    Args:
        generator: The text generator, or None when none is configured.
        system: System instruction.
        prompt: User prompt.
        timeout: Seconds to wait for a result.
        fallback: Text returned when generation is unavailable.

    Returns:
        A :class:`Generation`; ``degraded`` is True when *fallback* was used.
    """
    if generator is None:
        logger.warning("No text generator configured; using fallback text")
        return Generation(text=fallback, degraded=True)

    outcome = _start_worker(generator, system, prompt)
    try:
        text, error = outcome.get(timeout=timeout)
    except queue.Empty:
        err = GenerationTimeoutError(timeout)
        logger.warning("%s; using fallback text", err)
        return Generation(text=fallback, degraded=True, error=err)

    if error is not None:
        logger.warning("Text generation failed: %s; using fallback text", error)
        return Generation(text=fallback, degraded=True, error=error)

    if not text or not text.strip():
        err = LLMResponseError("Text generation returned empty output")
        logger.warning("%s; using fallback text", err)
        return Generation(text=fallback, degraded=True, error=err)

    return Generation(text=text.strip())
