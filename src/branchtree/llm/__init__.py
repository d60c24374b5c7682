"""Text-generation infrastructure for BranchTree.

Provides an OpenAI-compatible HTTP client, the pluggable LLMClient and
TextGenerator protocols, and a time-bounded generation wrapper.
"""

from branchtree.llm.client import ClientSettings, OpenAIClient, extract_content
from branchtree.llm.errors import (
    GenerationTimeoutError,
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from branchtree.llm.generator import (
    ChatTextGenerator,
    Generation,
    bounded_complete,
    generations_in_flight,
)
from branchtree.llm.protocols import LLMClient, TextGenerator

__all__ = [
    "ChatTextGenerator",
    "ClientSettings",
    "Generation",
    "GenerationTimeoutError",
    "LLMAuthError",
    "LLMClient",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMResponseError",
    "OpenAIClient",
    "TextGenerator",
    "bounded_complete",
    "extract_content",
    "generations_in_flight",
]
