"""BranchTree: branching conversation trees with fork and merge.

Conversations are trees of messages.  Any message can be forked into a
new branch, and a branch can be folded back into its parent as a
generated summary.
"""

from branchtree._version import __version__

# Core entry point
from branchtree.forest import Forest

# Models
from branchtree.models.branch import BranchInfo, BranchNode
from branchtree.models.config import ForestConfig, LineageStrategy
from branchtree.models.merge import MergeResult
from branchtree.models.message import HistoryEntry, MessageInfo, MessageRole, SiblingSet

# Exceptions
from branchtree.exceptions import (
    AlreadyMergedError,
    BranchNotFoundError,
    BranchTreeError,
    EmptyBranchError,
    IntegrityViolationError,
    InvalidBranchNameError,
    InvalidOperationError,
    MessageNotFoundError,
    NotFoundError,
    TopLevelMergeError,
)

# Text generation
from branchtree.llm import (
    ChatTextGenerator,
    ClientSettings,
    GenerationTimeoutError,
    LLMClient,
    LLMClientError,
    OpenAIClient,
    TextGenerator,
)

__all__ = [
    "__version__",
    "Forest",
    "BranchInfo",
    "BranchNode",
    "ForestConfig",
    "LineageStrategy",
    "MergeResult",
    "HistoryEntry",
    "MessageInfo",
    "MessageRole",
    "SiblingSet",
    "AlreadyMergedError",
    "BranchNotFoundError",
    "BranchTreeError",
    "EmptyBranchError",
    "IntegrityViolationError",
    "InvalidBranchNameError",
    "InvalidOperationError",
    "MessageNotFoundError",
    "NotFoundError",
    "TopLevelMergeError",
    "ChatTextGenerator",
    "GenerationTimeoutError",
    "LLMClient",
    "LLMClientError",
    "ClientSettings",
    "OpenAIClient",
    "TextGenerator",
]
