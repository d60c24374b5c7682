"""Domain models for BranchTree."""

from branchtree.models.branch import BranchInfo, BranchNode
from branchtree.models.config import ForestConfig, LineageStrategy
from branchtree.models.merge import MergeResult
from branchtree.models.message import HistoryEntry, MessageInfo, MessageRole, SiblingSet

__all__ = [
    "BranchInfo",
    "BranchNode",
    "ForestConfig",
    "HistoryEntry",
    "LineageStrategy",
    "MergeResult",
    "MessageInfo",
    "MessageRole",
    "SiblingSet",
]
