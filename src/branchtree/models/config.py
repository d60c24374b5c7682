"""Configuration models for BranchTree.

ForestConfig holds per-forest settings for storage, lineage resolution,
merge transcript bounds and text-generation timeouts.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

LineageStrategy = Literal["recursive", "walk"]


class ForestConfig(BaseModel):
    """Per-forest configuration."""

    db_path: str = ":memory:"
    db_url: Optional[str] = None
    lineage_strategy: LineageStrategy = "recursive"
    max_lineage_depth: int = Field(default=10_000, gt=0)
    merge_max_messages: int = Field(default=20, gt=0)
    merge_max_chars: int = Field(default=1000, gt=0)
    llm_timeout: float = Field(default=30.0, gt=0)
    title_max_chars: int = Field(default=60, gt=0)
    conversation_name_prefix: str = "Chat"
    branch_name_prefix: str = "Branch"
