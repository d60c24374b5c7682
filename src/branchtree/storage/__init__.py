"""Storage layer for BranchTree: ORM schema, engine, repositories."""

from branchtree.storage.engine import create_forest_engine, create_session_factory, init_db
from branchtree.storage.repositories import BranchRepository, MessageRepository
from branchtree.storage.schema import Base, BranchRow, BranchTreeMetaRow, MessageRow
from branchtree.storage.sqlite import SqliteBranchRepository, SqliteMessageRepository

__all__ = [
    "Base",
    "BranchRepository",
    "BranchRow",
    "BranchTreeMetaRow",
    "MessageRepository",
    "MessageRow",
    "SqliteBranchRepository",
    "SqliteMessageRepository",
    "create_forest_engine",
    "create_session_factory",
    "init_db",
]
