"""Shared test fixtures for BranchTree.

Provides in-memory SQLite engine, session, repository and Forest fixtures,
plus a scripted text generator.
"""

from __future__ import annotations

import threading

import pytest
from sqlalchemy.orm import Session, sessionmaker

from branchtree.storage.engine import create_forest_engine, init_db
from branchtree.storage.sqlite import SqliteBranchRepository, SqliteMessageRepository


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_forest_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def message_repo(session: Session) -> SqliteMessageRepository:
    return SqliteMessageRepository(session)


@pytest.fixture
def branch_repo(session: Session) -> SqliteBranchRepository:
    return SqliteBranchRepository(session)


@pytest.fixture
def user_id() -> str:
    return "user-001"


@pytest.fixture
def forest():
    """In-memory Forest without a text generator."""
    from branchtree import Forest

    f = Forest.open(":memory:")
    yield f
    f.close()


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------

class FakeGenerator:
    """A text generator that records calls and returns canned text.

    ``error`` is raised instead of returning; ``delay`` blocks on an event
    (released at teardown via :meth:`release`) to simulate a hung backend.
    """

    def __init__(
        self,
        text: str = "- Decided to use Postgres",
        *,
        error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        self.text = text
        self.error = error
        self.hang = hang
        self.calls: list[tuple[str, str]] = []
        self._released = threading.Event()

    def complete(self, system: str, prompt: str) -> str:
        self.calls.append((system, prompt))
        if self.hang:
            self._released.wait(5)
        if self.error is not None:
            raise self.error
        return self.text

    def release(self) -> None:
        self._released.set()


def make_forest(**kwargs) -> "Forest":
    """Create an in-memory Forest for testing."""
    from branchtree import Forest
    return Forest.open(":memory:", **kwargs)


def populate_conversation(f: "Forest", user_id: str = "user-001", n: int = 3):
    """Create a conversation with n alternating user/assistant messages.

    Returns (branch, messages).
    """
    branch, _ = f.create_conversation(user_id, name="Main")
    messages = []
    for i in range(n):
        role = "user" if i % 2 == 0 else "assistant"
        messages.append(f.extend(branch.id, f"Message {i}", role=role))
    return branch, messages


def fixed_point_closure(root_id: str, branches) -> set[str]:
    """Repeatedly add branches whose parent is already in the set."""
    ids = {b.id for b in branches}
    if root_id not in ids:
        return set()
    result = {root_id}
    changed = True
    while changed:
        changed = False
        for b in branches:
            if b.id not in result and b.parent_branch_id in result:
                result.add(b.id)
                changed = True
    return result
