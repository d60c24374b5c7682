"""Tests for repository implementations.

Covers:
- SqliteMessageRepository CRUD, ancestor chain, children, heads, counts
- SqliteBranchRepository conversations, children, merge flag, rename, delete
- Cascade of messages when a branch row is deleted
"""

from datetime import datetime, timedelta

import pytest

from branchtree.models.message import MessageRole
from branchtree.storage.schema import BranchRow, MessageRow


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


def _make_branch(
    branch_id: str,
    *,
    user_id: str = "user-001",
    parent_branch_id: str | None = None,
    root_message_id: str | None = None,
    minutes: int = 0,
) -> BranchRow:
    return BranchRow(
        id=branch_id,
        name=f"Branch {branch_id}",
        root_message_id=root_message_id,
        parent_branch_id=parent_branch_id,
        is_merged=False,
        user_id=user_id,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def _make_message(
    message_id: str,
    branch_id: str,
    *,
    parent_id: str | None = None,
    is_head: bool = False,
    seconds: int = 0,
    role: MessageRole = MessageRole.USER,
) -> MessageRow:
    return MessageRow(
        id=message_id,
        content=f"content of {message_id}",
        role=role,
        parent_id=parent_id,
        branch_id=branch_id,
        is_head=is_head,
        created_at=BASE_TIME + timedelta(seconds=seconds),
    )


def _chain(message_repo, branch_id: str, ids: list[str], *, parent: str | None = None):
    """Save a linear chain of messages; the last one is head."""
    for i, mid in enumerate(ids):
        message_repo.save(
            _make_message(mid, branch_id, parent_id=parent, is_head=i == len(ids) - 1, seconds=i)
        )
        parent = mid


# ---------------------------------------------------------------------------
# MessageRepository
# ---------------------------------------------------------------------------


class TestMessageRepository:
    def test_save_and_get(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        message_repo.save(_make_message("m1", "b1"))

        row = message_repo.get("m1")
        assert row is not None
        assert row.content == "content of m1"
        assert row.role == MessageRole.USER

    def test_get_missing(self, message_repo):
        assert message_repo.get("nope") is None

    def test_get_ancestors_root_first(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        _chain(message_repo, "b1", ["m1", "m2", "m3"])

        assert [r.id for r in message_repo.get_ancestors("m3")] == ["m1", "m2", "m3"]

    def test_get_ancestors_crosses_branches(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        branch_repo.save(_make_branch("b2", parent_branch_id="b1", root_message_id="m2"))
        _chain(message_repo, "b1", ["m1", "m2", "m3"])
        _chain(message_repo, "b2", ["x1", "x2"], parent="m2")

        assert [r.id for r in message_repo.get_ancestors("x2")] == ["m1", "m2", "x1", "x2"]

    def test_get_ancestors_unknown(self, message_repo):
        assert list(message_repo.get_ancestors("ghost")) == []

    def test_get_ancestors_stops_at_missing_parent(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        _chain(message_repo, "b1", ["m1", "m2"], parent="deleted")

        assert [r.id for r in message_repo.get_ancestors("m2")] == ["m1", "m2"]

    def test_get_ancestors_depth_bound(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        _chain(message_repo, "b1", [f"m{i}" for i in range(10)])

        rows = message_repo.get_ancestors("m9", max_depth=3)
        assert [r.id for r in rows] == ["m6", "m7", "m8", "m9"]

    def test_get_ancestors_cycle_terminates(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        message_repo.save(_make_message("a", "b1", parent_id="b"))
        message_repo.save(_make_message("b", "b1", parent_id="a", seconds=1))

        rows = message_repo.get_ancestors("a", max_depth=50)
        assert [r.id for r in rows] == ["b", "a"]

    def test_get_children_ordered(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        branch_repo.save(_make_branch("b2"))
        message_repo.save(_make_message("root", "b1"))
        message_repo.save(_make_message("c2", "b2", parent_id="root", seconds=5))
        message_repo.save(_make_message("c1", "b1", parent_id="root", seconds=2))

        assert [r.id for r in message_repo.get_children("root")] == ["c1", "c2"]

    def test_get_children_of_groups_by_parent(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        message_repo.save(_make_message("p1", "b1"))
        message_repo.save(_make_message("p2", "b1", seconds=1))
        message_repo.save(_make_message("a", "b1", parent_id="p1", seconds=2))
        message_repo.save(_make_message("b", "b1", parent_id="p1", seconds=3))
        message_repo.save(_make_message("c", "b1", parent_id="p2", seconds=4))

        grouped = message_repo.get_children_of(["p1", "p2", "p3"])
        assert [r.id for r in grouped["p1"]] == ["a", "b"]
        assert [r.id for r in grouped["p2"]] == ["c"]
        assert "p3" not in grouped

    def test_get_children_of_empty(self, message_repo):
        assert message_repo.get_children_of([]) == {}

    def test_get_heads_newest_first(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        message_repo.save(_make_message("old", "b1", is_head=True))
        message_repo.save(_make_message("new", "b1", is_head=True, seconds=9))
        message_repo.save(_make_message("not", "b1", seconds=20))

        assert [r.id for r in message_repo.get_heads("b1")] == ["new", "old"]

    def test_clear_heads(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        branch_repo.save(_make_branch("b2"))
        message_repo.save(_make_message("m1", "b1", is_head=True))
        message_repo.save(_make_message("m2", "b2", is_head=True))

        message_repo.clear_heads("b1")

        assert message_repo.get_heads("b1") == []
        assert message_repo.get("m1").is_head is False
        assert [r.id for r in message_repo.get_heads("b2")] == ["m2"]

    def test_list_by_branch_with_limit(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        _chain(message_repo, "b1", ["m1", "m2", "m3"])

        assert [r.id for r in message_repo.list_by_branch("b1")] == ["m1", "m2", "m3"]
        assert [r.id for r in message_repo.list_by_branch("b1", limit=2)] == ["m1", "m2"]

    def test_count_by_branch(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        branch_repo.save(_make_branch("b2"))
        _chain(message_repo, "b1", ["m1", "m2", "m3"])

        assert message_repo.count_by_branch(["b1", "b2", "ghost"]) == {
            "b1": 3,
            "b2": 0,
            "ghost": 0,
        }

    def test_delete_by_branch(self, message_repo, branch_repo):
        branch_repo.save(_make_branch("b1"))
        branch_repo.save(_make_branch("b2"))
        _chain(message_repo, "b1", ["m1", "m2"])
        _chain(message_repo, "b2", ["x1"])

        message_repo.delete_by_branch(["b1"])

        assert message_repo.get("m1") is None
        assert message_repo.get("m2") is None
        assert message_repo.get("x1") is not None


# ---------------------------------------------------------------------------
# BranchRepository
# ---------------------------------------------------------------------------


class TestBranchRepository:
    def test_save_and_get(self, branch_repo):
        branch_repo.save(_make_branch("b1"))

        row = branch_repo.get("b1")
        assert row is not None
        assert row.name == "Branch b1"
        assert row.is_merged is False

    def test_list_conversations_newest_first_with_counts(self, branch_repo, message_repo):
        branch_repo.save(_make_branch("old", minutes=0))
        branch_repo.save(_make_branch("new", minutes=10))
        branch_repo.save(_make_branch("child", parent_branch_id="old", minutes=20))
        branch_repo.save(_make_branch("other", user_id="someone-else", minutes=30))
        _chain(message_repo, "old", ["m1", "m2"])

        result = branch_repo.list_conversations("user-001")
        assert [(row.id, count) for row, count in result] == [("new", 0), ("old", 2)]

    def test_list_by_user(self, branch_repo):
        branch_repo.save(_make_branch("b1"))
        branch_repo.save(_make_branch("b2", parent_branch_id="b1", minutes=1))
        branch_repo.save(_make_branch("b3", user_id="other"))

        assert [r.id for r in branch_repo.list_by_user("user-001")] == ["b1", "b2"]

    def test_list_children(self, branch_repo):
        branch_repo.save(_make_branch("root"))
        branch_repo.save(_make_branch("c2", parent_branch_id="root", minutes=2))
        branch_repo.save(_make_branch("c1", parent_branch_id="root", minutes=1))

        assert [r.id for r in branch_repo.list_children("root")] == ["c1", "c2"]

    def test_set_merged_and_rename(self, branch_repo):
        branch_repo.save(_make_branch("b1"))
        branch_repo.set_merged("b1", True)
        branch_repo.rename("b1", "Renamed")

        row = branch_repo.get("b1")
        assert row.is_merged is True
        assert row.name == "Renamed"

    def test_delete_cascades_messages(self, branch_repo, message_repo, session):
        branch_repo.save(_make_branch("b1"))
        _chain(message_repo, "b1", ["m1", "m2"])
        session.expunge_all()

        branch_repo.delete("b1")

        assert branch_repo.get("b1") is None
        assert message_repo.get("m1") is None
        assert message_repo.get("m2") is None


class TestSchemaVersion:
    def test_schema_version_recorded(self, session):
        from branchtree.storage.engine import SCHEMA_VERSION
        from branchtree.storage.schema import BranchTreeMetaRow

        row = session.get(BranchTreeMetaRow, "schema_version")
        assert row is not None
        assert row.value == SCHEMA_VERSION

    def test_init_db_idempotent(self, engine):
        from branchtree.storage.engine import init_db

        init_db(engine)
        init_db(engine)

    def test_foreign_keys_enabled(self, engine):
        from sqlalchemy import text

        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
