"""Tests for the Forest facade: lifecycle, persistence and transactions."""

from __future__ import annotations

import pytest

from branchtree import BranchTreeError, Forest, ForestConfig
from branchtree.exceptions import MessageNotFoundError
from branchtree.storage.sqlite import SqliteBranchRepository, SqliteMessageRepository
from tests.conftest import populate_conversation


class TestLifecycle:
    def test_context_manager_closes(self):
        with Forest.open() as f:
            f.create_conversation("u")
        assert repr(f) == "Forest(closed=True)"
        with pytest.raises(BranchTreeError, match="closed"):
            f.list_conversations("u")

    def test_close_idempotent(self):
        f = Forest.open()
        f.close()
        f.close()

    def test_repr(self, forest):
        assert repr(forest) == "Forest(db=':memory:')"

    def test_default_config(self, forest):
        assert forest.config.lineage_strategy == "recursive"
        assert forest.config.merge_max_messages == 20
        assert forest.generator is None

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            ForestConfig(merge_max_messages=0)

    def test_from_components(self, session, message_repo, branch_repo):
        f = Forest.from_components(
            session=session, message_repo=message_repo, branch_repo=branch_repo
        )
        conv, _ = f.create_conversation("u", name="Injected")
        assert branch_repo.get(conv.id).name == "Injected"


class TestPersistence:
    def test_reopen_file_database(self, tmp_path):
        db = str(tmp_path / "forest.db")
        with Forest.open(db) as f:
            conv, msgs = populate_conversation(f, n=2)
            branch, x1 = f.fork(msgs[0].id, "alt", user_id="user-001")

        with Forest.open(db) as f:
            assert [c.id for c in f.list_conversations("user-001")] == [conv.id]
            assert [m.id for m in f.get_history(x1.id)] == [msgs[0].id, x1.id]
            assert f.get_head(branch.id).id == x1.id

    def test_url_overrides_path(self, tmp_path):
        db = tmp_path / "by-url.db"
        with Forest.open(url=f"sqlite:///{db}") as f:
            f.create_conversation("u", name="Via URL")
        assert db.exists()

    def test_path_overrides_config(self, tmp_path):
        db = str(tmp_path / "with-config.db")
        config = ForestConfig(merge_max_messages=5)
        with Forest.open(db, config=config) as f:
            assert f.config.db_path == db
            assert f.config.merge_max_messages == 5
            conv, _ = f.create_conversation("u", name="Configured")

        assert config.db_path == ":memory:"
        with Forest.open(db) as f:
            assert [c.id for c in f.list_conversations("u")] == [conv.id]

    def test_config_path_used_without_argument(self, tmp_path):
        db = str(tmp_path / "from-config.db")
        with Forest.open(config=ForestConfig(db_path=db)) as f:
            f.create_conversation("u")
        assert (tmp_path / "from-config.db").exists()


class TestTransactions:
    def test_failed_append_leaves_head(self, forest):
        conv, msgs = populate_conversation(forest)
        with pytest.raises(MessageNotFoundError):
            forest.append_message(conv.id, "ghost", "user", "lost")
        assert forest.get_head(conv.id).id == msgs[-1].id
        assert forest.message_counts([conv.id])[conv.id] == 3

    def test_changes_visible_to_second_session(self, tmp_path):
        db = str(tmp_path / "shared.db")
        with Forest.open(db) as writer, Forest.open(db) as reader:
            conv, _ = writer.create_conversation("u", name="Shared")
            msg = writer.extend(conv.id, "hello")
            assert reader.get_head(conv.id).id == msg.id


class TestPackageExports:
    def test_public_names(self):
        import branchtree

        for name in ("Forest", "MergeResult", "BranchNode", "OpenAIClient", "__version__"):
            assert hasattr(branchtree, name)
