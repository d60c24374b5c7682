"""Tests for the tree assembler.

Covers:
- reachable_branches matches a naive fixed-point closure
- get_tree user scoping and message counts
- build_tree nesting and ordering
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from branchtree.exceptions import BranchNotFoundError
from branchtree.models.branch import BranchInfo
from branchtree.operations.tree import build_branch_tree, children_index, reachable_branches
from tests.conftest import fixed_point_closure, populate_conversation

BASE_TIME = datetime(2025, 1, 1)


def _info(branch_id: str, parent: str | None = None, minutes: int = 0) -> BranchInfo:
    return BranchInfo(
        id=branch_id,
        name=branch_id,
        parent_branch_id=parent,
        root_message_id=None,
        user_id="u",
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


FOREST = [
    _info("root", minutes=0),
    _info("a", "root", 1),
    _info("b", "root", 2),
    _info("a1", "a", 3),
    _info("a1x", "a1", 4),
    _info("b1", "b", 5),
    _info("other", minutes=6),
    _info("other1", "other", 7),
    _info("orphan", "missing", 8),
]


class TestReachableBranches:
    @pytest.mark.parametrize("root", ["root", "a", "a1x", "other", "orphan"])
    def test_matches_fixed_point(self, root):
        reachable = reachable_branches(root, FOREST)
        assert {b.id for b in reachable} == fixed_point_closure(root, FOREST)

    def test_root_first_breadth_order(self):
        assert [b.id for b in reachable_branches("root", FOREST)] == [
            "root", "a", "b", "a1", "b1", "a1x",
        ]

    def test_unknown_root(self):
        assert reachable_branches("nope", FOREST) == []

    def test_cycle_terminates(self):
        cyclic = [_info("x", "y"), _info("y", "x", 1)]
        assert [b.id for b in reachable_branches("x", cyclic)] == ["x", "y"]

    def test_children_index_sorted_by_creation(self):
        shuffled = [FOREST[2], FOREST[1], FOREST[0]]
        index = children_index(shuffled)
        assert [b.id for b in index["root"]] == ["a", "b"]


class TestBuildBranchTree:
    def test_nesting(self):
        node = build_branch_tree("root", FOREST)
        assert node.branch.id == "root"
        assert [c.branch.id for c in node.children] == ["a", "b"]
        assert [c.branch.id for c in node.children[0].children] == ["a1"]
        assert node.ids() == ["root", "a", "a1", "a1x", "b", "b1"]

    def test_walk_depths(self):
        node = build_branch_tree("root", FOREST)
        depths = {b.id: depth for depth, b in node.walk()}
        assert depths == {"root": 0, "a": 1, "a1": 2, "a1x": 3, "b": 1, "b1": 2}

    def test_unknown_root(self):
        with pytest.raises(BranchNotFoundError):
            build_branch_tree("nope", FOREST)


class TestForestTree:
    def test_get_tree_with_counts(self, forest):
        conv, msgs = populate_conversation(forest, n=3)
        child, c1 = forest.fork(msgs[1].id, "child", user_id="user-001")
        forest.extend(child.id, "more")
        grandchild, _ = forest.fork(c1.id, "grand", user_id="user-001")
        unrelated, _ = forest.create_conversation("user-001", name="Unrelated")

        tree = forest.get_tree(conv.id, "user-001")

        assert [b.id for b in tree] == [conv.id, child.id, grandchild.id]
        assert [b.message_count for b in tree] == [3, 2, 1]

    def test_get_tree_without_counts(self, forest):
        conv, _ = populate_conversation(forest)
        tree = forest.get_tree(conv.id, "user-001", with_counts=False)
        assert tree[0].message_count is None

    def test_get_tree_subtree(self, forest):
        conv, msgs = populate_conversation(forest, n=2)
        child, c1 = forest.fork(msgs[0].id, "child", user_id="user-001")
        forest.fork(msgs[1].id, "elsewhere", user_id="user-001")

        assert [b.id for b in forest.get_tree(child.id, "user-001")] == [child.id]

    def test_get_tree_scoped_to_user(self, forest):
        conv, msgs = populate_conversation(forest, n=2)
        foreign, _ = forest.fork(msgs[0].id, "not mine", user_id="intruder")

        assert foreign.id not in [b.id for b in forest.get_tree(conv.id, "user-001")]
        with pytest.raises(BranchNotFoundError):
            forest.get_tree(conv.id, "intruder")

    def test_get_tree_unknown_root(self, forest):
        with pytest.raises(BranchNotFoundError):
            forest.get_tree("ghost", "user-001")

    def test_build_tree(self, forest):
        conv, msgs = populate_conversation(forest, n=2)
        first, f1 = forest.fork(msgs[0].id, "first", user_id="user-001")
        second, _ = forest.fork(msgs[1].id, "second", user_id="user-001")
        nested, _ = forest.fork(f1.id, "nested", user_id="user-001")

        node = forest.build_tree(conv.id, "user-001")

        assert [c.branch.id for c in node.children] == [first.id, second.id]
        assert node.children[0].children[0].branch.id == nested.id
        assert node.branch.message_count == 2
