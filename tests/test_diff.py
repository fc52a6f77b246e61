"""Tests for metaguards.diff — chain classification and structural param diff."""

import pytest

from metaguards.diff import (
    changed_params,
    classify,
    diff_paths,
    double_diff_paths,
    entered,
    leaved,
    stayed,
    updated,
)
from metaguards.routing.route import RouteNode, RouteState

ROOT = RouteNode("/")
USERS = RouteNode("/users")
USER = RouteNode("/users/{id}")
POSTS = RouteNode("/users/{id}/posts")
SETTINGS = RouteNode("/settings")


def _state(*nodes: RouteNode, **params: object) -> RouteState:
    return RouteState(matched=nodes, params=params)


CHAIN_PAIRS = [
    ((), ()),
    ((ROOT,), ()),
    ((), (ROOT, USERS)),
    ((ROOT, USERS), (ROOT, SETTINGS)),
    ((ROOT, USERS, USER), (ROOT, USERS, USER, POSTS)),
    ((ROOT, SETTINGS), (ROOT, USERS, USER)),
    ((ROOT, USERS, USER, POSTS), (ROOT, USERS, USER, POSTS)),
]


class TestClassification:
    def test_example_leave_and_enter(self) -> None:
        a, b, c = RouteNode("/a"), RouteNode("/a/b"), RouteNode("/a/c")
        to = _state(a, c)
        from_ = _state(a, b)
        assert leaved(to, from_) == [b]
        assert entered(to, from_) == [c]
        assert stayed(to, from_) == [a]

    def test_order_follows_chain(self) -> None:
        to = _state(ROOT, USERS, USER, POSTS)
        from_ = _state(ROOT, SETTINGS)
        assert entered(to, from_) == [USERS, USER, POSTS]
        assert leaved(from_, to) == [USERS, USER, POSTS]

    def test_identity_not_path(self) -> None:
        twin = RouteNode("/users")
        to = _state(ROOT, twin)
        from_ = _state(ROOT, USERS)
        assert entered(to, from_) == [twin]
        assert leaved(to, from_) == [USERS]

    def test_empty(self) -> None:
        empty = _state()
        assert leaved(empty, empty) == []
        assert entered(empty, empty) == []
        assert stayed(empty, empty) == []
        assert updated(empty, empty) == []

    @pytest.mark.parametrize(("to_chain", "from_chain"), CHAIN_PAIRS)
    def test_partition(self, to_chain: tuple, from_chain: tuple) -> None:
        to = _state(*to_chain)
        from_ = _state(*from_chain)
        t = classify(to, from_)

        assert set(t.stayed) == set(to_chain) & set(from_chain)
        assert set(t.entered) == set(to_chain) - set(from_chain)
        assert set(t.leaved) == set(from_chain) - set(to_chain)
        assert not set(t.entered) & set(t.leaved)
        assert set(t.updated) <= set(t.stayed)

    @pytest.mark.parametrize(("to_chain", "from_chain"), CHAIN_PAIRS)
    def test_idempotent(self, to_chain: tuple, from_chain: tuple) -> None:
        to = _state(*to_chain, id="2")
        from_ = _state(*from_chain, id="1")
        assert classify(to, from_) == classify(to, from_)


class TestUpdated:
    def test_changed_param_updates_dependent_node(self) -> None:
        a = RouteNode("/items", param_keys=("id",))
        assert updated(_state(a, id="2"), _state(a, id="1")) == [a]

    def test_node_without_keys_not_updated(self) -> None:
        a = RouteNode("/items")
        assert updated(_state(a, id="2"), _state(a, id="1")) == []

    def test_unchanged_params(self) -> None:
        assert updated(_state(ROOT, USER, id="1"), _state(ROOT, USER, id="1")) == []

    def test_only_dependent_nodes(self) -> None:
        to = _state(ROOT, USERS, USER, POSTS, id="2")
        from_ = _state(ROOT, USERS, USER, POSTS, id="1")
        assert updated(to, from_) == [USER, POSTS]

    def test_entered_nodes_never_updated(self) -> None:
        to = _state(ROOT, USERS, USER, id="2")
        from_ = _state(ROOT, USERS, id="1")
        assert updated(to, from_) == []

    def test_removed_param_counts(self) -> None:
        assert updated(_state(USER), _state(USER, id="1")) == [USER]

    def test_added_param_counts(self) -> None:
        assert updated(_state(USER, id="1"), _state(USER)) == [USER]

    def test_nested_param_shrinks(self) -> None:
        node = RouteNode("/search", param_keys=("filter",))
        to = _state(node, filter={"tag": "a"})
        from_ = _state(node, filter={"tag": "a", "page": 2})
        assert updated(to, from_) == [node]

    def test_unrelated_param_change(self) -> None:
        to = _state(USER, id="1", tab="posts")
        from_ = _state(USER, id="1", tab="about")
        assert updated(to, from_) == []


class TestDiffPaths:
    def test_equal(self) -> None:
        assert diff_paths({"id": "1"}, {"id": "1"}) == []

    def test_changed_value(self) -> None:
        assert diff_paths({"id": "1"}, {"id": "2"}) == [("id",)]

    def test_one_direction_only(self) -> None:
        assert diff_paths({"id": "1"}, {"id": "1", "tab": "x"}) == []
        assert diff_paths({"id": "1", "tab": "x"}, {"id": "1"}) == [("tab",)]

    def test_nested_mapping(self) -> None:
        a = {"q": {"page": 2, "size": 10}}
        b = {"q": {"page": 3, "size": 10}}
        assert diff_paths(a, b) == [("q", "page")]

    def test_nested_list(self) -> None:
        assert diff_paths({"tags": ["a", "b"]}, {"tags": ["a", "c"]}) == [("tags", 1)]

    def test_type_change_is_leaf(self) -> None:
        assert diff_paths({"q": {"page": 1}}, {"q": "page=1"}) == [("q",)]

    def test_strings_not_recursed(self) -> None:
        assert diff_paths({"id": "12"}, {"id": "13"}) == [("id",)]


class TestDoubleDiffPaths:
    def test_union_of_both_directions(self) -> None:
        a = {"id": "1", "old": "x"}
        b = {"id": "2", "new": "y"}
        assert double_diff_paths(a, b) == [("id",), ("old",), ("new",)]

    def test_deduplicated(self) -> None:
        assert double_diff_paths({"id": "1"}, {"id": "2"}) == [("id",)]

    def test_shrinking_nested(self) -> None:
        a = {"q": {"page": 2}}
        b = {"q": {"page": 2, "size": 5}}
        assert double_diff_paths(a, b) == [("q", "size")]


class TestChangedParams:
    def test_top_level_names(self) -> None:
        to = _state(q={"page": 3}, id="1")
        from_ = _state(q={"page": 2}, id="1")
        assert changed_params(to, from_) == frozenset({"q"})

    def test_empty(self) -> None:
        assert changed_params(_state(), _state()) == frozenset()
