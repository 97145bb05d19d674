"""Tests for perch.services.flatten — router trees to (path, service) pairs."""

import pytest

from perch.errors import ConfigurationError
from perch.services.flatten import Branch, flatten, is_branch, join_path


class Todos:
    def get(self, params):
        return []


class TestJoinPath:
    def test_single_separator(self) -> None:
        assert join_path("/api/", "/todos") == "/api/todos"
        assert join_path("/api", "todos") == "/api/todos"

    def test_empty_sides(self) -> None:
        assert join_path("", "todos") == "todos"
        assert join_path("/api", "") == "/api"


class TestIsBranch:
    def test_branch(self) -> None:
        assert is_branch(Branch({}))

    def test_legacy_router_mapping(self) -> None:
        assert is_branch({"router": {"todos": Todos()}})

    def test_service_is_not_branch(self) -> None:
        assert not is_branch(Todos())

    def test_mapping_with_other_keys_is_not_branch(self) -> None:
        assert not is_branch({"router": {}, "get": None})


class TestFlatten:
    def test_leaf(self) -> None:
        todos = Todos()
        assert flatten("/todos", todos) == [("/todos", todos)]

    def test_one_level(self) -> None:
        a, b = Todos(), Todos()
        assert flatten("/api", Branch({"a": a, "b": b})) == [("/api/a", a), ("/api/b", b)]

    def test_nested_levels_concatenate(self) -> None:
        users = Todos()
        tree = Branch({"admin": Branch({"people": Branch({"users": users})})})
        assert flatten("/api", tree) == [("/api/admin/people/users", users)]

    def test_tree_order(self) -> None:
        a, b, c = Todos(), Todos(), Todos()
        tree = Branch({"a": a, "nested": Branch({"b": b}), "c": c})
        assert [path for path, _ in flatten("", tree)] == ["a", "nested/b", "c"]

    def test_legacy_mapping(self) -> None:
        todos = Todos()
        tree = {"router": {"v1": {"router": {"todos": todos}}}}
        assert flatten("/api/", tree) == [("/api/v1/todos", todos)]

    def test_shared_subtree_is_not_a_cycle(self) -> None:
        shared = Branch({"todos": Todos()})
        paths = [path for path, _ in flatten("", Branch({"a": shared, "b": shared}))]
        assert paths == ["a/todos", "b/todos"]

    def test_cycle_raises(self) -> None:
        routes: dict = {}
        tree = Branch(routes)
        routes["self"] = tree
        with pytest.raises(ConfigurationError, match="contains itself"):
            flatten("/api", tree)
