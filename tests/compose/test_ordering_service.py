"""Tests for dependency ordering of change groups."""

import pytest

from diff_composer.compose.domain.value_objects import ChangeGroup
from diff_composer.compose.services.ordering_service import compute_dependency_order
from diff_composer.errors import CircularDependencyError, InvalidDependencyError
from diff_composer.git.domain.selectors import FileChange


def _group(path: str, *dependencies: int) -> ChangeGroup:
    return ChangeGroup(
        changes=(FileChange(path=path),), commit_type="feat", dependencies=dependencies
    )


class TestComputeDependencyOrder:
    def test_dependency_comes_first(self):
        groups = [_group("src/api.rs", 1), _group("Cargo.toml")]

        assert compute_dependency_order(groups) == [1, 0]

    def test_every_group_follows_its_dependencies(self):
        groups = [_group("a"), _group("b", 0), _group("c", 0), _group("d", 1, 2)]

        order = compute_dependency_order(groups)

        assert sorted(order) == [0, 1, 2, 3]
        for index, group in enumerate(groups):
            for dep in group.dependencies:
                assert order.index(dep) < order.index(index)

    def test_most_recently_ready_group_goes_first(self):
        groups = [_group("a"), _group("b", 0), _group("c", 0), _group("d", 1, 2)]

        assert compute_dependency_order(groups) == [0, 2, 1, 3]

    def test_independent_groups_are_deterministic(self):
        groups = [_group("a"), _group("b"), _group("c")]

        assert compute_dependency_order(groups) == [2, 1, 0]
        assert compute_dependency_order(groups) == compute_dependency_order(list(groups))

    def test_empty(self):
        assert compute_dependency_order([]) == []

    def test_cycle(self):
        groups = [_group("a", 1), _group("b", 0), _group("c")]

        with pytest.raises(CircularDependencyError, match="commit groups: 0, 1"):
            compute_dependency_order(groups)

    def test_out_of_range_dependency(self):
        groups = [_group("a"), _group("b", 5)]

        with pytest.raises(InvalidDependencyError, match="Group 1 has invalid dependency 5"):
            compute_dependency_order(groups)

    def test_self_dependency(self):
        with pytest.raises(InvalidDependencyError, match="depends on itself"):
            compute_dependency_order([_group("a", 0)])
