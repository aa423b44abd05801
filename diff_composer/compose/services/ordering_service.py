"""Dependency ordering for change groups."""

import logging
from collections.abc import Sequence

from diff_composer.compose.domain.value_objects import ChangeGroup
from diff_composer.errors import CircularDependencyError, InvalidDependencyError

logger = logging.getLogger(__name__)


def check_dependencies(groups: Sequence[ChangeGroup]) -> None:
    """
    Check that every dependency index points at another group of the batch.

    Raises:
        InvalidDependencyError: On an out-of-range or self-referencing index
    """
    count = len(groups)
    for index, group in enumerate(groups):
        for dep in group.dependencies:
            if dep < 0 or dep >= count:
                raise InvalidDependencyError(
                    f"Group {index} has invalid dependency {dep} (only {count} groups total)"
                )
            if dep == index:
                raise InvalidDependencyError(f"Group {index} depends on itself (circular)")


def compute_dependency_order(groups: Sequence[ChangeGroup]) -> list[int]:
    """
    Order groups so each one comes after everything it depends on.

    Kahn's algorithm over a work stack: groups without dependencies are
    seeded in index order and the most recently freed group is taken first.
    The result is deterministic for a given input.

    Args:
        groups: Groups with dependency indices into the same sequence

    Returns:
        Group indices in commit order

    Raises:
        InvalidDependencyError: If a dependency index is out of range or self-referencing
        CircularDependencyError: If the dependencies form a cycle
    """
    check_dependencies(groups)

    count = len(groups)
    in_degree = [0] * count
    dependents: list[list[int]] = [[] for _ in range(count)]
    for index, group in enumerate(groups):
        for dep in group.dependencies:
            dependents[dep].append(index)
            in_degree[index] += 1

    stack = [index for index in range(count) if in_degree[index] == 0]
    order: list[int] = []
    while stack:
        node = stack.pop()
        order.append(node)
        for dependent in dependents[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                stack.append(dependent)

    if len(order) != count:
        stuck = [index for index in range(count) if in_degree[index] > 0]
        raise CircularDependencyError(
            f"Circular dependency detected in commit groups: {', '.join(map(str, stuck))}"
        )

    logger.debug("Dependency order: %s", order)
    return order
