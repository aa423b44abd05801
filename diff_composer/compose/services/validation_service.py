"""Coverage and sanity checks for proposed change groups."""

import dataclasses
import logging
from collections import Counter
from collections.abc import Sequence

from diff_composer.compose.domain.value_objects import (
    MAINTENANCE_COMMIT_TYPE,
    ChangeGroup,
    ValidationReport,
)
from diff_composer.compose.services.ordering_service import check_dependencies
from diff_composer.errors import ComposeValidationError, NonExhaustiveGroupsError
from diff_composer.git.domain.selectors import LinesSelector, SearchSelector
from diff_composer.git.services.diff_parser_service import list_diff_files
from diff_composer.git.services.file_filter_service import FileFilterService

logger = logging.getLogger(__name__)

_file_filter = FileFilterService()


def is_dependency_manifest(path: str) -> bool:
    return _file_filter.is_dependency_manifest(path)


def group_affects_only_dependency_files(group: ChangeGroup) -> bool:
    """True when the group is non-empty and every path is a manifest or lock file."""
    return bool(group.changes) and all(
        is_dependency_manifest(change.path) for change in group.changes
    )


def reclassify_dependency_groups(groups: Sequence[ChangeGroup]) -> list[ChangeGroup]:
    """Force the maintenance commit type on dependency-only groups."""
    reclassified = []
    for index, group in enumerate(groups):
        if (
            group_affects_only_dependency_files(group)
            and group.commit_type != MAINTENANCE_COMMIT_TYPE
        ):
            logger.info(
                "Group %d only touches dependency files, reclassifying %s as %s",
                index,
                group.commit_type,
                MAINTENANCE_COMMIT_TYPE,
            )
            group = dataclasses.replace(group, commit_type=MAINTENANCE_COMMIT_TYPE)
        reclassified.append(group)
    return reclassified


def _selector_warnings(index: int, group: ChangeGroup) -> list[str]:
    warnings = []
    for change in group.changes:
        for selector in change.hunks:
            match selector:
                case LinesSelector(start=start, end=end):
                    if start > end:
                        warnings.append(
                            f"Group {index} has invalid line range {start}-{end} in {change.path}"
                        )
                    if start == 0:
                        warnings.append(
                            f"Group {index} has line range starting at 0 "
                            f"(should be 1-indexed) in {change.path}"
                        )
                case SearchSelector(pattern=pattern):
                    if not pattern:
                        warnings.append(f"Group {index} has empty search pattern in {change.path}")
    return warnings


def validate_compose_groups(groups: Sequence[ChangeGroup], full_diff: str) -> ValidationReport:
    """
    Check that the groups cover every file of the diff.

    Duplicate coverage and suspicious selectors only produce warnings.

    Args:
        groups: Proposed groups
        full_diff: The diff the groups were proposed for

    Returns:
        ValidationReport with the warnings found

    Raises:
        ComposeValidationError: If there are no groups or a group has no changes
        InvalidDependencyError: If a dependency index is out of range or self-referencing
        NonExhaustiveGroupsError: If a file of the diff is not covered by any group
    """
    if not groups:
        raise ComposeValidationError("No change groups to validate")

    check_dependencies(groups)

    coverage: Counter[str] = Counter()
    warnings: list[str] = []
    for index, group in enumerate(groups):
        if not group.changes:
            raise ComposeValidationError(f"Group {index} has no changes")
        coverage.update(change.path for change in group.changes)
        warnings.extend(_selector_warnings(index, group))

    diff_files = list(dict.fromkeys(list_diff_files(full_diff)))
    duplicates = {path: count for path, count in coverage.items() if count > 1}
    for path, count in duplicates.items():
        warnings.append(f"{path} appears in {count} groups")

    report = ValidationReport(
        missing_files=tuple(sorted(path for path in diff_files if path not in coverage)),
        duplicate_files=duplicates,
        warnings=tuple(warnings),
    )
    if not report.is_valid:
        raise NonExhaustiveGroupsError(list(report.missing_files))

    for warning in report.warnings:
        logger.warning(warning)
    return report
