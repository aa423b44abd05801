"""Value objects for Compose domain."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from diff_composer.analysis.domain.value_objects import normalize_commit_type, optional_scope
from diff_composer.errors import ComposeValidationError
from diff_composer.git.domain.selectors import FileChange

# Commit type forced on groups that only touch dependency manifests
MAINTENANCE_COMMIT_TYPE = "build"


@dataclass(frozen=True)
class ChangeGroup:
    """
    A proposed atomic commit.

    Attributes:
        changes: File changes making up the commit
        commit_type: Conventional commit type
        scope: Optional conventional commit scope
        rationale: Why these changes belong together
        dependencies: Indices of groups in the same batch that must be
                      committed first
    """

    changes: tuple[FileChange, ...]
    commit_type: str
    scope: str | None = None
    rationale: str = ""
    dependencies: tuple[int, ...] = ()

    @property
    def paths(self) -> list[str]:
        return [change.path for change in self.changes]

    def commit_message(self) -> str:
        """``type(scope): rationale``, scope omitted when unset."""
        prefix = f"{self.commit_type}({self.scope})" if self.scope else self.commit_type
        return f"{prefix}: {self.rationale}" if self.rationale else prefix

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChangeGroup":
        """
        Decode a group as produced by the model or a groups file.

        Raises:
            ComposeValidationError: If the structure is malformed
            InvalidCommitTypeError: If the type is not a conventional type
            InvalidScopeError: If the scope is malformed
            SelectorDecodeError: If a hunk selector cannot be decoded
        """
        if not isinstance(data, Mapping):
            raise ComposeValidationError(f"Change group must be an object, got {data!r}")

        raw_changes = data.get("changes")
        if not isinstance(raw_changes, Sequence) or isinstance(raw_changes, str):
            raise ComposeValidationError(f"Change group has no changes list: {dict(data)!r}")

        raw_type = data.get("type", data.get("commit_type"))
        if not isinstance(raw_type, str):
            raise ComposeValidationError(f"Change group has no type: {dict(data)!r}")

        raw_dependencies = data.get("dependencies") or []
        if not isinstance(raw_dependencies, Sequence) or any(
            isinstance(dep, bool) or not isinstance(dep, int) for dep in raw_dependencies
        ):
            raise ComposeValidationError(f"Invalid dependencies: {raw_dependencies!r}")

        return cls(
            changes=tuple(FileChange.from_dict(change) for change in raw_changes),
            commit_type=normalize_commit_type(raw_type),
            scope=optional_scope(data.get("scope")),
            rationale=str(data.get("rationale", "")),
            dependencies=tuple(raw_dependencies),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "changes": [change.to_dict() for change in self.changes],
            "type": self.commit_type,
            "rationale": self.rationale,
            "dependencies": list(self.dependencies),
        }
        if self.scope:
            data["scope"] = self.scope
        return data


@dataclass(frozen=True)
class ComposeAnalysis:
    """Validated groups and the order in which to commit them."""

    groups: tuple[ChangeGroup, ...]
    dependency_order: tuple[int, ...]

    def ordered_groups(self) -> list[tuple[int, ChangeGroup]]:
        return [(index, self.groups[index]) for index in self.dependency_order]

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [group.to_dict() for group in self.groups],
            "dependency_order": list(self.dependency_order),
        }


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of checking groups against the diff they should cover."""

    missing_files: tuple[str, ...] = ()
    duplicate_files: Mapping[str, int] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.missing_files
