"""Value objects for Analysis domain."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from diff_composer.errors import AnalysisError, InvalidCommitTypeError, InvalidScopeError
from diff_composer.git.domain.entities import Commit

COMMIT_TYPES: tuple[str, ...] = (
    "feat",
    "fix",
    "refactor",
    "docs",
    "test",
    "chore",
    "style",
    "perf",
    "build",
    "ci",
    "revert",
)

CHANGELOG_CATEGORIES: tuple[str, ...] = (
    "Added",
    "Changed",
    "Fixed",
    "Deprecated",
    "Removed",
    "Security",
)


def normalize_commit_type(value: str) -> str:
    """
    Validate a conventional commit type.

    Raises:
        InvalidCommitTypeError: If the type is not one of COMMIT_TYPES
    """
    normalized = value.strip().lower()
    if normalized not in COMMIT_TYPES:
        raise InvalidCommitTypeError(
            f"Invalid commit type '{value}'. Must be one of: {', '.join(COMMIT_TYPES)}"
        )
    return normalized


def validate_scope(value: str) -> str:
    """
    Validate a scope: at most two ``/``-separated segments of ``[a-z0-9_-]``.

    Raises:
        InvalidScopeError: If the scope breaks these rules
    """
    segments = value.split("/")
    if len(segments) > 2:
        raise InvalidScopeError(f"scope has {len(segments)} segments, max 2 allowed")
    for segment in segments:
        if not segment:
            raise InvalidScopeError("scope contains empty segment")
        if not all(c.isascii() and (c.islower() or c.isdigit() or c in "-_") for c in segment):
            raise InvalidScopeError(f"invalid characters in scope segment: {segment}")
    return value


def optional_scope(value: Any) -> str | None:
    """Treat missing, blank or ``"null"`` scopes as no scope."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidScopeError(f"scope must be a string, got {value!r}")
    stripped = value.strip()
    if not stripped or stripped.lower() == "null":
        return None
    return validate_scope(stripped)


def parse_observations(value: Any) -> list[str]:
    """
    Coerce a model's observations field into a list of strings.

    Accepts a list, a JSON array encoded as a string, or a bullet list
    (``-``, ``*`` or ``•`` prefixes).
    """
    if isinstance(value, list):
        return [str(item) for item in value]
    if not isinstance(value, str):
        return []

    text = value.strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return [str(item) for item in decoded]

    observations = []
    for line in text.split("\n"):
        line = line.strip()
        for prefix in ("- ", "* ", "• "):
            if line.startswith(prefix):
                line = line[len(prefix) :].strip()
                break
        if line:
            observations.append(line)
    return observations


def _try_json(text: str) -> Any:
    text = text.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def parse_json_payload(text: str) -> Any:
    """
    Find a JSON object or array in free-form model output.

    Tries the whole text, then the span between the outermost braces, then
    each fenced code block (with or without a language tag).

    Returns:
        The decoded value, or None if nothing parses
    """
    decoded = _try_json(text)
    if decoded is not None:
        return decoded

    start, end = text.find("{"), text.rfind("}")
    if start >= 0 and end > start:
        decoded = _try_json(text[start : end + 1])
        if decoded is not None:
            return decoded

    segments = text.split("```")
    for block in segments[1::2]:
        block = block.strip()
        first_line, _, rest = block.partition("\n")
        candidate = block if first_line.lstrip().startswith(("{", "[")) else rest
        decoded = _try_json(candidate)
        if decoded is not None:
            return decoded
    return None


@dataclass(frozen=True)
class FileObservation:
    """Map-phase result for one file."""

    file: str
    observations: tuple[str, ...]
    additions: int = 0
    deletions: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "observations": list(self.observations),
            "additions": self.additions,
            "deletions": self.deletions,
        }


@dataclass(frozen=True)
class AnalysisDetail:
    """One detail point of an analysis, with optional changelog metadata."""

    text: str
    changelog_category: str | None = None
    user_visible: bool = False

    @classmethod
    def from_value(cls, value: Any) -> "AnalysisDetail":
        if isinstance(value, str):
            return cls(text=value)
        if not isinstance(value, Mapping) or not isinstance(value.get("text"), str):
            raise AnalysisError(f"Invalid analysis detail: {value!r}")

        category = value.get("changelog_category")
        if category is not None and category not in CHANGELOG_CATEGORIES:
            category = None
        return cls(
            text=value["text"],
            changelog_category=category,
            user_visible=bool(value.get("user_visible", False)),
        )


@dataclass(frozen=True)
class ConventionalAnalysis:
    """Classification of a change set as a conventional commit."""

    commit_type: str
    scope: str | None = None
    details: tuple[AnalysisDetail, ...] = ()
    issue_refs: tuple[str, ...] = ()

    @property
    def body_texts(self) -> list[str]:
        return [detail.text for detail in self.details]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConventionalAnalysis":
        """
        Build an analysis from tool-call arguments.

        Raises:
            AnalysisError: If required fields are missing or malformed
        """
        raw_type = data.get("type", data.get("commit_type"))
        if not isinstance(raw_type, str):
            raise AnalysisError(f"Analysis is missing a commit type: {dict(data)!r}")

        raw_details = data.get("details") or []
        if isinstance(raw_details, str):
            raw_details = parse_observations(raw_details)

        raw_refs = data.get("issue_refs") or []
        if isinstance(raw_refs, str):
            raw_refs = [ref.strip() for ref in raw_refs.split(",") if ref.strip()]

        return cls(
            commit_type=normalize_commit_type(raw_type),
            scope=optional_scope(data.get("scope")),
            details=tuple(AnalysisDetail.from_value(d) for d in raw_details),
            issue_refs=tuple(str(ref) for ref in raw_refs),
        )

    def header(self) -> str:
        """Conventional commit prefix, ``type(scope)`` or ``type``."""
        return f"{self.commit_type}({self.scope})" if self.scope else self.commit_type


@dataclass(frozen=True)
class ScopeCandidate:
    """A directory-derived scope and its share of the changed lines."""

    path: str
    percentage: float
    confidence: float


@dataclass(frozen=True)
class CommitAnalysisResult:
    """Outcome of analyzing one commit in a batch."""

    commit: Commit
    analysis: ConventionalAnalysis | None = None
    error: str | None = None
    used_map_reduce: bool = False

    @property
    def succeeded(self) -> bool:
        return self.analysis is not None

