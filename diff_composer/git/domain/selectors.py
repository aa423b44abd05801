"""Hunk selectors and their serialized forms."""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from diff_composer.errors import SelectorDecodeError

ALL_MARKER = "ALL"

_LINE_RANGE_PATTERN = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


@dataclass(frozen=True)
class AllSelector:
    """Every hunk in the file."""


@dataclass(frozen=True)
class LinesSelector:
    """Hunks touching original-file lines ``start..end`` (1-indexed, inclusive)."""

    start: int
    end: int


@dataclass(frozen=True)
class SearchSelector:
    """Hunks whose header matches (``@@`` patterns) or whose lines contain ``pattern``."""

    pattern: str

    @property
    def is_header(self) -> bool:
        return self.pattern.startswith("@@")


HunkSelector = AllSelector | LinesSelector | SearchSelector


def _as_line_number(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SelectorDecodeError(f"Invalid {field_name} field: {value!r}")
    return value


def decode_selector(value: Any) -> HunkSelector:
    """
    Decode one serialized selector.

    Accepted encodings, tried in this order:
    ``"ALL"`` (any case), a legacy hunk header string starting with ``@@``,
    a ``"<start>-<end>"`` range string (any other string containing ``-`` is
    rejected), ``{"start": int, "end": int}``, ``{"pattern": str}`` and
    finally any other string as a search pattern.

    Args:
        value: A JSON-compatible value (string or mapping)

    Returns:
        The decoded selector

    Raises:
        SelectorDecodeError: If the value matches none of the encodings
    """
    if isinstance(value, str):
        if value.strip().lower() == ALL_MARKER.lower():
            return AllSelector()
        if value.startswith("@@"):
            return SearchSelector(pattern=value)
        if "-" in value:
            range_match = _LINE_RANGE_PATTERN.match(value)
            if not range_match:
                raise SelectorDecodeError(f"Invalid line range format: {value}")
            return LinesSelector(start=int(range_match.group(1)), end=int(range_match.group(2)))
        return SearchSelector(pattern=value)

    if isinstance(value, Mapping):
        if "start" in value and "end" in value:
            return LinesSelector(
                start=_as_line_number(value["start"], "start"),
                end=_as_line_number(value["end"], "end"),
            )
        if "pattern" in value:
            pattern = value["pattern"]
            if not isinstance(pattern, str):
                raise SelectorDecodeError(f"Invalid pattern field: {pattern!r}")
            return SearchSelector(pattern=pattern)

    raise SelectorDecodeError(f"Invalid HunkSelector format: {value!r}")


def encode_selector(selector: HunkSelector) -> str | dict[str, Any]:
    """Encode a selector in its canonical form."""
    match selector:
        case AllSelector():
            return ALL_MARKER
        case LinesSelector(start=start, end=end):
            return {"start": start, "end": end}
        case SearchSelector(pattern=pattern):
            return {"pattern": pattern}
    raise TypeError(f"Not a hunk selector: {selector!r}")


def describe_selector(selector: HunkSelector) -> str:
    """Short human-readable form used in logs and plans."""
    match selector:
        case AllSelector():
            return "all hunks"
        case LinesSelector(start=start, end=end):
            return f"lines {start}-{end}"
        case SearchSelector(pattern=pattern):
            return f"search {pattern!r}"
    raise TypeError(f"Not a hunk selector: {selector!r}")


@dataclass(frozen=True)
class FileChange:
    """A file path plus the ordered selectors picking its hunks."""

    path: str
    hunks: tuple[HunkSelector, ...] = (AllSelector(),)

    @property
    def is_whole_file(self) -> bool:
        """True only when the selector list is exactly ``[All]``."""
        return len(self.hunks) == 1 and isinstance(self.hunks[0], AllSelector)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FileChange":
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise SelectorDecodeError(f"File change is missing a path: {data!r}")
        raw_hunks = data.get("hunks", [ALL_MARKER])
        if isinstance(raw_hunks, (str, Mapping)):
            raw_hunks = [raw_hunks]
        if not isinstance(raw_hunks, Sequence):
            raise SelectorDecodeError(f"Invalid hunks for {path}: {raw_hunks!r}")
        return cls(path=path, hunks=tuple(decode_selector(raw) for raw in raw_hunks))

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "hunks": [encode_selector(s) for s in self.hunks]}
