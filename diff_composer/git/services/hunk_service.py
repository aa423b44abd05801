"""Hunk parsing and selector resolution for single-file diffs."""

import logging
from collections.abc import Iterable, Sequence

from diff_composer.errors import NoChangesInRangeError, PatternNotFoundError
from diff_composer.git.domain.selectors import (
    AllSelector,
    HunkSelector,
    LinesSelector,
    SearchSelector,
)
from diff_composer.git.domain.value_objects import ParsedHunk
from diff_composer.git.services.diff_parser_service import extract_file_diff, split_lines

logger = logging.getLogger(__name__)

HUNK_PREFIX = "@@ "
NEAREST_HUNK_DISTANCE = 20


def _header_middle(header: str) -> str | None:
    trimmed = header.strip()
    start = trimmed.find("@@")
    if start < 0:
        return None
    after_first = trimmed[start + 2 :]
    end = after_first.find("@@")
    if end < 0:
        return None
    return after_first[:end]


def _parse_range(value: str) -> tuple[int, int] | None:
    start, sep, count = value.partition(",")
    if not start.isdigit() or (sep and not count.isdigit()):
        return None
    return int(start), int(count) if sep else 1


def parse_hunk_header(header: str) -> tuple[int, int, int, int] | None:
    """
    Parse ``@@ -old_start,old_count +new_start,new_count @@``.

    A range without a comma has a count of 1.

    Returns:
        (old_start, old_count, new_start, new_count), or None if malformed
    """
    if not header.strip().startswith("@@"):
        return None
    middle = _header_middle(header)
    if middle is None:
        return None

    parts = middle.split()
    if len(parts) < 2 or not parts[0].startswith("-") or not parts[1].startswith("+"):
        return None

    old_range = _parse_range(parts[0][1:])
    new_range = _parse_range(parts[1][1:])
    if old_range is None or new_range is None:
        return None
    return (*old_range, *new_range)


def normalize_hunk_header(header: str) -> str:
    """
    Reduce a hunk header to its numeric core for comparison.

    Only digits, ``,``, ``-`` and ``+`` between the first two ``@@`` markers are
    kept, so whitespace and trailing function context are ignored.
    """
    trimmed = header.strip()
    start = trimmed.find("@@")
    if start < 0:
        middle = trimmed
    else:
        after_first = trimmed[start + 2 :]
        end = after_first.find("@@")
        middle = after_first if end < 0 else after_first[:end]
    return "".join(c for c in middle if c.isascii() and (c.isdigit() or c in ",-+"))


def headers_match(left: str, right: str) -> bool:
    return normalize_hunk_header(left) == normalize_hunk_header(right)


def parse_file_hunks(file_diff: str) -> list[ParsedHunk]:
    """
    Split one file's diff section into hunks.

    The file header is skipped up to the ``+++`` line, or up to the first hunk
    header when the section has no ``+++`` line. Lines before a parseable hunk
    header are dropped.

    Args:
        file_diff: Raw diff section of a single file

    Returns:
        Parsed hunks in file order
    """
    hunks: list[ParsedHunk] = []
    in_header = True
    current: tuple[str, tuple[int, int, int, int]] | None = None
    current_lines: list[str] = []

    def flush() -> None:
        if current is not None:
            header, (old_start, old_count, new_start, new_count) = current
            hunks.append(
                ParsedHunk(
                    header=header,
                    old_start=old_start,
                    old_count=old_count,
                    new_start=new_start,
                    new_count=new_count,
                    lines=tuple(current_lines),
                )
            )

    for line in split_lines(file_diff):
        if in_header:
            if line.startswith("+++"):
                in_header = False
                continue
            if not line.startswith(HUNK_PREFIX):
                continue
            in_header = False

        if line.startswith(HUNK_PREFIX):
            flush()
            numbers = parse_hunk_header(line)
            if numbers is None:
                logger.debug("Skipping malformed hunk header: %s", line)
                current = None
                current_lines = []
                continue
            current = (line, numbers)
            current_lines = [line]
        elif current is not None:
            current_lines.append(line)

    flush()
    return hunks


def find_hunks_for_line_range(hunks: Iterable[ParsedHunk], start: int, end: int) -> list[str]:
    """Headers of hunks whose original line range intersects ``[start, end]``."""
    matching = []
    for hunk in hunks:
        hunk_start, hunk_end = hunk.old_line_range
        if not (end < hunk_start or start > hunk_end):
            matching.append(hunk.header)
    return matching


def nearest_hunk(hunks: Iterable[ParsedHunk], start: int, end: int) -> tuple[int, int] | None:
    """
    Find the closest hunk within NEAREST_HUNK_DISTANCE lines of a range.

    Returns:
        The hunk's original line range, first one on ties, or None
    """
    best: tuple[int, tuple[int, int]] | None = None
    for hunk in hunks:
        hunk_start, hunk_end = hunk.old_line_range
        if end < hunk_start:
            distance = hunk_start - end
        else:
            distance = max(start - hunk_end, 0)
        if 0 < distance < NEAREST_HUNK_DISTANCE and (best is None or distance < best[0]):
            best = (distance, (hunk_start, hunk_end))
    return best[1] if best else None


def _resolve_search(hunks: list[ParsedHunk], file_path: str, pattern: str) -> list[str]:
    if pattern.startswith("@@"):
        matching = [h.header for h in hunks if headers_match(h.header, pattern)]
        if not matching:
            raise PatternNotFoundError(file_path, pattern, is_header=True)
        return matching

    matching = [h.header for h in hunks if any(pattern in line for line in h.lines)]
    if not matching:
        raise PatternNotFoundError(file_path, pattern)
    return matching


def resolve_selectors_to_headers(
    full_diff: str, file_path: str, selectors: Sequence[HunkSelector]
) -> list[str]:
    """
    Resolve selectors for one file to the verbatim headers of the hunks they pick.

    Args:
        full_diff: Complete unified diff
        file_path: File whose hunks are selected
        selectors: Ordered selectors; an AllSelector anywhere selects every hunk

    Returns:
        Hunk headers, de-duplicated in first-seen order

    Raises:
        FileNotInDiffError: If the file has no section in the diff
        NoChangesInRangeError: If a line range intersects no hunk
        PatternNotFoundError: If a search pattern matches no hunk
    """
    hunks = parse_file_hunks(extract_file_diff(full_diff, file_path))
    if any(isinstance(selector, AllSelector) for selector in selectors):
        return [h.header for h in hunks]

    headers: list[str] = []
    for selector in selectors:
        match selector:
            case LinesSelector(start=start, end=end):
                matching = find_hunks_for_line_range(hunks, start, end)
                if not matching:
                    raise NoChangesInRangeError(
                        file_path, start, end, nearest_hunk(hunks, start, end)
                    )
                headers.extend(matching)
            case SearchSelector(pattern=pattern):
                headers.extend(_resolve_search(hunks, file_path, pattern))

    return list(dict.fromkeys(headers))
