"""Budget-aware truncation of diffs for model input."""

import logging
from dataclasses import replace

from diff_composer.config import ComposerConfig
from diff_composer.git.domain.value_objects import FileDiff
from diff_composer.git.services.diff_parser_service import (
    parse_diff,
    reconstruct_diff,
    split_lines,
)
from diff_composer.git.services.file_filter_service import (
    IMPORTANT_PRIORITY,
    FileFilterService,
)
from diff_composer.git.services.token_counter_service import TokenCounter

logger = logging.getLogger(__name__)

TRUNCATION_MARKER_RESERVE = 50
MIN_CONTENT_BUDGET = 50
KEEP_HEAD_LINES = 15
KEEP_TAIL_LINES = 10
LONG_CONTENT_LINES = 30
HEADER_ONLY_ALLOWANCE = 20
TRUNCATION_SAFETY_MARGIN = 100

NO_RELEVANT_FILES_MESSAGE = (
    "No relevant files to analyze (only lock files or excluded files were changed)"
)


def truncate_file_diff(file_diff: FileDiff, max_size: int) -> FileDiff:
    """
    Shrink a file diff to roughly ``max_size`` characters, header kept intact.

    Long contents keep their first 15 and last 10 lines around an omission
    marker when those lines fit the budget; anything else is cut at the budget. When less than 50 characters are
    left for content, only a marker remains.

    Args:
        file_diff: File diff to shrink
        max_size: Target size for header plus content

    Returns:
        The same object if it already fits, otherwise a truncated copy
    """
    if file_diff.size <= max_size:
        return file_diff

    available = max(max_size - (len(file_diff.header) + TRUNCATION_MARKER_RESERVE), 0)
    if available < MIN_CONTENT_BUDGET:
        return replace(file_diff, content="... (truncated)")

    lines = split_lines(file_diff.content)
    if len(lines) > LONG_CONTENT_LINES:
        head = "\n".join(lines[:KEEP_HEAD_LINES])
        tail = "\n".join(lines[-KEEP_TAIL_LINES:])
        # Kept lines must fit the content budget, otherwise cut like short content
        if len(head) + len(tail) <= available:
            omitted = len(lines) - KEEP_HEAD_LINES - KEEP_TAIL_LINES
            content = f"{head}\n... (truncated {omitted} lines) ...\n{tail}"
            return replace(file_diff, content=content)

    content = file_diff.content[:available] + "\n... (truncated)"
    return replace(file_diff, content=content)


def file_priority(file_diff: FileDiff, config: ComposerConfig | None = None) -> int:
    """Inclusion priority of a file under a size budget (higher first)."""
    return FileFilterService(config).priority(file_diff)


def _fit_headers(files: list[FileDiff], budget: int, header_only_size: int) -> list[FileDiff]:
    space_per_file = (budget - header_only_size) // len(files)
    included = []
    for file_diff in files:
        if file_diff.is_binary:
            included.append(replace(file_diff, content=""))
        else:
            included.append(truncate_file_diff(file_diff, len(file_diff.header) + space_per_file))
    return included


def _pack_by_priority(
    files: list[FileDiff], budget: int, filter_service: FileFilterService
) -> list[FileDiff]:
    included: list[FileDiff] = []
    current_size = 0
    for file_diff in files:
        if file_diff.is_binary:
            continue
        if current_size + file_diff.size <= budget:
            current_size += file_diff.size
            included.append(file_diff)
        elif (
            current_size < budget // 2
            and filter_service.priority(file_diff) >= IMPORTANT_PRIORITY
        ):
            remaining = max(budget - current_size - TRUNCATION_SAFETY_MARGIN, 0)
            included.append(truncate_file_diff(file_diff, remaining))
            break
    return included


def smart_truncate_diff(
    diff: str,
    max_length: int,
    config: ComposerConfig | None = None,
    counter: TokenCounter | None = None,
) -> str:
    """
    Fit a diff into a character budget while keeping the most useful files.

    Excluded files are dropped and the rest ordered by priority. When the
    token estimate exceeds ``config.max_diff_tokens`` the budget becomes
    ``max_diff_tokens * 4`` characters. If every file header fits, each file
    keeps its header plus an equal share of the remaining space; otherwise
    files are packed whole by priority, binaries skipped, and one important
    file may be truncated into the leftover space.

    Args:
        diff: Full unified diff
        max_length: Character budget
        config: Exclusion list, priorities and token budget
        counter: Token estimator

    Returns:
        Diff text within budget, with a ``(N files omitted)`` note when files
        were dropped
    """
    config = config or ComposerConfig()
    counter = counter or TokenCounter()
    filter_service = FileFilterService(config)

    files = [f for f in parse_diff(diff) if not filter_service.is_excluded(f.filename)]
    if not files:
        return NO_RELEVANT_FILES_MESSAGE

    # sorted() is stable, so equal priorities keep diff order
    files = sorted(files, key=lambda f: -filter_service.priority(f))

    total_size = sum(f.size for f in files)
    total_tokens = sum(counter.count_file(f) for f in files)
    if total_tokens > config.max_diff_tokens:
        budget = config.max_diff_tokens * 4
    else:
        budget = max_length

    if total_size <= budget:
        return reconstruct_diff(files)

    header_only_size = sum(len(f.header) + HEADER_ONLY_ALLOWANCE for f in files)
    if header_only_size <= budget:
        included = _fit_headers(files, budget, header_only_size)
    else:
        included = _pack_by_priority(files, budget, filter_service)

    if not included:
        logger.warning("No file fits in a budget of %d characters", budget)
        return "Error: Could not include any files in the diff"

    result = reconstruct_diff(included)
    omitted = len(files) - len(included)
    if omitted > 0:
        logger.info("Omitted %d file(s) to fit %d characters", omitted, budget)
        result += f"\n\n... ({omitted} files omitted) ..."
    return result
