"""Service for building index patches from selected hunks."""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from diff_composer.errors import EmptyPatchError
from diff_composer.git.domain.selectors import ALL_MARKER, FileChange
from diff_composer.git.repositories.interfaces import GitRepository
from diff_composer.git.services.diff_parser_service import extract_file_diff, split_lines
from diff_composer.git.services.hunk_service import (
    HUNK_PREFIX,
    normalize_hunk_header,
    resolve_selectors_to_headers,
)

logger = logging.getLogger(__name__)


def extract_hunks_for_file(full_diff: str, file_path: str, hunk_headers: Sequence[str]) -> str:
    """
    Build the patch section for one file from the hunks with the given headers.

    Header lines are copied verbatim up to ``+++``; each following hunk is kept
    when its normalized header equals one of the requested ones. Hunks keep
    their file order regardless of the order of ``hunk_headers``.

    Args:
        full_diff: Complete unified diff
        file_path: File to extract
        hunk_headers: Hunk headers to keep, or ``["ALL"]`` for the whole section

    Returns:
        Patch text with newline-terminated lines

    Raises:
        FileNotInDiffError: If the file has no section in the diff
        EmptyPatchError: If none of the file's hunks matches the requested headers
    """
    file_diff = extract_file_diff(full_diff, file_path)
    if list(hunk_headers) == [ALL_MARKER]:
        return file_diff

    wanted = {normalize_hunk_header(header) for header in hunk_headers}
    result: list[str] = []
    current_hunk: list[str] = []
    include_current = False
    kept_hunks = 0
    in_header = True

    for line in split_lines(file_diff):
        if in_header and not line.startswith(HUNK_PREFIX):
            result.append(f"{line}\n")
            if line.startswith("+++"):
                in_header = False
            continue

        if line.startswith(HUNK_PREFIX):
            in_header = False
            if include_current:
                result.extend(current_hunk)
                kept_hunks += 1
            current_hunk = [f"{line}\n"]
            include_current = normalize_hunk_header(line) in wanted
        else:
            current_hunk.append(f"{line}\n")

    if include_current:
        result.extend(current_hunk)
        kept_hunks += 1

    if not kept_hunks:
        raise EmptyPatchError(file_path, list(hunk_headers))

    return "".join(result)


def create_patch_for_changes(full_diff: str, changes: Iterable[FileChange]) -> str:
    """
    Concatenate the patch sections for several file changes.

    Raises:
        DiffComposerError: On the first change that cannot be resolved; no
                           partial patch is returned
    """
    sections = []
    for change in changes:
        headers = resolve_selectors_to_headers(full_diff, change.path, change.hunks)
        sections.append(extract_hunks_for_file(full_diff, change.path, headers))
    return "".join(sections)


def partition_changes(changes: Iterable[FileChange]) -> tuple[list[str], list[FileChange]]:
    """
    Split changes into whole-file paths and partial changes.

    Returns:
        (sorted unique paths whose selectors are exactly [All], other changes in order)
    """
    full_files: set[str] = set()
    partial: list[FileChange] = []
    for change in changes:
        if change.is_whole_file:
            full_files.add(change.path)
        else:
            partial.append(change)
    return sorted(full_files), partial


class PatchService:
    """Service for staging selected changes into the git index."""

    def __init__(self, git_repository: GitRepository) -> None:
        """
        Initialize PatchService.

        Args:
            git_repository: Repository for Git operations
        """
        self._git_repository = git_repository

    def stage_changes(
        self, changes: Sequence[FileChange], repo_path: Path, full_diff: str
    ) -> None:
        """
        Stage one group's changes.

        Whole files go through a single ``git add``; everything else is
        reconstructed into one patch applied with ``git apply --cached``.
        ``full_diff`` must be captured before the first group is committed so
        hunk headers keep matching.

        Args:
            changes: File changes of the group
            repo_path: Path to the git repository
            full_diff: Diff captured before staging started
        """
        full_files, partial = partition_changes(changes)
        # A selector error must leave the index untouched
        patch = create_patch_for_changes(full_diff, partial) if partial else ""

        if full_files:
            logger.info("Staging %d whole file(s)", len(full_files))
            self._git_repository.stage_files(repo_path, full_files)

        if not patch:
            return

        logger.info("Applying patch for %d partial change(s)", len(partial))
        self._git_repository.apply_patch_to_index(repo_path, patch)
