"""Parsing of unified diff text into per-file records, and back."""

from collections.abc import Iterable

from diff_composer.errors import FileNotInDiffError
from diff_composer.git.domain.value_objects import FileDiff

DIFF_SECTION_PREFIX = "diff --git"
BINARY_MARKER_PREFIX = "Binary files"


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, dropping the empty tail after a final newline."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def filename_from_section_line(line: str) -> str:
    """Extract the ``b/`` path from a ``diff --git a/x b/x`` line."""
    parts = line.split()
    if len(parts) < 4:
        return "unknown"
    target = parts[3]
    return target[2:] if target.startswith("b/") else target


class _FileDiffBuilder:
    """Mutable accumulator used while scanning one diff section."""

    def __init__(self, section_line: str) -> None:
        self.filename = filename_from_section_line(section_line)
        self.header_lines = [section_line]
        self.content_lines: list[str] = []
        self.additions = 0
        self.deletions = 0
        self.is_binary = False
        self.in_header = True

    def feed(self, line: str) -> None:
        if self.in_header:
            if line.startswith("@@"):
                self.in_header = False
                self.content_lines.append(line)
                return
            if line.startswith(BINARY_MARKER_PREFIX):
                self.is_binary = True
            self.header_lines.append(line)
            return

        self.content_lines.append(line)
        if line.startswith("+") and not line.startswith("+++"):
            self.additions += 1
        elif line.startswith("-") and not line.startswith("---"):
            self.deletions += 1

    def build(self) -> FileDiff:
        return FileDiff(
            filename=self.filename,
            header="\n".join(self.header_lines),
            content="" if self.is_binary else "\n".join(self.content_lines),
            additions=self.additions,
            deletions=self.deletions,
            is_binary=self.is_binary,
        )


def parse_diff(diff: str) -> list[FileDiff]:
    """
    Parse a unified diff into one FileDiff per ``diff --git`` section.

    Lines before the first section (for example a ``git show`` commit header)
    are ignored. Sections without hunks are kept with empty content.

    Args:
        diff: Raw unified diff text

    Returns:
        File diffs in original order
    """
    file_diffs: list[FileDiff] = []
    current: _FileDiffBuilder | None = None

    for line in split_lines(diff):
        if line.startswith(DIFF_SECTION_PREFIX):
            if current is not None:
                file_diffs.append(current.build())
            current = _FileDiffBuilder(line)
        elif current is not None:
            current.feed(line)

    if current is not None:
        file_diffs.append(current.build())

    return file_diffs


def reconstruct_diff(files: Iterable[FileDiff]) -> str:
    """Concatenate headers and contents back into diff text."""
    sections: list[str] = []
    for file_diff in files:
        if file_diff.content:
            sections.append(f"{file_diff.header}\n{file_diff.content}")
        else:
            sections.append(file_diff.header)
    return "\n".join(sections)


def list_diff_files(diff: str) -> list[str]:
    """List every ``b/<path>`` named by a ``diff --git`` line, in order."""
    files: list[str] = []
    for line in split_lines(diff):
        if not line.startswith(DIFF_SECTION_PREFIX):
            continue
        parts = line.split()
        if len(parts) >= 4 and parts[3].startswith("b/"):
            files.append(parts[3][2:])
    return files


def _is_section_for(line: str, file_path: str) -> bool:
    return line.endswith(f" b/{file_path}") or filename_from_section_line(line) == file_path


def extract_file_diff(full_diff: str, file_path: str) -> str:
    """
    Extract the raw section of one file from a full diff.

    Args:
        full_diff: Complete unified diff
        file_path: Path of the file on the new side

    Returns:
        The section text, every line newline-terminated

    Raises:
        FileNotInDiffError: If no section names the file
    """
    result: list[str] = []
    in_file = False
    found = False

    for line in split_lines(full_diff):
        if line.startswith(DIFF_SECTION_PREFIX):
            in_file = _is_section_for(line, file_path)
            found = found or in_file
        if in_file:
            result.append(f"{line}\n")

    if not found:
        raise FileNotInDiffError(file_path)

    return "".join(result)
