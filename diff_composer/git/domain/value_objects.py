"""Value objects for Git domain."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class DiffMode(str, Enum):
    """Which working tree state a diff is taken from."""

    STAGED = "staged"
    UNSTAGED = "unstaged"


@dataclass(frozen=True)
class CommitRange:
    """Range of commits between two commit hashes."""

    repo_path: Path
    commit_a: str
    commit_b: str


@dataclass(frozen=True)
class CommitDiff:
    """Diff and stat text for a commit or a working tree state."""

    commit_hash: str
    diff_content: str
    stat_content: str = ""


@dataclass(frozen=True)
class FileDiff:
    """
    One file's section of a unified diff.

    Attributes:
        filename: Path of the file on the new side (``b/`` prefix removed)
        header: Everything before the first hunk header (``diff --git``,
                mode/rename/index lines, ``---``/``+++``, binary marker)
        content: Hunk headers and hunk bodies, newline-joined
        additions: Number of added lines in content
        deletions: Number of removed lines in content
        is_binary: True when the header carries a ``Binary files ... differ`` marker
    """

    filename: str
    header: str
    content: str = ""
    additions: int = 0
    deletions: int = 0
    is_binary: bool = False

    @property
    def size(self) -> int:
        return len(self.header) + len(self.content)

    @property
    def changed_lines(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class ParsedHunk:
    """
    One ``@@`` hunk of a file diff.

    Attributes:
        header: The hunk header line, verbatim
        old_start: First line of the hunk in the original file
        old_count: Number of original lines covered
        new_start: First line of the hunk in the new file
        new_count: Number of new lines covered
        lines: Header line followed by the body lines
    """

    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: tuple[str, ...]

    @property
    def old_line_range(self) -> tuple[int, int]:
        """Inclusive original-file span; pure insertions collapse to one line."""
        if self.old_count == 0:
            return (self.old_start, self.old_start)
        return (self.old_start, self.old_start + self.old_count - 1)

    @property
    def text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)
