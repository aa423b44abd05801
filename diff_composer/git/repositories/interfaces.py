"""Repository interfaces for Git operations."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from diff_composer.git.domain.entities import Commit
from diff_composer.git.domain.value_objects import CommitDiff, CommitRange, DiffMode


class GitRepository(ABC):
    """Interface for Git repository operations."""

    @abstractmethod
    def get_diff(self, repo_path: Path, mode: DiffMode) -> str:
        """
        Get the working tree diff.

        Args:
            repo_path: Path to the git repository
            mode: STAGED for the index, UNSTAGED for tracked and untracked
                  working tree changes

        Returns:
            Unified diff text

        Raises:
            NoChangesError: If there is nothing to diff
        """
        ...

    @abstractmethod
    def get_stat(self, repo_path: Path, mode: DiffMode) -> str:
        """
        Get the ``--stat`` summary matching get_diff.

        Args:
            repo_path: Path to the git repository
            mode: Working tree state to summarize

        Returns:
            Stat output
        """
        ...

    @abstractmethod
    def list_commits(self, commit_range: CommitRange) -> tuple[Commit, ...]:
        """
        List commits between two commit hashes.

        Args:
            commit_range: Range of commits to retrieve

        Returns:
            Tuple of commits ordered from oldest to newest
        """
        ...

    @abstractmethod
    def get_commit_diff(self, repo_path: Path, commit_hash: str) -> CommitDiff:
        """
        Get the diff and stat content for a specific commit.

        Args:
            repo_path: Path to the git repository
            commit_hash: Hash of the commit

        Returns:
            CommitDiff containing the diff and stat content
        """
        ...

    @abstractmethod
    def stage_files(self, repo_path: Path, files: Sequence[str]) -> None:
        """
        Stage whole files with a single ``git add``.

        Args:
            repo_path: Path to the git repository
            files: Paths relative to the repository root
        """
        ...

    @abstractmethod
    def apply_patch_to_index(self, repo_path: Path, patch: str) -> None:
        """
        Apply a patch to the index only (``git apply --cached``).

        Args:
            repo_path: Path to the git repository
            patch: Patch text
        """
        ...

    @abstractmethod
    def reset_staging(self, repo_path: Path) -> None:
        """Unstage everything (``git reset HEAD``)."""
        ...

    @abstractmethod
    def commit(self, repo_path: Path, message: str) -> str:
        """
        Commit the index.

        Args:
            repo_path: Path to the git repository
            message: Commit message

        Returns:
            Hash of the new commit
        """
        ...
