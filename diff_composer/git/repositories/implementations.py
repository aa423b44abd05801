"""Concrete implementation of Git repository operations."""

import logging
import subprocess
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from diff_composer.errors import GitCommandError, NoChangesError
from diff_composer.git.domain.entities import Commit
from diff_composer.git.domain.value_objects import CommitDiff, CommitRange, DiffMode
from diff_composer.git.repositories.interfaces import GitRepository

logger = logging.getLogger(__name__)


def _error_output(e: subprocess.CalledProcessError) -> str:
    return e.stderr.strip() if e.stderr else str(e)


class GitRepositoryImpl(GitRepository):
    """Concrete implementation of Git repository operations using git commands."""

    @staticmethod
    def _run(
        args: list[str], repo_path: Path, action: str, stdin: str | None = None
    ) -> str:
        """
        Run a git command and return its stdout.

        Raises:
            GitCommandError: If the command exits with a non-zero status
        """
        logger.debug("Running git %s in %s", " ".join(args), repo_path)
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=repo_path,
                input=stdin,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise GitCommandError(f"Failed to {action}: {_error_output(e)}") from e
        except UnicodeDecodeError as e:
            raise GitCommandError(
                f"Failed to {action}: output of git {' '.join(args)} is not valid UTF-8 ({e})"
            ) from e
        return result.stdout

    def _list_untracked(self, repo_path: Path) -> list[str]:
        output = self._run(
            ["ls-files", "--others", "--exclude-standard"], repo_path, "list untracked files"
        )
        return [line for line in output.split("\n") if line]

    def _untracked_file_diff(self, repo_path: Path, file_path: str) -> str:
        """Diff an untracked file against /dev/null with a regular git header."""
        # --no-index exits with 1 when the files differ
        try:
            result = subprocess.run(
                ["git", "diff", "--no-index", "/dev/null", file_path],
                cwd=repo_path,
                capture_output=True,
                text=True,
                check=False,
            )
        except UnicodeDecodeError as e:
            raise GitCommandError(
                f"Failed to diff untracked file {file_path}: output is not valid UTF-8 ({e})"
            ) from e
        if result.returncode not in (0, 1):
            raise GitCommandError(
                f"Failed to diff untracked file {file_path}: {result.stderr.strip()}"
            )

        lines = result.stdout.rstrip("\n").split("\n")

        header = [
            f"diff --git a/{file_path} b/{file_path}",
            "new file mode 100644",
            "index 0000000..0000000",
        ]
        body_start = next((i for i, line in enumerate(lines) if line.startswith("+++")), None)
        if body_start is None:
            # Binary and empty files have no ---/+++ lines, only the header is kept
            if any(line.startswith("Binary files") for line in lines):
                header.append(f"Binary files /dev/null and b/{file_path} differ")
            return "\n".join(header)

        header += ["--- /dev/null", f"+++ b/{file_path}"]
        return "\n".join(header + lines[body_start + 1 :])

    def get_diff(self, repo_path: Path, mode: DiffMode) -> str:
        if mode is DiffMode.STAGED:
            diff = self._run(["diff", "--cached"], repo_path, "get staged diff")
        else:
            diff = self._run(["diff"], repo_path, "get unstaged diff")
            for file_path in self._list_untracked(repo_path):
                file_diff = self._untracked_file_diff(repo_path, file_path)
                if diff and not diff.endswith("\n"):
                    diff += "\n"
                diff += file_diff if file_diff.endswith("\n") else f"{file_diff}\n"

        if not diff.strip():
            raise NoChangesError(mode.value)
        return diff

    def get_stat(self, repo_path: Path, mode: DiffMode) -> str:
        if mode is DiffMode.STAGED:
            return self._run(["diff", "--cached", "--stat"], repo_path, "get staged stat")

        stat = self._run(["diff", "--stat"], repo_path, "get unstaged stat")
        untracked = self._list_untracked(repo_path)
        if untracked:
            stat += "\nUntracked files:\n" + "\n".join(f" {path}" for path in untracked) + "\n"
        return stat

    def list_commits(self, commit_range: CommitRange) -> tuple[Commit, ...]:
        output = self._run(
            [
                "log",
                "--reverse",
                "--format=%H|%an|%aI|%s",
                f"{commit_range.commit_a}..{commit_range.commit_b}",
            ],
            commit_range.repo_path,
            "list commits",
        )

        commits: list[Commit] = []
        for line in output.strip().split("\n"):
            if not line:
                continue
            parts = line.split("|", 3)
            if len(parts) == 4:
                commit_hash, author, date_str, message = parts
                commits.append(
                    Commit(
                        hash=commit_hash,
                        author=author,
                        date=datetime.fromisoformat(date_str),
                        message=message,
                    )
                )
        return tuple(commits)

    def get_commit_diff(self, repo_path: Path, commit_hash: str) -> CommitDiff:
        diff = self._run(["show", "--format=", commit_hash], repo_path, "get commit diff")
        stat = self._run(
            ["show", "--stat", "--format=", commit_hash], repo_path, "get commit stat"
        )
        return CommitDiff(commit_hash=commit_hash, diff_content=diff, stat_content=stat)

    def stage_files(self, repo_path: Path, files: Sequence[str]) -> None:
        if not files:
            return
        self._run(["add", "--", *files], repo_path, "stage files")

    def apply_patch_to_index(self, repo_path: Path, patch: str) -> None:
        self._run(["apply", "--cached"], repo_path, "apply patch to index", stdin=patch)

    def reset_staging(self, repo_path: Path) -> None:
        self._run(["reset", "HEAD"], repo_path, "reset staging")

    def commit(self, repo_path: Path, message: str) -> str:
        self._run(["commit", "-m", message], repo_path, "commit")
        return self._run(["rev-parse", "HEAD"], repo_path, "read HEAD").strip()
