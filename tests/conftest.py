"""Shared fakes for the git and model collaborators."""

import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from diff_composer.analysis.domain.value_objects import (
    AnalysisDetail,
    ConventionalAnalysis,
    FileObservation,
)
from diff_composer.analysis.repositories.interfaces import LLMAgentRepository
from diff_composer.errors import ApiError, NoChangesError
from diff_composer.git.domain.entities import Commit
from diff_composer.git.domain.value_objects import CommitDiff, CommitRange, DiffMode
from diff_composer.git.repositories.interfaces import GitRepository


class FakeGitRepository(GitRepository):
    """In-memory repository recording every call."""

    def __init__(self) -> None:
        self.diffs: dict[DiffMode, str] = {}
        self.commits: tuple[Commit, ...] = ()
        self.commit_diffs: dict[str, CommitDiff] = {}
        self.calls: list[tuple[str, Any]] = []

    def get_diff(self, repo_path: Path, mode: DiffMode) -> str:
        diff = self.diffs.get(mode, "")
        if not diff:
            raise NoChangesError(mode.value)
        return diff

    def get_stat(self, repo_path: Path, mode: DiffMode) -> str:
        return ""

    def list_commits(self, commit_range: CommitRange) -> tuple[Commit, ...]:
        return self.commits

    def get_commit_diff(self, repo_path: Path, commit_hash: str) -> CommitDiff:
        return self.commit_diffs[commit_hash]

    def stage_files(self, repo_path: Path, files: Sequence[str]) -> None:
        self.calls.append(("stage_files", list(files)))

    def apply_patch_to_index(self, repo_path: Path, patch: str) -> None:
        self.calls.append(("apply_patch_to_index", patch))

    def reset_staging(self, repo_path: Path) -> None:
        self.calls.append(("reset_staging", None))

    def commit(self, repo_path: Path, message: str) -> str:
        self.calls.append(("commit", message))
        return f"{len(self.calls):040x}"


class FakeAgent(LLMAgentRepository):
    """Model stand-in that answers deterministically and counts calls."""

    def __init__(self) -> None:
        self.fail_files: set[str] = set()
        self.fail_diffs_containing: str | None = None
        self.groups_payload: list[dict[str, Any]] = []
        self.observed: list[str] = []
        self.reduce_inputs: list[list[FileObservation]] = []
        self.analyzed: list[str] = []
        self._lock = threading.Lock()

    def observe_file(self, filename: str, file_diff: str, context_header: str) -> list[str]:
        with self._lock:
            self.observed.append(filename)
        if filename in self.fail_files:
            raise ApiError(400, f"cannot read {filename}")
        return [f"changed {filename}"]

    def synthesize_observations(
        self,
        observations: Sequence[FileObservation],
        stat: str,
        scope_candidates: str,
    ) -> ConventionalAnalysis:
        self.reduce_inputs.append(list(observations))
        return ConventionalAnalysis(
            commit_type="feat",
            details=tuple(AnalysisDetail(text=o.observations[0]) for o in observations),
        )

    def analyze_diff(self, diff: str, stat: str, scope_candidates: str) -> ConventionalAnalysis:
        with self._lock:
            self.analyzed.append(diff)
        if self.fail_diffs_containing and self.fail_diffs_containing in diff:
            raise ApiError(422, "unprocessable")
        return ConventionalAnalysis(commit_type="fix", scope="api")

    def propose_groups(self, diff: str, stat: str, max_commits: int) -> list[dict[str, Any]]:
        return self.groups_payload


@pytest.fixture
def fake_git_repository() -> FakeGitRepository:
    return FakeGitRepository()


@pytest.fixture
def fake_agent() -> FakeAgent:
    return FakeAgent()


def make_file_section(path: str, added: int = 1) -> str:
    """One-hunk section adding ``added`` lines to ``path``."""
    body = "".join(f"+line {n}\n" for n in range(added))
    return (
        f"diff --git a/{path} b/{path}\n"
        "index 1111111..2222222 100644\n"
        f"--- a/{path}\n"
        f"+++ b/{path}\n"
        f"@@ -1,1 +1,{added + 1} @@\n"
        " existing\n"
        f"{body}"
    )


@pytest.fixture
def file_section():
    return make_file_section
