"""Batch analysis service for processing multiple commits."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from diff_composer.analysis.domain.value_objects import CommitAnalysisResult
from diff_composer.analysis.services.map_reduce_service import MapReduceService
from diff_composer.errors import DiffComposerError
from diff_composer.git.domain.entities import Commit
from diff_composer.git.domain.value_objects import CommitRange
from diff_composer.git.repositories.interfaces import GitRepository

logger = logging.getLogger(__name__)


class BatchAnalysisService:
    """Service for analyzing a range of commits in parallel."""

    def __init__(
        self,
        git_repository: GitRepository,
        analysis_service: MapReduceService,
        parallelism: int = 4,
    ) -> None:
        """
        Initialize BatchAnalysisService.

        Args:
            git_repository: Repository for fetching commits and their diffs
            analysis_service: Service analyzing a single diff
            parallelism: Number of commits analyzed concurrently
        """
        if parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        self._git_repository = git_repository
        self._analysis_service = analysis_service
        self._parallelism = parallelism

    def _analyze_commit(self, repo_path: Path, commit: Commit) -> CommitAnalysisResult:
        commit_diff = self._git_repository.get_commit_diff(repo_path, commit.hash)
        used_map_reduce = self._analysis_service.should_use_map_reduce(commit_diff.diff_content)
        analysis = self._analysis_service.analyze(
            commit_diff.diff_content, commit_diff.stat_content
        )
        return CommitAnalysisResult(
            commit=commit, analysis=analysis, used_map_reduce=used_map_reduce
        )

    def analyze_commits(self, commit_range: CommitRange) -> list[CommitAnalysisResult]:
        """
        Analyze every commit of a range.

        A failing commit is recorded with its error and does not stop the
        others. Results keep the commit order whatever the completion order.

        Args:
            commit_range: Range of commits to analyze

        Returns:
            One result per commit, oldest first

        Raises:
            GitCommandError: If the commits cannot be listed
        """
        commits = self._git_repository.list_commits(commit_range)
        if not commits:
            return []

        results: list[CommitAnalysisResult | None] = [None] * len(commits)
        lock = threading.Lock()

        def process(index: int, commit: Commit) -> None:
            try:
                result = self._analyze_commit(commit_range.repo_path, commit)
            except (DiffComposerError, ValueError) as e:
                logger.error("Failed to analyze commit %s: %s", commit.hash[:8], e)
                result = CommitAnalysisResult(
                    commit=commit,
                    error=f"Failed to analyze commit {commit.hash}: {e}",
                )
            with lock:
                results[index] = result

        workers = min(self._parallelism, len(commits))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(process, index, commit) for index, commit in enumerate(commits)
            ]
            for future in futures:
                future.result()

        return [result for result in results if result is not None]
