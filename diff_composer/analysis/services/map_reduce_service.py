"""Map-reduce analysis of multi-file diffs."""

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait

from diff_composer.analysis.domain.value_objects import ConventionalAnalysis, FileObservation
from diff_composer.analysis.repositories.interfaces import LLMAgentRepository
from diff_composer.analysis.services.retry_service import retry_api_call
from diff_composer.analysis.services.scope_service import ScopeService
from diff_composer.config import ComposerConfig
from diff_composer.errors import AnalysisError
from diff_composer.git.domain.value_objects import FileDiff
from diff_composer.git.services.diff_parser_service import parse_diff, reconstruct_diff
from diff_composer.git.services.file_filter_service import FileFilterService
from diff_composer.git.services.token_counter_service import TokenCounter
from diff_composer.git.services.truncation_service import (
    smart_truncate_diff,
    truncate_file_diff,
)

logger = logging.getLogger(__name__)

MIN_FILES_FOR_MAP_REDUCE = 4
MAX_FILE_TOKENS = 50_000
MAX_CONTEXT_FILES = 20
LARGE_COMMIT_FILES = 100
BINARY_OBSERVATION = "Binary file changed."


def should_use_map_reduce(
    diff: str, config: ComposerConfig, counter: TokenCounter | None = None
) -> bool:
    """
    Decide whether a diff is worth per-file analysis.

    Returns:
        False when disabled in config; otherwise True for 4 or more
        non-excluded files or when any single file exceeds MAX_FILE_TOKENS
    """
    if not config.map_reduce_enabled:
        return False

    counter = counter or TokenCounter()
    files = parse_diff(diff)
    file_count = sum(1 for f in files if not config.is_excluded(f.filename))
    return file_count >= MIN_FILES_FOR_MAP_REDUCE or any(
        counter.count_file(f) > MAX_FILE_TOKENS for f in files
    )


def infer_file_description(filename: str, content: str) -> str:
    """One-line guess at what a file contains, from its name and diff."""
    return FileFilterService().describe(filename, content)


def generate_context_header(files: Sequence[FileDiff], current_file: str) -> str:
    """
    Summarize the other files of a change for cross-file awareness.

    Args:
        files: All files of the change
        current_file: File being analyzed, left out of the listing

    Returns:
        An ``OTHER FILES IN THIS CHANGE:`` block listing up to 20 files by
        changed lines, a one-line note for changes above 100 files, or an
        empty string when there are no other files
    """
    if len(files) > LARGE_COMMIT_FILES:
        return f"(Large commit with {len(files)} total files)"

    others = [f for f in files if f.filename != current_file]
    if not others:
        return ""

    to_show = others
    if len(others) > MAX_CONTEXT_FILES:
        to_show = sorted(others, key=lambda f: f.changed_lines, reverse=True)[:MAX_CONTEXT_FILES]

    lines = ["OTHER FILES IN THIS CHANGE:"]
    for file_diff in to_show:
        description = infer_file_description(file_diff.filename, file_diff.content)
        lines.append(f"- {file_diff.filename} ({file_diff.changed_lines} lines): {description}")
    if len(to_show) < len(others):
        lines.append(f"... and {len(others) - len(to_show)} more files")
    return "\n".join(lines)


class MapReduceService:
    """Service for analyzing diffs, per file (map) then as a whole (reduce)."""

    def __init__(
        self,
        llm_agent: LLMAgentRepository,
        config: ComposerConfig | None = None,
        counter: TokenCounter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize MapReduceService.

        Args:
            llm_agent: Repository performing the model calls
            config: Retry, budget and parallelism settings
            counter: Token estimator
            sleep: Sleep function used between retries
        """
        self._llm_agent = llm_agent
        self._config = config or ComposerConfig()
        self._counter = counter or TokenCounter()
        self._sleep = sleep

    def should_use_map_reduce(self, diff: str) -> bool:
        return should_use_map_reduce(diff, self._config, self._counter)

    def _observe(self, file_diff: FileDiff, files: Sequence[FileDiff]) -> FileObservation:
        if file_diff.is_binary:
            return FileObservation(
                file=file_diff.filename,
                observations=(BINARY_OBSERVATION,),
                additions=file_diff.additions,
                deletions=file_diff.deletions,
            )

        context_header = generate_context_header(files, file_diff.filename)

        sized = file_diff
        tokens = self._counter.count_file(file_diff)
        if tokens > MAX_FILE_TOKENS:
            sized = truncate_file_diff(file_diff, MAX_FILE_TOKENS * 4)
            logger.warning(
                "Truncated %s (%d -> %d tokens)",
                file_diff.filename,
                tokens,
                self._counter.count_file(sized),
            )

        file_text = reconstruct_diff([sized])
        observations = retry_api_call(
            self._config,
            lambda: self._llm_agent.observe_file(file_diff.filename, file_text, context_header),
            sleep=self._sleep,
        )
        return FileObservation(
            file=file_diff.filename,
            observations=tuple(observations),
            additions=file_diff.additions,
            deletions=file_diff.deletions,
        )

    def map_phase(self, files: Sequence[FileDiff]) -> list[FileObservation]:
        """
        Observe every file in parallel.

        Results keep the order of ``files``. The first failure cancels tasks
        that have not started and is re-raised once running ones finish.

        Args:
            files: Files to observe, shared read-only by all workers

        Returns:
            One FileObservation per file
        """
        shared = tuple(files)
        workers = max(1, min(self._config.map_parallelism, len(shared)))
        logger.info("Mapping %d files with %d workers", len(shared), workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures: list[Future[FileObservation]] = [
                executor.submit(self._observe, file_diff, shared) for file_diff in shared
            ]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            errors = [f.exception() for f in futures if f in done and f.exception() is not None]
            if errors:
                for future in pending:
                    future.cancel()
                raise errors[0]  # type: ignore[misc]

        return [future.result() for future in futures]

    def reduce_phase(
        self, observations: Sequence[FileObservation], stat: str, scope_candidates: str
    ) -> ConventionalAnalysis:
        """Synthesize map-phase observations with a single model call."""
        return retry_api_call(
            self._config,
            lambda: self._llm_agent.synthesize_observations(observations, stat, scope_candidates),
            sleep=self._sleep,
        )

    def run_map_reduce(
        self, diff: str, stat: str, scope_candidates: str | None = None
    ) -> ConventionalAnalysis:
        """
        Analyze a diff file by file, then synthesize.

        Raises:
            AnalysisError: If no file is left after exclusions
        """
        files = [f for f in parse_diff(diff) if not self._config.is_excluded(f.filename)]
        if not files:
            raise AnalysisError("No relevant files to analyze after filtering")

        if scope_candidates is None:
            scope_candidates = ScopeService(self._config).describe(files)

        logger.info("Running map-reduce on %d files...", len(files))
        observations = self.map_phase(files)
        return self.reduce_phase(observations, stat, scope_candidates)

    def analyze(
        self, diff: str, stat: str = "", scope_candidates: str | None = None
    ) -> ConventionalAnalysis:
        """
        Analyze a diff with map-reduce when worthwhile, else with one call.

        Args:
            diff: Full unified diff
            stat: ``--stat`` overview passed to the model
            scope_candidates: Scope suggestions; computed from the diff when None

        Returns:
            ConventionalAnalysis for the change
        """
        if self.should_use_map_reduce(diff):
            return self.run_map_reduce(diff, stat, scope_candidates)

        if scope_candidates is None:
            scope_candidates = ScopeService(self._config).describe(parse_diff(diff))

        truncated = smart_truncate_diff(
            diff, self._config.max_diff_length, self._config, self._counter
        )
        return retry_api_call(
            self._config,
            lambda: self._llm_agent.analyze_diff(truncated, stat, scope_candidates),
            sleep=self._sleep,
        )
