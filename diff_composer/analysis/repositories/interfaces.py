"""Repository interfaces for LLM analysis operations."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from diff_composer.analysis.domain.value_objects import ConventionalAnalysis, FileObservation


class LLMAgentRepository(ABC):
    """Interface for LLM-based change analysis."""

    @abstractmethod
    def observe_file(self, filename: str, file_diff: str, context_header: str) -> list[str]:
        """
        Extract factual observations from one file's changes (map phase).

        Args:
            filename: Path of the file
            file_diff: The file's diff section, possibly truncated
            context_header: Summary of the other files in the change, may be empty

        Returns:
            Observations in the order the model produced them

        Raises:
            RetryableApiError: On transient failures (5xx, empty response, transport)
            ApiError: On other API failures
        """
        ...

    @abstractmethod
    def synthesize_observations(
        self,
        observations: Sequence[FileObservation],
        stat: str,
        scope_candidates: str,
    ) -> ConventionalAnalysis:
        """
        Combine per-file observations into one classification (reduce phase).

        Args:
            observations: Map-phase results in file order
            stat: ``git diff --stat`` style overview
            scope_candidates: Suggested scopes, free text

        Returns:
            ConventionalAnalysis for the whole change
        """
        ...

    @abstractmethod
    def analyze_diff(self, diff: str, stat: str, scope_candidates: str) -> ConventionalAnalysis:
        """
        Classify a whole (already truncated) diff in a single call.

        Args:
            diff: Unified diff within the configured budget
            stat: ``git diff --stat`` style overview
            scope_candidates: Suggested scopes, free text

        Returns:
            ConventionalAnalysis for the whole change
        """
        ...

    def propose_groups(self, diff: str, stat: str, max_commits: int) -> list[dict[str, Any]]:
        """
        Propose how to split a diff into commit groups.

        Args:
            diff: Unified diff within the configured budget
            stat: ``git diff --stat`` style overview
            max_commits: Upper bound on the number of groups

        Returns:
            Raw group objects (``changes``, ``type``, ``scope``, ``rationale``,
            ``dependencies``) for ComposeService to decode

        Note:
            This method has a default implementation that raises NotImplementedError.
            Subclasses should override it if they support compose.
        """
        raise NotImplementedError(
            "Compose is not supported by this agent. "
            "Provide groups explicitly or implement propose_groups."
        )
