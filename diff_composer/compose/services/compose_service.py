"""Service splitting a working tree diff into ordered atomic commits."""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from diff_composer.analysis.domain.value_objects import parse_json_payload
from diff_composer.analysis.repositories.interfaces import LLMAgentRepository
from diff_composer.analysis.services.retry_service import retry_api_call
from diff_composer.compose.domain.value_objects import ChangeGroup, ComposeAnalysis
from diff_composer.compose.services.ordering_service import compute_dependency_order
from diff_composer.compose.services.validation_service import (
    reclassify_dependency_groups,
    validate_compose_groups,
)
from diff_composer.config import ComposerConfig
from diff_composer.errors import ComposeValidationError
from diff_composer.git.repositories.interfaces import GitRepository
from diff_composer.git.services.patch_service import PatchService
from diff_composer.git.services.truncation_service import smart_truncate_diff

logger = logging.getLogger(__name__)


class ComposeService:
    """Service for planning and staging commit groups."""

    def __init__(
        self,
        git_repository: GitRepository,
        patch_service: PatchService,
        llm_agent: LLMAgentRepository | None = None,
        config: ComposerConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize ComposeService.

        Args:
            git_repository: Repository for Git operations
            patch_service: Service staging one group's changes
            llm_agent: Agent proposing groups, only needed by propose()
            config: Budgets and retry settings
            sleep: Sleep function used between retries
        """
        self._git_repository = git_repository
        self._patch_service = patch_service
        self._llm_agent = llm_agent
        self._config = config or ComposerConfig()
        self._sleep = sleep

    @staticmethod
    def decode_groups(raw_groups: Sequence[Mapping[str, Any]]) -> list[ChangeGroup]:
        return [ChangeGroup.from_dict(raw) for raw in raw_groups]

    @classmethod
    def parse_groups(cls, text: str) -> list[ChangeGroup]:
        """
        Parse groups from JSON text, as written by hand or returned by a model.

        Accepts ``{"groups": [...]}`` or a bare list, possibly wrapped in
        prose or a fenced code block.

        Raises:
            ComposeValidationError: If no group list can be found
        """
        payload = parse_json_payload(text)
        if isinstance(payload, Mapping):
            payload = payload.get("groups")
        if not isinstance(payload, list):
            raise ComposeValidationError("Could not find a list of change groups in the input")
        return cls.decode_groups(payload)

    def propose(self, diff: str, stat: str, max_commits: int) -> list[ChangeGroup]:
        """
        Ask the model how to split ``diff`` into at most ``max_commits`` groups.

        Raises:
            ValueError: If no agent was configured or max_commits is not positive
        """
        if self._llm_agent is None:
            raise ValueError("An LLM agent is required to propose change groups")
        if max_commits < 1:
            raise ValueError("max_commits must be at least 1")

        truncated = smart_truncate_diff(diff, self._config.max_diff_length, self._config)
        logger.info("Requesting compose analysis (max %d commits)", max_commits)
        raw_groups = retry_api_call(
            self._config,
            lambda: self._llm_agent.propose_groups(truncated, stat, max_commits),
            sleep=self._sleep,
        )
        return self.decode_groups(raw_groups)

    def plan(self, groups: Sequence[ChangeGroup], full_diff: str) -> ComposeAnalysis:
        """
        Validate groups against the diff, reclassify dependency-only groups
        and compute the commit order.

        Raises:
            ComposeValidationError: If the groups do not cover the diff
            InvalidDependencyError: If a dependency index is invalid
            CircularDependencyError: If the dependencies form a cycle
        """
        report = validate_compose_groups(groups, full_diff)
        if report.duplicate_files:
            logger.warning(
                "%d file(s) appear in more than one group", len(report.duplicate_files)
            )
        groups = reclassify_dependency_groups(groups)
        order = compute_dependency_order(groups)
        return ComposeAnalysis(groups=tuple(groups), dependency_order=tuple(order))

    def stage_in_order(
        self,
        analysis: ComposeAnalysis,
        repo_path: Path,
        full_diff: str,
        on_group: Callable[[int, ChangeGroup], None],
    ) -> None:
        """
        Stage each group in dependency order.

        The index is reset first. After a group is staged ``on_group`` is
        called with its index so the caller can commit it before the next
        group is staged.

        Args:
            analysis: Planned groups and order
            repo_path: Path to the git repository
            full_diff: Diff captured before anything was staged
            on_group: Callback run after each group is staged
        """
        self._git_repository.reset_staging(repo_path)
        total = len(analysis.dependency_order)
        for position, (index, group) in enumerate(analysis.ordered_groups(), start=1):
            logger.info("[%d/%d] Staging group %d: %s", position, total, index, group.rationale)
            self._patch_service.stage_changes(group.changes, repo_path, full_diff)
            on_group(index, group)
