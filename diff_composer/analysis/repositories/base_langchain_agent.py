"""Base class for LangChain-based LLM agents."""

import json
import logging
from abc import ABC
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage, SystemMessage

from diff_composer.analysis.domain.value_objects import (
    CHANGELOG_CATEGORIES,
    COMMIT_TYPES,
    ConventionalAnalysis,
    FileObservation,
    parse_json_payload,
    parse_observations,
)
from diff_composer.analysis.repositories.interfaces import LLMAgentRepository
from diff_composer.config import ComposerConfig
from diff_composer.errors import AnalysisError, ApiError, RetryableApiError

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

logger = logging.getLogger(__name__)

OBSERVATION_TOOL_NAME = "create_file_observation"
ANALYSIS_TOOL_NAME = "create_conventional_analysis"
COMPOSE_TOOL_NAME = "create_compose_analysis"

COMMIT_TYPE_DESCRIPTIONS = """\
- feat: New public API, function, or user-facing capability (even with refactoring)
- fix: Bug fix or correction
- refactor: Code restructuring with SAME behavior (no new capability)
- docs: Documentation-only changes
- test: Test additions/modifications
- chore: Tooling, dependencies, maintenance (no production code)
- style: Formatting, whitespace (no logic change)
- perf: Performance optimization
- build: Build system, dependencies (Cargo.toml, package.json)
- ci: CI/CD configuration (.github/workflows, etc)
- revert: Reverts a previous commit"""


def _observation_tool() -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": OBSERVATION_TOOL_NAME,
            "description": "Extract observations from a single file's changes",
            "parameters": {
                "type": "object",
                "properties": {
                    "observations": {
                        "type": "array",
                        "description": "List of factual observations about what changed in this file",
                        "items": {"type": "string"},
                    }
                },
                "required": ["observations"],
            },
        },
    }


def _analysis_tool() -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": ANALYSIS_TOOL_NAME,
            "description": "Synthesize changes into a conventional commit analysis",
            "parameters": {
                "type": "object",
                "properties": {
                    "type": {
                        "type": "string",
                        "enum": list(COMMIT_TYPES),
                        "description": "Commit type based on combined changes",
                    },
                    "scope": {
                        "type": "string",
                        "description": "Optional scope (module/component). "
                        "Omit if unclear or multi-component.",
                    },
                    "details": {
                        "type": "array",
                        "description": "Array of 0-6 detail items with changelog metadata.",
                        "items": {
                            "type": "object",
                            "properties": {
                                "text": {
                                    "type": "string",
                                    "description": "Detail about change, starting with "
                                    "past-tense verb, ending with period",
                                },
                                "changelog_category": {
                                    "type": "string",
                                    "enum": list(CHANGELOG_CATEGORIES),
                                    "description": "Changelog category if user-visible. "
                                    "Omit for internal changes.",
                                },
                                "user_visible": {
                                    "type": "boolean",
                                    "description": "True if this change affects users/API "
                                    "and should appear in changelog",
                                },
                            },
                            "required": ["text", "user_visible"],
                        },
                    },
                    "issue_refs": {
                        "type": "array",
                        "description": "Issue numbers from context (e.g., ['#123']). "
                        "Empty if none.",
                        "items": {"type": "string"},
                    },
                },
                "required": ["type", "details", "issue_refs"],
            },
        },
    }


def _compose_tool() -> dict[str, Any]:
    line_range = {
        "type": "object",
        "properties": {
            "start": {"type": "integer", "minimum": 1},
            "end": {"type": "integer", "minimum": 1},
        },
        "required": ["start", "end"],
    }
    change = {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "File path"},
            "hunks": {
                "type": "array",
                "description": "Either ['ALL'] for entire file, or line range objects: "
                "[{start: 10, end: 25}]. Line numbers are 1-indexed from ORIGINAL file.",
                "items": {"oneOf": [{"type": "string", "const": "ALL"}, line_range]},
            },
        },
        "required": ["path", "hunks"],
    }
    group = {
        "type": "object",
        "properties": {
            "changes": {
                "type": "array",
                "description": "File changes with specific hunks",
                "items": change,
            },
            "type": {
                "type": "string",
                "enum": list(COMMIT_TYPES),
                "description": "Commit type for this group",
            },
            "scope": {
                "type": "string",
                "description": "Optional scope (module/component). Omit if broad.",
            },
            "rationale": {
                "type": "string",
                "description": "Brief explanation of why these changes belong together",
            },
            "dependencies": {
                "type": "array",
                "description": "Indices of groups this depends on (e.g., [0, 1])",
                "items": {"type": "integer"},
            },
        },
        "required": ["changes", "type", "rationale", "dependencies"],
    }
    return {
        "type": "function",
        "function": {
            "name": COMPOSE_TOOL_NAME,
            "description": "Split changes into logical commit groups with dependencies",
            "parameters": {
                "type": "object",
                "properties": {
                    "groups": {
                        "type": "array",
                        "description": "Array of change groups in dependency order",
                        "items": group,
                    }
                },
                "required": ["groups"],
            },
        },
    }


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return " ".join(
            str(item) if isinstance(item, str) else str(item.get("text", ""))
            for item in content
        )
    return str(content)


class BaseLangChainAgent(LLMAgentRepository, ABC):
    """Base class for LangChain-based analysis agents."""

    # SDK exception types that mean the request never completed; set by subclasses
    transient_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, config: ComposerConfig | None = None) -> None:
        """
        Initialize the base agent with common configuration.

        Args:
            config: Timeouts and temperature used by subclasses when building
                    the chat model
        """
        self._config = config or ComposerConfig()
        self._llm: BaseChatModel  # Set by subclasses

    def _classify_error(self, error: Exception) -> Exception:
        """Map an SDK failure to RetryableApiError, ApiError or AnalysisError."""
        status = getattr(error, "status_code", None)
        if isinstance(status, int):
            if status >= 500:
                return RetryableApiError(f"Server error {status}: {error}", status=status)
            body = getattr(error, "body", None)
            return ApiError(status, str(body) if body is not None else str(error))
        if isinstance(error, self.transient_errors):
            return RetryableApiError(f"Transport error: {error}")
        return AnalysisError(f"LLM call failed: {error}")

    def _call_tool(self, tool: dict[str, Any], system_prompt: str, user_prompt: str) -> dict:
        """
        Invoke the model with one tool bound and forced, and return its arguments.

        Raises:
            RetryableApiError: On 5xx, transport errors or a response without a
                               usable tool call
            ApiError: On other HTTP failures
        """
        tool_name = tool["function"]["name"]
        llm_with_tools = self._llm.bind_tools([tool], tool_choice=tool_name)
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

        try:
            response = llm_with_tools.invoke(messages)
        except Exception as e:
            raise self._classify_error(e) from e

        for tool_call in getattr(response, "tool_calls", None) or []:
            if tool_call.get("name") == tool_name and isinstance(tool_call.get("args"), dict):
                return tool_call["args"]

        # Some providers answer with the arguments as plain JSON text
        decoded = parse_json_payload(_content_text(response.content))
        if isinstance(decoded, dict):
            return decoded
        logger.warning("Model returned no %s tool call", tool_name)
        raise RetryableApiError(f"Empty response: no {tool_name} tool call")

    def observe_file(self, filename: str, file_diff: str, context_header: str) -> list[str]:
        args = self._call_tool(
            _observation_tool(),
            self._create_map_system_prompt(),
            self._format_map_input(filename, file_diff, context_header),
        )
        return parse_observations(args.get("observations"))

    def synthesize_observations(
        self,
        observations: Sequence[FileObservation],
        stat: str,
        scope_candidates: str,
    ) -> ConventionalAnalysis:
        observations_json = json.dumps([o.to_dict() for o in observations], indent=2)
        args = self._call_tool(
            _analysis_tool(),
            self._create_analysis_system_prompt(),
            self._format_reduce_input(observations_json, stat, scope_candidates),
        )
        return ConventionalAnalysis.from_dict(args)

    def analyze_diff(self, diff: str, stat: str, scope_candidates: str) -> ConventionalAnalysis:
        args = self._call_tool(
            _analysis_tool(),
            self._create_analysis_system_prompt(),
            self._format_diff_input(diff, stat, scope_candidates),
        )
        return ConventionalAnalysis.from_dict(args)

    def propose_groups(self, diff: str, stat: str, max_commits: int) -> list[dict[str, Any]]:
        args = self._call_tool(
            _compose_tool(),
            self._create_compose_system_prompt(max_commits),
            self._format_compose_input(diff, stat),
        )
        groups = args.get("groups")
        if isinstance(groups, str):
            groups = parse_json_payload(groups)
        if not isinstance(groups, list):
            raise AnalysisError(f"Compose analysis has no groups: {args!r}")
        return groups

    @staticmethod
    def _create_compose_system_prompt(max_commits: int) -> str:
        """Create the system prompt for splitting a diff into commit groups."""
        return f"""Split the git diff into 1-{max_commits} logical, atomic commit groups.

Rules (CRITICAL):
1. EXHAUSTIVENESS: You MUST account for 100% of changes. Every file and hunk in the \
diff must appear in exactly one group.
2. Atomicity: Each group represents ONE logical change (feat/fix/refactor/etc.) that \
leaves the codebase working.
3. Prefer fewer groups: Default to 1-3 commits. Only split when changes are truly \
independent.
4. Group related: Implementation + tests go together. Refactoring + usage updates go together.
5. Dependencies: Use indices. Group 2 depending on Group 1 means: dependencies: [0].
6. Hunk selection (use line numbers, NOT hunk headers):
   - If entire file: hunks: ["ALL"]
   - If partial: line ranges, hunks: [{{start: 10, end: 25}}, {{start: 50, end: 60}}]
   - Line numbers are 1-indexed from the ORIGINAL file (look at "-" lines in the diff)
   - Several ranges may be given for discontinuous changes in one file

COMMIT TYPE (one per group):
{COMMIT_TYPE_DESCRIPTIONS}

Return groups in dependency order."""

    @staticmethod
    def _format_compose_input(diff: str, stat: str) -> str:
        """Format the diff to split into a prompt for the LLM."""
        return f"""Git Stat:
{stat}

Git Diff:
{diff}

Split these changes using the {COMPOSE_TOOL_NAME} tool."""

    @staticmethod
    def _create_map_system_prompt() -> str:
        """Create the system prompt for per-file observation."""
        return """You are an expert software engineer reviewing one file of a larger change. \
Your role is to record what changed in this file, factually and concisely.

Rules:
- Report observable changes only (added, removed, renamed, modified behavior)
- One observation per distinct change, each a short past-tense sentence
- Use the list of other files only to understand how this file fits in
- Do not guess at intent and do not classify the commit"""

    @staticmethod
    def _create_analysis_system_prompt() -> str:
        """Create the system prompt for conventional commit classification."""
        return f"""You are an expert software engineer classifying git changes as a \
conventional commit.

COMMIT TYPE (choose one):
{COMMIT_TYPE_DESCRIPTIONS}

Be neutral between feat and refactor: feat requires new capability or behavior users \
can observe, refactor requires unchanged external behavior.

Details:
- 0 to 6 items, each starting with a past-tense verb and ending with a period
- Mark user_visible only for changes that affect users or the public API
- Use a changelog category only for user-visible details

Scope: pick one of the suggested scopes when it fits; omit it for multi-component changes."""

    @staticmethod
    def _format_map_input(filename: str, file_diff: str, context_header: str) -> str:
        """Format one file's diff into a prompt for the LLM."""
        context = f"{context_header}\n\n" if context_header else ""
        return f"""{context}FILE: {filename}

Diff Content:
{file_diff}

Record the observations for this file using the {OBSERVATION_TOOL_NAME} tool."""

    @staticmethod
    def _format_reduce_input(observations_json: str, stat: str, scope_candidates: str) -> str:
        """Format map-phase observations into a prompt for the LLM."""
        return f"""OVERVIEW OF CHANGES:
{stat}

SUGGESTED SCOPES:
{scope_candidates or "(none)"}

PER-FILE OBSERVATIONS:
{observations_json}

Classify the combined change using the {ANALYSIS_TOOL_NAME} tool."""

    @staticmethod
    def _format_diff_input(diff: str, stat: str, scope_candidates: str) -> str:
        """Format a whole diff into a prompt for the LLM."""
        return f"""OVERVIEW OF CHANGES:
{stat}

SUGGESTED SCOPES:
{scope_candidates or "(none)"}

Diff Content:
{diff}

Classify this change using the {ANALYSIS_TOOL_NAME} tool."""
