"""Service for suggesting commit scopes from changed paths."""

from collections import defaultdict
from collections.abc import Iterable

from diff_composer.analysis.domain.value_objects import ScopeCandidate
from diff_composer.config import ComposerConfig
from diff_composer.git.domain.value_objects import FileDiff

# Skipped when deeper segments follow, never suggested as a scope root
PLACEHOLDER_DIRS = frozenset(
    {"src", "lib", "bin", "crates", "include", "tests", "test", "benches", "examples", "docs"}
)

SKIP_DIRS = frozenset(
    {"test", "tests", "benches", "examples", "target", "build", "node_modules", ".github"}
)

MAX_SUGGESTIONS = 5
MIN_SUGGESTION_PERCENTAGE = 10.0
TWO_SEGMENT_THRESHOLD = 60.0


def components_from_path(path: str) -> list[str]:
    """
    Derive one- and two-segment scope candidates from a file path.

    ``src/api/client.py`` yields ``["api"]`` and ``crates/core/net/x.rs``
    yields ``["core", "core/net"]``.
    """
    segments = path.split("/")
    meaningful: list[str] = []
    for index, segment in enumerate(segments):
        if segment in PLACEHOLDER_DIRS and index + 1 < len(segments):
            continue
        # File names are not scopes
        if "." in segment and not segment.startswith("."):
            continue
        if segment in SKIP_DIRS:
            continue
        if segment and not segment.startswith("."):
            meaningful.append(segment)

    if not meaningful:
        return []
    candidates = [meaningful[0]]
    if len(meaningful) >= 2:
        candidates.append(f"{meaningful[0]}/{meaningful[1]}")
    return candidates


class ScopeService:
    """Service for ranking scope candidates by share of changed lines."""

    def __init__(self, config: ComposerConfig | None = None) -> None:
        """
        Initialize ScopeService.

        Args:
            config: Exclusion list and wide-change threshold
        """
        self._config = config or ComposerConfig()

    def candidates(self, files: Iterable[FileDiff]) -> tuple[list[ScopeCandidate], int]:
        """
        Rank scope candidates for a set of changed files.

        Returns:
            (candidates by descending confidence, total changed lines counted)
        """
        component_lines: dict[str, int] = defaultdict(int)
        total_lines = 0

        for file_diff in files:
            if file_diff.changed_lines == 0 or self._config.is_excluded(file_diff.filename):
                continue
            total_lines += file_diff.changed_lines
            for component in components_from_path(file_diff.filename):
                component_lines[component] += file_diff.changed_lines

        candidates = []
        for path, lines in component_lines.items():
            if path.split("/")[0] in PLACEHOLDER_DIRS:
                continue
            percentage = lines / total_lines * 100.0
            if "/" in path:
                confidence = percentage * (1.2 if percentage > TWO_SEGMENT_THRESHOLD else 0.8)
            else:
                confidence = percentage
            candidates.append(
                ScopeCandidate(path=path, percentage=percentage, confidence=confidence)
            )

        candidates.sort(key=lambda c: c.confidence, reverse=True)
        return candidates, total_lines

    def is_wide_change(self, candidates: list[ScopeCandidate]) -> bool:
        """True when no component dominates or three or more roots are touched."""
        if candidates and candidates[0].percentage / 100.0 < self._config.wide_change_threshold:
            return True
        roots = {candidate.path.split("/")[0] for candidate in candidates}
        return len(roots) >= 3

    def describe(self, files: Iterable[FileDiff]) -> str:
        """
        Render scope suggestions as prompt text.

        Returns:
            Up to five ``path (NN%, confidence)`` entries, or a parenthesized
            reason when no scope should be used
        """
        candidates, total_lines = self.candidates(files)
        if total_lines == 0:
            return "(none - no measurable changes)"
        if self.is_wide_change(candidates):
            return "(none - multi-component change)"

        parts = []
        for candidate in candidates[:MAX_SUGGESTIONS]:
            if candidate.percentage < MIN_SUGGESTION_PERCENTAGE:
                continue
            if "/" in candidate.path and candidate.percentage <= TWO_SEGMENT_THRESHOLD:
                label = "moderate confidence"
            else:
                label = "high confidence"
            parts.append(f"{candidate.path} ({candidate.percentage:.0f}%, {label})")

        if not parts:
            return "(none - unclear component)"
        return f"{', '.join(parts)}\nPrefer 2-segment scopes marked 'high confidence'"
