"""Exception hierarchy for diff_composer."""


class DiffComposerError(RuntimeError):
    """Base class for all diff_composer failures."""


class GitCommandError(DiffComposerError):
    """A git subprocess failed."""


class NoChangesError(DiffComposerError):
    """The requested diff is empty."""

    def __init__(self, mode: str) -> None:
        self.mode = mode
        super().__init__(f"No {mode} changes found")


class FileNotInDiffError(DiffComposerError):
    """A requested file has no section in the diff."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        super().__init__(f"File {file_path} not found in diff")


class SelectorDecodeError(DiffComposerError, ValueError):
    """A serialized hunk selector could not be decoded."""


class SelectorResolutionError(DiffComposerError):
    """A hunk selector matched nothing in the target file."""

    def __init__(self, message: str, file_path: str) -> None:
        self.file_path = file_path
        super().__init__(message)


class NoChangesInRangeError(SelectorResolutionError):
    """A line range selector does not intersect any hunk."""

    def __init__(
        self,
        file_path: str,
        start: int,
        end: int,
        nearest: tuple[int, int] | None = None,
    ) -> None:
        self.start = start
        self.end = end
        self.nearest = nearest
        hint = f" (nearest hunk: lines {nearest[0]}-{nearest[1]})" if nearest else ""
        super().__init__(
            f"No changes found in lines {start}-{end} of {file_path}. These lines may be "
            f"context (unchanged) rather than modifications{hint}",
            file_path,
        )


class PatternNotFoundError(SelectorResolutionError):
    """A search selector (text or hunk header) matched no hunk."""

    def __init__(self, file_path: str, pattern: str, is_header: bool = False) -> None:
        self.pattern = pattern
        if is_header:
            message = f"Hunk header not found: {pattern} in {file_path}"
        else:
            message = f"Pattern '{pattern}' not found in any hunk in {file_path}"
        super().__init__(message, file_path)


class EmptyPatchError(DiffComposerError):
    """Reconstruction produced no hunk body for a file."""

    def __init__(self, file_path: str, hunk_headers: list[str]) -> None:
        self.file_path = file_path
        self.hunk_headers = hunk_headers
        super().__init__(f"No hunks found for {file_path} with headers {hunk_headers!r}")


class InvalidCommitTypeError(DiffComposerError, ValueError):
    """A commit type is not one of the conventional types."""


class InvalidScopeError(DiffComposerError, ValueError):
    """A commit scope does not follow the ``segment[/segment]`` rules."""


class InvalidDependencyError(DiffComposerError):
    """A change group references a missing group or itself."""


class CircularDependencyError(DiffComposerError):
    """The dependency relation between change groups is not acyclic."""


class ComposeValidationError(DiffComposerError):
    """A set of change groups is structurally unusable."""


class NonExhaustiveGroupsError(ComposeValidationError):
    """Some changed files are not claimed by any group."""

    def __init__(self, missing_files: list[str]) -> None:
        self.missing_files = missing_files
        listing = ", ".join(missing_files)
        super().__init__(
            f"Non-exhaustive groups: {len(missing_files)} file(s) not covered: {listing}"
        )


class AnalysisError(DiffComposerError):
    """The analysis collaborator returned something unusable."""


class ApiError(AnalysisError):
    """The model API answered with a non-retryable failure status."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"API request failed (HTTP {status}): {body}")


class RetryableApiError(AnalysisError):
    """A transient API failure (5xx, empty response, transport error)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class ApiRetryExhaustedError(AnalysisError):
    """Retries were used up without a successful response."""

    def __init__(self, retries: int, last_error: Exception | None = None) -> None:
        self.retries = retries
        self.last_error = last_error
        reason = str(last_error) if last_error else "Max retries exceeded"
        super().__init__(f"API call failed after {retries} retries: {reason}")
