"""Service for classifying changed files by path."""

from pathlib import Path

from diff_composer.config import ComposerConfig
from diff_composer.git.domain.value_objects import FileDiff

BINARY_PRIORITY = -100
IMPORTANT_PRIORITY = 50


class FileFilterService:
    """Service for ranking, describing and recognizing changed files."""

    # Manifests that carry real dependency decisions and deserve a look even when
    # the diff budget is tight
    PRIORITY_MANIFESTS: tuple[str, ...] = (
        "cargo.toml",
        "package.json",
        "go.mod",
        "requirements.txt",
        "pyproject.toml",
    )

    # Package and lock files across common ecosystems
    DEPENDENCY_MANIFESTS: frozenset[str] = frozenset(
        {
            "Cargo.toml",
            "Cargo.lock",
            "package.json",
            "package-lock.json",
            "pnpm-lock.yaml",
            "yarn.lock",
            "bun.lock",
            "bun.lockb",
            "go.mod",
            "go.sum",
            "requirements.txt",
            "Pipfile",
            "Pipfile.lock",
            "pyproject.toml",
            "Gemfile",
            "Gemfile.lock",
            "composer.json",
            "composer.lock",
            "build.gradle",
            "build.gradle.kts",
            "gradle.properties",
            "pom.xml",
        }
    )

    LOCK_EXTENSIONS: frozenset[str] = frozenset({".lock", ".lockb"})

    SOURCE_EXTENSIONS: frozenset[str] = frozenset(
        {"rs", "go", "py", "js", "ts", "java", "c", "cpp", "h", "hpp"}
    )

    SCRIPT_EXTENSIONS: frozenset[str] = frozenset({"sql", "sh", "bash"})

    TEST_MARKERS: tuple[str, ...] = ("/test", "test_", "_test.", ".test.")

    ENTRY_POINT_SUFFIXES: tuple[str, ...] = ("main.rs", "main.go", "main.py")

    def __init__(self, config: ComposerConfig | None = None) -> None:
        """
        Initialize FileFilterService.

        Args:
            config: Configuration providing the ignore list and low-priority
                    extensions. Defaults to ComposerConfig()
        """
        self._config = config or ComposerConfig()

    def is_excluded(self, file_path: str) -> bool:
        """Check if a file is on the configured ignore list."""
        return self._config.is_excluded(file_path)

    def is_test_file(self, file_path: str) -> bool:
        return any(marker in file_path for marker in self.TEST_MARKERS)

    def is_dependency_manifest(self, file_path: str) -> bool:
        """
        Check if a file is a package manifest or lock file.

        Args:
            file_path: Path to the file to check

        Returns:
            True if the file name is a known manifest or carries a lock extension
        """
        file_name = Path(file_path).name
        if not file_name:
            return False
        if file_name in self.DEPENDENCY_MANIFESTS:
            return True
        return Path(file_name).suffix.lower() in self.LOCK_EXTENSIONS

    def priority(self, file_diff: FileDiff) -> int:
        """
        Rank a file for inclusion under a size budget (higher first).

        Args:
            file_diff: Parsed file diff

        Returns:
            -100 for binaries, 70 for dependency manifests, 10 for tests, 20 for
            configured low-priority extensions, 100 for source code, 80 for
            shell/SQL and 50 for anything else
        """
        if file_diff.is_binary:
            return BINARY_PRIORITY

        filename = file_diff.filename
        if filename.lower().endswith(self.PRIORITY_MANIFESTS):
            return 70

        if self.is_test_file(filename):
            return 10

        ext = filename.rsplit(".", 1)[-1]
        if any(low.lstrip(".") == ext for low in self._config.low_priority_extensions):
            return 20

        if ext in self.SOURCE_EXTENSIONS:
            return 100
        if ext in self.SCRIPT_EXTENSIONS:
            return 80
        return IMPORTANT_PRIORITY

    def describe(self, filename: str, content: str) -> str:
        """
        Infer a one-line description of a file from its name and diff content.

        Args:
            filename: Path of the file
            content: Diff content of the file

        Returns:
            Short description such as "test file" or "configuration"
        """
        filename_lower = filename.lower()
        suffix = Path(filename).suffix.lower()

        if "test" in filename_lower:
            return "test file"
        if suffix == ".md":
            return "documentation"
        if "config" in filename_lower or suffix in {".toml", ".yaml", ".yml"}:
            return "configuration"
        if "error" in filename_lower:
            return "error definitions"
        if "type" in filename_lower:
            return "type definitions"
        if filename_lower.endswith(("mod.rs", "lib.rs", "__init__.py")):
            return "module exports"
        if filename_lower.endswith(self.ENTRY_POINT_SUFFIXES):
            return "entry point"

        if "impl " in content or "fn " in content or "def " in content:
            return "implementation"
        if "struct " in content or "enum " in content or "class " in content:
            return "type definitions"
        if "async " in content or "await" in content:
            return "async code"

        return "source code"
