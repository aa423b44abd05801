"""Tests for per-file and whole-diff truncation."""

from diff_composer.config import ComposerConfig
from diff_composer.git.domain.value_objects import FileDiff
from diff_composer.git.services.diff_parser_service import parse_diff
from diff_composer.git.services.truncation_service import (
    NO_RELEVANT_FILES_MESSAGE,
    TRUNCATION_MARKER_RESERVE,
    file_priority,
    smart_truncate_diff,
    truncate_file_diff,
)

SHORT_HEADER = "diff --git a/x.rs b/x.rs"

HUNDRED_LINES = "\n".join(f"+line {n}" for n in range(100))


def _section(path: str, body: str) -> str:
    return (
        f"diff --git a/{path} b/{path}\n"
        "index 1111111..2222222 100644\n"
        f"--- a/{path}\n"
        f"+++ b/{path}\n"
        f"{body}"
    )


SMALL_CHANGE = "@@ -1 +1 @@\n-old\n+new\n"


class TestTruncateFileDiff:
    def test_fitting_file_is_returned_unchanged(self):
        file_diff = FileDiff(filename="x.rs", header=SHORT_HEADER, content="+a")

        assert truncate_file_diff(file_diff, 1000) is file_diff

    def test_long_content_keeps_head_and_tail(self):
        file_diff = FileDiff(
            filename="x.rs", header=SHORT_HEADER, content=HUNDRED_LINES, additions=100
        )

        truncated = truncate_file_diff(file_diff, 300)
        lines = truncated.content.split("\n")

        assert lines[:15] == [f"+line {n}" for n in range(15)]
        assert lines[-10:] == [f"+line {n}" for n in range(90, 100)]
        assert "... (truncated 75 lines) ..." in truncated.content
        assert truncated.header == SHORT_HEADER
        assert truncated.size <= 300 + TRUNCATION_MARKER_RESERVE

    def test_short_content_is_cut_at_budget(self):
        content = "\n".join(f"+{'x' * 40}" for _ in range(10))
        file_diff = FileDiff(filename="x.rs", header=SHORT_HEADER, content=content)

        truncated = truncate_file_diff(file_diff, 200)

        assert truncated.content.endswith("\n... (truncated)")
        assert truncated.content.startswith("+xxxx")
        assert len(truncated.content) < len(content)

    def test_long_lines_fall_back_to_cut(self):
        content = "\n".join(f"+{n:03d} " + "x" * 120 for n in range(100))
        file_diff = FileDiff(filename="x.rs", header=SHORT_HEADER, content=content)

        truncated = truncate_file_diff(file_diff, 300)

        assert truncated.size <= 300
        assert truncated.content.startswith("+000 ")
        assert truncated.content.endswith("\n... (truncated)")

    def test_tiny_budget_leaves_only_marker(self):
        file_diff = FileDiff(filename="x.rs", header=SHORT_HEADER, content=HUNDRED_LINES)

        assert truncate_file_diff(file_diff, 60).content == "... (truncated)"


class TestFilePriority:
    def test_ranking(self):
        def priority(name: str, is_binary: bool = False) -> int:
            return file_priority(FileDiff(filename=name, header="", is_binary=is_binary))

        assert priority("src/main.rs") > priority("deploy.sh") > priority("Cargo.toml")
        assert priority("Cargo.toml") > priority("Makefile") > priority("README.md")
        assert priority("README.md") > priority("tests/api_test.rs")
        assert priority("logo.png", is_binary=True) < priority("tests/api_test.rs")


class TestSmartTruncateDiff:
    def test_fitting_diff_is_unchanged(self):
        diff = _section("src/lib.rs", SMALL_CHANGE)

        assert smart_truncate_diff(diff, 10_000) + "\n" == diff

    def test_only_excluded_files(self):
        diff = _section("Cargo.lock", SMALL_CHANGE) + _section(".gitignore", SMALL_CHANGE)

        assert smart_truncate_diff(diff, 10_000) == NO_RELEVANT_FILES_MESSAGE

    def test_excluded_files_are_dropped(self):
        diff = _section("src/lib.rs", SMALL_CHANGE) + _section("Cargo.lock", SMALL_CHANGE)

        result = smart_truncate_diff(diff, 10_000)

        assert "src/lib.rs" in result
        assert "Cargo.lock" not in result

    def test_every_header_is_kept_when_headers_fit(self, file_section):
        paths = ["src/m1.rs", "src/m2.rs", "src/m3.rs"]
        diff = "".join(file_section(path, added=100) for path in paths)

        result = smart_truncate_diff(diff, 1200)

        assert len(result) <= 1200
        for path in paths:
            assert f"diff --git a/{path} b/{path}" in result
        assert "truncated" in result
        assert len(parse_diff(result)) == 3

    def test_token_budget_takes_precedence(self, file_section):
        diff = "".join(file_section(f"src/m{n}.rs", added=100) for n in range(3))
        config = ComposerConfig(max_diff_tokens=100)

        result = smart_truncate_diff(diff, 100_000, config)

        assert len(result) <= 400
        assert result.count("diff --git") == 3

    def test_source_file_preferred_over_markdown(self):
        # Equal sizes; the budget fits one file but not both headers
        diff = _section("docs/guide.md", SMALL_CHANGE) + _section("src/engine.rs", SMALL_CHANGE)
        sizes = [f.size for f in parse_diff(diff)]
        assert sizes[0] == sizes[1]

        result = smart_truncate_diff(diff, sizes[0] + 60)

        assert "src/engine.rs" in result
        assert "docs/guide.md" not in result
        assert result.endswith("... (1 files omitted) ...")

    def test_long_lines_stay_within_budget(self):
        body = "@@ -1,100 +1,100 @@\n" + "".join(
            f"+{n:03d} {'y' * 120}\n" for n in range(100)
        )
        diff = _section("src/wide.rs", body)

        result = smart_truncate_diff(diff, 300)

        assert len(result) <= 300 + TRUNCATION_MARKER_RESERVE
        assert result.startswith("diff --git a/src/wide.rs b/src/wide.rs")

    def test_nothing_fits(self):
        diff = _section("docs/guide.md", SMALL_CHANGE)

        assert smart_truncate_diff(diff, 10) == "Error: Could not include any files in the diff"
