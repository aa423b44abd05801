"""Tests for hunk parsing and selector resolution."""

import pytest

from diff_composer.errors import FileNotInDiffError, NoChangesInRangeError, PatternNotFoundError
from diff_composer.git.domain.selectors import AllSelector, LinesSelector, SearchSelector
from diff_composer.git.services.hunk_service import (
    find_hunks_for_line_range,
    headers_match,
    nearest_hunk,
    normalize_hunk_header,
    parse_file_hunks,
    parse_hunk_header,
    resolve_selectors_to_headers,
)

FIRST_HUNK = "@@ -1,3 +1,4 @@"
SECOND_HUNK = "@@ -20,4 +21,4 @@ fn handler() {"
THIRD_HUNK = "@@ -40,2 +41,3 @@ fn tail() {"

LIB_DIFF = f"""\
diff --git a/src/lib.rs b/src/lib.rs
index 1111111..2222222 100644
--- a/src/lib.rs
+++ b/src/lib.rs
{FIRST_HUNK}
 use std::io;
+use std::fmt;
 fn main() {{
     run();
{SECOND_HUNK}
     let x = 1;
-    let y = 2;
+    let y = 3;
     x + y
 }}
{THIRD_HUNK}
     let a = 1;
+    let retries = 3;
     let b = 2;
"""

LATE_HUNK_DIFF = (
    "diff --git a/src/late.rs b/src/late.rs\n"
    "--- a/src/late.rs\n"
    "+++ b/src/late.rs\n"
    "@@ -50,11 +50,12 @@\n"
    + "".join(f" line {n}\n" for n in range(50, 56))
    + "+inserted\n"
    + "".join(f" line {n}\n" for n in range(56, 61))
)


class TestParseHunkHeader:
    def test_full_header(self):
        assert parse_hunk_header("@@ -1,3 +1,4 @@") == (1, 3, 1, 4)

    def test_missing_count_means_one(self):
        assert parse_hunk_header("@@ -5 +5,2 @@ fn x()") == (5, 1, 5, 2)

    def test_malformed(self):
        assert parse_hunk_header("not a header") is None
        assert parse_hunk_header("@@ -a,b +1 @@") is None
        assert parse_hunk_header("@@ -1,2 +1,2") is None


class TestNormalizeHunkHeader:
    def test_keeps_numeric_core_only(self):
        assert normalize_hunk_header(SECOND_HUNK) == "-20,4+21,4"

    def test_tolerates_whitespace_drift(self):
        assert headers_match("@@  -20,4   +21,4 @@", SECOND_HUNK)
        assert not headers_match("@@ -20,4 +21,5 @@", SECOND_HUNK)


class TestParseFileHunks:
    def test_hunks_in_file_order(self):
        hunks = parse_file_hunks(LIB_DIFF)

        assert [h.header for h in hunks] == [FIRST_HUNK, SECOND_HUNK, THIRD_HUNK]
        assert [h.old_line_range for h in hunks] == [(1, 3), (20, 23), (40, 41)]

    def test_lines_include_header_and_body(self):
        first = parse_file_hunks(LIB_DIFF)[0]

        assert first.lines == (
            FIRST_HUNK,
            " use std::io;",
            "+use std::fmt;",
            " fn main() {",
            "     run();",
        )

    def test_pure_insertion_collapses_range(self):
        diff = "--- a/x\n+++ b/x\n@@ -7,0 +8,2 @@\n+a\n+b\n"

        (hunk,) = parse_file_hunks(diff)

        assert hunk.old_line_range == (7, 7)

    def test_section_without_plus_plus_plus_line(self):
        diff = "diff --git a/x b/x\n@@ -1 +1 @@\n-a\n+b\n"

        assert [h.header for h in parse_file_hunks(diff)] == ["@@ -1 +1 @@"]


class TestLineRanges:
    def test_intersection(self):
        hunks = parse_file_hunks(LIB_DIFF)

        assert find_hunks_for_line_range(hunks, 3, 20) == [FIRST_HUNK, SECOND_HUNK]
        assert find_hunks_for_line_range(hunks, 24, 39) == []

    def test_nearest_hunk_within_window(self):
        hunks = parse_file_hunks(LATE_HUNK_DIFF)

        assert nearest_hunk(hunks, 35, 40) == (50, 60)
        assert nearest_hunk(hunks, 1, 5) is None


class TestResolveSelectors:
    def test_all_short_circuits(self):
        headers = resolve_selectors_to_headers(
            LIB_DIFF, "src/lib.rs", [LinesSelector(20, 21), AllSelector()]
        )

        assert headers == [FIRST_HUNK, SECOND_HUNK, THIRD_HUNK]

    def test_all_wins_over_selectors_that_match_nothing(self):
        headers = resolve_selectors_to_headers(
            LIB_DIFF,
            "src/lib.rs",
            [LinesSelector(900, 910), SearchSelector("nonexistent"), AllSelector()],
        )

        assert headers == [FIRST_HUNK, SECOND_HUNK, THIRD_HUNK]

    def test_union_is_deduplicated_in_first_seen_order(self):
        headers = resolve_selectors_to_headers(
            LIB_DIFF,
            "src/lib.rs",
            [LinesSelector(40, 40), LinesSelector(1, 2), LinesSelector(41, 45)],
        )

        assert headers == [THIRD_HUNK, FIRST_HUNK]

    def test_search_by_header_is_fuzzy(self):
        headers = resolve_selectors_to_headers(
            LIB_DIFF, "src/lib.rs", [SearchSelector("@@ -20,4 +21,4 @@")]
        )

        assert headers == [SECOND_HUNK]

    def test_search_by_text(self):
        headers = resolve_selectors_to_headers(
            LIB_DIFF, "src/lib.rs", [SearchSelector("retries")]
        )

        assert headers == [THIRD_HUNK]

    def test_search_matches_function_context_in_header(self):
        headers = resolve_selectors_to_headers(
            LIB_DIFF, "src/lib.rs", [SearchSelector("fn handler")]
        )

        assert headers == [SECOND_HUNK]

    def test_pattern_not_found(self):
        with pytest.raises(PatternNotFoundError, match="nonexistent") as excinfo:
            resolve_selectors_to_headers(LIB_DIFF, "src/lib.rs", [SearchSelector("nonexistent")])

        assert excinfo.value.file_path == "src/lib.rs"

    def test_range_without_changes_names_nearest_hunk(self):
        with pytest.raises(NoChangesInRangeError) as excinfo:
            resolve_selectors_to_headers(LATE_HUNK_DIFF, "src/late.rs", [LinesSelector(35, 40)])

        message = str(excinfo.value)
        assert "lines 35-40 of src/late.rs" in message
        assert "nearest hunk: lines 50-60" in message

    def test_range_far_from_any_hunk_has_no_hint(self):
        """
        The hint only covers hunks less than 20 lines away. Lines 1-5 are 45
        lines from the hunk at 50-60, so the 20-line window wins over the usage
        example that shows a hint for this exact request.
        """
        with pytest.raises(NoChangesInRangeError) as excinfo:
            resolve_selectors_to_headers(LATE_HUNK_DIFF, "src/late.rs", [LinesSelector(1, 5)])

        assert excinfo.value.nearest is None
        assert "nearest hunk" not in str(excinfo.value)

    def test_unknown_file(self):
        with pytest.raises(FileNotInDiffError):
            resolve_selectors_to_headers(LIB_DIFF, "src/other.rs", [AllSelector()])
