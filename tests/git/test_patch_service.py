"""Tests for patch reconstruction and staging."""

from pathlib import Path

import pytest

from diff_composer.errors import EmptyPatchError, PatternNotFoundError
from diff_composer.git.domain.selectors import (
    AllSelector,
    FileChange,
    LinesSelector,
    SearchSelector,
)
from diff_composer.git.services.diff_parser_service import extract_file_diff
from diff_composer.git.services.patch_service import (
    PatchService,
    create_patch_for_changes,
    extract_hunks_for_file,
    partition_changes,
)

SMALL_FILE = """\
diff --git a/src/a.py b/src/a.py
index 1111111..2222222 100644
--- a/src/a.py
+++ b/src/a.py
@@ -1,3 +1,3 @@
 import os
-import sys
+import json
 print(os.getcwd())
"""

LONG_HUNK_HEADER = "@@ -5,21 +5,22 @@ def build():"
LATE_HUNK_HEADER = "@@ -40,2 +41,2 @@ def cleanup():"

LARGE_FILE = (
    "diff --git a/src/b.py b/src/b.py\n"
    "index 3333333..4444444 100644\n"
    "--- a/src/b.py\n"
    "+++ b/src/b.py\n"
    f"{LONG_HUNK_HEADER}\n"
    + "".join(f"     step_{n}()\n" for n in range(5, 15))
    + "+    validate()\n"
    + "".join(f"     step_{n}()\n" for n in range(15, 26))
    + f"{LATE_HUNK_HEADER}\n"
    "-    remove_tmp()\n"
    "+    remove_tmp(force=True)\n"
    "     return None\n"
)

FULL_DIFF = SMALL_FILE + LARGE_FILE


class TestExtractHunksForFile:
    def test_all_marker_returns_whole_section(self):
        assert extract_hunks_for_file(FULL_DIFF, "src/b.py", ["ALL"]) == LARGE_FILE

    def test_keeps_requested_hunks_in_file_order(self):
        patch = extract_hunks_for_file(
            FULL_DIFF, "src/b.py", [LATE_HUNK_HEADER, LONG_HUNK_HEADER]
        )

        assert patch == LARGE_FILE

    def test_matches_headers_fuzzily(self):
        patch = extract_hunks_for_file(FULL_DIFF, "src/b.py", ["@@ -40,2  +41,2 @@"])

        assert patch.startswith("diff --git a/src/b.py b/src/b.py\n")
        assert LATE_HUNK_HEADER in patch
        assert LONG_HUNK_HEADER not in patch
        assert patch.endswith("     return None\n")

    def test_no_matching_hunk_is_an_error(self):
        with pytest.raises(EmptyPatchError) as excinfo:
            extract_hunks_for_file(FULL_DIFF, "src/b.py", ["@@ -99,1 +99,1 @@"])

        assert excinfo.value.file_path == "src/b.py"


class TestCreatePatchForChanges:
    def test_whole_file_and_line_range(self):
        changes = [
            FileChange("src/a.py", (AllSelector(),)),
            FileChange("src/b.py", (LinesSelector(10, 20),)),
        ]

        patch = create_patch_for_changes(FULL_DIFF, changes)

        assert patch.startswith(extract_file_diff(FULL_DIFF, "src/a.py"))
        assert LONG_HUNK_HEADER in patch
        assert LATE_HUNK_HEADER not in patch
        assert "remove_tmp" not in patch

    def test_resolution_failure_yields_no_patch(self):
        changes = [
            FileChange("src/a.py", (AllSelector(),)),
            FileChange("src/b.py", (SearchSelector("no such text"),)),
        ]

        with pytest.raises(PatternNotFoundError):
            create_patch_for_changes(FULL_DIFF, changes)


class TestPartitionChanges:
    def test_whole_files_are_sorted_and_unique(self):
        changes = [
            FileChange("src/z.py"),
            FileChange("src/b.py", (LinesSelector(1, 2),)),
            FileChange("src/a.py"),
            FileChange("src/z.py"),
            FileChange("src/c.py", (AllSelector(), LinesSelector(3, 4))),
        ]

        full_files, partial = partition_changes(changes)

        assert full_files == ["src/a.py", "src/z.py"]
        assert [c.path for c in partial] == ["src/b.py", "src/c.py"]


class TestPatchService:
    def test_stages_whole_files_before_applying_patch(self, fake_git_repository):
        service = PatchService(fake_git_repository)
        changes = [
            FileChange("src/b.py", (SearchSelector("validate"),)),
            FileChange("src/a.py"),
        ]

        service.stage_changes(changes, Path("/repo"), FULL_DIFF)

        (stage_call, apply_call) = fake_git_repository.calls
        assert stage_call == ("stage_files", ["src/a.py"])
        assert apply_call[0] == "apply_patch_to_index"
        assert LONG_HUNK_HEADER in apply_call[1]
        assert LATE_HUNK_HEADER not in apply_call[1]

    def test_whole_files_only(self, fake_git_repository):
        PatchService(fake_git_repository).stage_changes(
            [FileChange("src/a.py"), FileChange("src/b.py")], Path("/repo"), FULL_DIFF
        )

        assert fake_git_repository.calls == [("stage_files", ["src/a.py", "src/b.py"])]

    def test_selector_error_stages_nothing(self, fake_git_repository):
        changes = [
            FileChange("src/a.py"),
            FileChange("src/b.py", (SearchSelector("no such text"),)),
        ]

        with pytest.raises(PatternNotFoundError):
            PatchService(fake_git_repository).stage_changes(changes, Path("/repo"), FULL_DIFF)

        assert fake_git_repository.calls == []
