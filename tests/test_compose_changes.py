"""Tests for the command-line entry point."""

import json

import pytest

import compose_changes
from diff_composer.git.domain.value_objects import DiffMode

GROUPS = [
    {"changes": [{"path": "Cargo.toml"}], "type": "chore", "rationale": "bump serde"},
    {
        "changes": [{"path": "src/api.rs"}],
        "type": "feat",
        "rationale": "add endpoint",
        "dependencies": [0],
    },
]


@pytest.fixture
def repo(tmp_path):
    (tmp_path / ".git").mkdir()
    return tmp_path


@pytest.fixture
def git(monkeypatch, fake_git_repository, file_section):
    fake_git_repository.diffs[DiffMode.UNSTAGED] = file_section("src/api.rs") + file_section(
        "Cargo.toml"
    )
    monkeypatch.setattr(compose_changes, "GitRepositoryImpl", lambda: fake_git_repository)
    return fake_git_repository


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        compose_changes.main(argv)
    return excinfo.value.code


class TestCompose:
    def test_preview_does_not_stage(self, repo, git, tmp_path, capsys):
        groups_file = tmp_path / "groups.json"
        groups_file.write_text(json.dumps({"groups": GROUPS}), encoding="utf-8")

        code = _run(["compose", str(repo), "--groups", str(groups_file), "--preview"])

        out = capsys.readouterr().out
        assert code == 0
        assert "[1/2] Group 0: build: bump serde" in out
        assert "Preview only" in out
        assert git.calls == [("reset_staging", None)]

    def test_commits_each_group(self, repo, git, tmp_path):
        groups_file = tmp_path / "groups.json"
        groups_file.write_text(json.dumps(GROUPS), encoding="utf-8")

        assert _run(["compose", str(repo), "--groups", str(groups_file)]) == 0
        commits = [arg for name, arg in git.calls if name == "commit"]
        assert commits == ["build: bump serde", "feat: add endpoint"]

    def test_groups_file_that_is_not_utf8(self, repo, git, tmp_path, capsys):
        groups_file = tmp_path / "groups.json"
        groups_file.write_bytes(b'[{"rationale": "caf\xe9"}]')

        assert _run(["compose", str(repo), "--groups", str(groups_file)]) == 1
        err = capsys.readouterr().err
        assert f"Groups file {groups_file} is not valid UTF-8" in err
        assert "Configuration error" not in err


class TestErrors:
    def test_undecodable_input_is_not_reported_as_configuration(
        self, repo, monkeypatch, capsys
    ):
        class UndecodableGit:
            def get_diff(self, repo_path, mode):
                raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        monkeypatch.setattr(compose_changes, "GitRepositoryImpl", UndecodableGit)

        assert _run(["truncate", str(repo)]) == 1
        err = capsys.readouterr().err
        assert "Could not decode truncate input as UTF-8" in err
        assert "Configuration error" not in err

    def test_invalid_repository(self, tmp_path, capsys):
        assert _run(["truncate", str(tmp_path / "missing")]) == 1
        assert "Repository path does not exist" in capsys.readouterr().err
