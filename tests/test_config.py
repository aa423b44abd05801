"""Tests for configuration loading."""

import pytest

from diff_composer import config as config_module
from diff_composer.config import ComposerConfig, load_config


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.setattr(config_module, "load_env_file", lambda: None)
    for name in config_module._FIELD_PARSERS:
        monkeypatch.delenv(f"DIFF_COMPOSER_{name.upper()}", raising=False)


class TestLoadConfig:
    def test_defaults(self):
        assert load_config() == ComposerConfig()

    def test_environment_values(self, monkeypatch):
        monkeypatch.setenv("DIFF_COMPOSER_MAX_RETRIES", "5")
        monkeypatch.setenv("DIFF_COMPOSER_MAP_REDUCE_ENABLED", "false")
        monkeypatch.setenv("DIFF_COMPOSER_EXCLUDED_FILES", "go.sum, yarn.lock")

        config = load_config()

        assert config.max_retries == 5
        assert config.map_reduce_enabled is False
        assert config.excluded_files == ("go.sum", "yarn.lock")

    def test_overrides_win_over_environment(self, monkeypatch):
        monkeypatch.setenv("DIFF_COMPOSER_MAX_DIFF_LENGTH", "5000")

        assert load_config(max_diff_length=800).max_diff_length == 800

    def test_none_overrides_are_ignored(self, monkeypatch):
        monkeypatch.setenv("DIFF_COMPOSER_MAP_PARALLELISM", "2")

        assert load_config(map_parallelism=None).map_parallelism == 2

    def test_unknown_override(self):
        with pytest.raises(ValueError, match="Unknown configuration field"):
            load_config(colour=True)

    def test_unparsable_environment_value(self, monkeypatch):
        monkeypatch.setenv("DIFF_COMPOSER_MAX_RETRIES", "many")

        with pytest.raises(ValueError, match="DIFF_COMPOSER_MAX_RETRIES"):
            load_config()


class TestIsExcluded:
    def test_suffix_match(self):
        config = ComposerConfig()

        assert config.is_excluded("frontend/package-lock.json")
        assert config.is_excluded("Cargo.lock")
        assert not config.is_excluded("src/lock.rs")
