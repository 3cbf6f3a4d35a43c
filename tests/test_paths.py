"""Tests for path management."""

from pathlib import Path

from tasker.config.paths import (
    ENV_VAR,
    get_config_path,
    get_database_path,
    get_logs_path,
    get_tasker_home,
)


class TestGetTaskerHome:
    """Tests for get_tasker_home()."""

    def test_default_is_home_dot_tasker(self, monkeypatch):
        # Clear env var and cache
        monkeypatch.delenv(ENV_VAR, raising=False)
        get_tasker_home.cache_clear()

        assert get_tasker_home() == Path.home() / ".tasker"

    def test_respects_env_var(self, monkeypatch, tmp_path):
        custom_path = tmp_path / "custom-tasker"
        monkeypatch.setenv(ENV_VAR, str(custom_path))
        get_tasker_home.cache_clear()

        assert get_tasker_home() == custom_path

    def test_expands_tilde_in_env_var(self, monkeypatch):
        monkeypatch.setenv(ENV_VAR, "~/my-tasker")
        get_tasker_home.cache_clear()

        assert get_tasker_home() == Path.home() / "my-tasker"


class TestDerivedPaths:
    """Tests for derived path functions."""

    def test_config_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_VAR, str(tmp_path))
        get_tasker_home.cache_clear()

        assert get_config_path() == tmp_path / "config.toml"

    def test_database_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_VAR, str(tmp_path))
        get_tasker_home.cache_clear()

        assert get_database_path() == tmp_path / "tasks.db"

    def test_logs_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_VAR, str(tmp_path))
        get_tasker_home.cache_clear()

        assert get_logs_path() == tmp_path / "logs"
