"""Tests for app configuration.

Tests config loading, environment overrides and leveling policy validation.
"""

import pytest

from practice.config.app_config import (
    AppConfig,
    LevelingPolicy,
    ProviderConfig,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)


class TestDefaults:
    """Built-in defaults apply when no config file exists."""

    def test_default_config(self):
        config = load_app_config()

        assert isinstance(config, AppConfig)
        assert config.generator.provider == "openai"
        assert config.generator.timeout_seconds == 8.0
        assert config.leveling == LevelingPolicy()
        assert config.max_update_retries == 5
        assert config.cache.pregenerate_target == 10

    def test_default_db_path(self):
        assert str(load_app_config().db_path).endswith("practice.db")

    def test_config_is_cached(self):
        assert load_app_config() is load_app_config()

    def test_force_reload(self):
        first = load_app_config()
        assert load_app_config(force_reload=True) is not first


class TestYamlConfig:
    """Loading from the file named by PRACTICE_CONFIG."""

    def test_loads_yaml(self, tmp_path, monkeypatch):
        """Values from the file override defaults, missing keys keep them."""
        config_path = tmp_path / "practice.yaml"
        config_path.write_text(
            """
generator:
  provider: lmstudio
  model: local-model
  timeout_seconds: 4
leveling:
  success_threshold: 85
  promote_streak: 3
max_update_retries: 9
cache:
  pregenerate_target: 4
paths:
  db_path: custom/practice.db
""",
            encoding="utf-8",
        )
        monkeypatch.setenv("PRACTICE_CONFIG", str(config_path))
        clear_config_cache()

        config = load_app_config()

        assert config.generator.provider == "lmstudio"
        assert config.generator.model == "local-model"
        assert config.generator.timeout_seconds == 4.0
        assert config.leveling.success_threshold == 85
        assert config.leveling.promote_streak == 3
        assert config.leveling.failure_threshold == 50
        assert config.max_update_retries == 9
        assert config.cache.pregenerate_target == 4
        assert config.db_path.as_posix() == "custom/practice.db"

    def test_empty_file_uses_defaults(self, tmp_path, monkeypatch):
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("", encoding="utf-8")
        monkeypatch.setenv("PRACTICE_CONFIG", str(config_path))
        clear_config_cache()

        config = load_app_config()

        assert config.leveling == LevelingPolicy()

    def test_inconsistent_thresholds_rejected(self, tmp_path, monkeypatch):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text(
            "leveling:\n  success_threshold: 40\n  failure_threshold: 60\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("PRACTICE_CONFIG", str(config_path))
        clear_config_cache()

        with pytest.raises(ValueError, match="failure_threshold"):
            load_app_config()

    def test_default_level_out_of_range_rejected(self, tmp_path, monkeypatch):
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("leveling:\n  default_level: 7.0\n", encoding="utf-8")
        monkeypatch.setenv("PRACTICE_CONFIG", str(config_path))
        clear_config_cache()

        with pytest.raises(ValueError, match="default_level"):
            load_app_config()


class TestEnvOverrides:
    """Environment variables win over the file."""

    def test_db_path_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PRACTICE_DB_PATH", str(tmp_path / "env.db"))

        assert load_app_config().db_path == tmp_path / "env.db"

    def test_provider_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        provider = get_provider_config("openai")

        assert isinstance(provider, ProviderConfig)
        assert provider.get_api_key() == "sk-test"

    def test_unknown_provider(self):
        assert get_provider_config("unknown_provider") is None
