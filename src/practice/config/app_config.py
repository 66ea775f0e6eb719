"""Application configuration loader.

Loads centralized configuration from data/config/practice_config_v1.yaml
(or the file named by PRACTICE_CONFIG), falling back to built-in defaults.

Usage:
    from practice.config.app_config import load_app_config

    config = load_app_config()
    policy = config.leveling
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/practice_config_v1.yaml")
CONFIG_ENV = "PRACTICE_CONFIG"
DB_PATH_ENV = "PRACTICE_DB_PATH"


@dataclass
class ProviderConfig:
    """Configuration for a single LLM provider."""

    base_url: str | None
    default_model: str
    api_key_env: str | None = None

    def get_api_key(self) -> str | None:
        """Get API key from environment variable."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class GeneratorConfig:
    """Settings for on-demand content generation."""

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 8.0
    temperature: float = 0.8
    max_tokens: int = 3000


@dataclass(frozen=True)
class LevelingPolicy:
    """Tunable thresholds for proficiency updates.

    Scores at or above success_threshold build a streak; scores below
    failure_threshold break it. Everything in between is neutral.
    """

    success_threshold: int = 80
    failure_threshold: int = 50
    step: float = 0.5
    promote_streak: int = 2
    promote_min_attempts: int = 1
    demote_failures: int = 2
    default_level: float = 2.0
    min_level: float = 1.0
    max_level: float = 6.0


@dataclass
class CacheConfig:
    """Content cache settings."""

    pregenerate_target: int = 10


@dataclass
class AppConfig:
    """Application-wide configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    leveling: LevelingPolicy = field(default_factory=LevelingPolicy)
    max_update_retries: int = 5
    cache: CacheConfig = field(default_factory=CacheConfig)
    paths: dict[str, str] = field(default_factory=dict)

    @property
    def db_path(self) -> Path:
        """Database location, PRACTICE_DB_PATH wins over the config file."""
        override = os.environ.get(DB_PATH_ENV)
        if override:
            return Path(override)
        return Path(self.paths.get("db_path", "db/practice.db"))


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "providers": {
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "api_key_env": None,
            },
            "openai": {
                "base_url": None,
                "default_model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            },
            "anthropic": {
                "base_url": None,
                "default_model": "claude-sonnet-4-20250514",
                "api_key_env": "ANTHROPIC_API_KEY",
            },
        },
        "generator": {
            "provider": "openai",
            "model": "gpt-4o-mini",
            "timeout_seconds": 8.0,
            "temperature": 0.8,
            "max_tokens": 3000,
        },
        "leveling": {},
        "max_update_retries": 5,
        "cache": {"pregenerate_target": 10},
        "paths": {
            "db_path": "db/practice.db",
        },
    }


def _parse_leveling(data: dict[str, Any]) -> LevelingPolicy:
    """Build a LevelingPolicy, keeping defaults for missing keys."""
    defaults = LevelingPolicy()
    policy = LevelingPolicy(
        success_threshold=int(data.get("success_threshold", defaults.success_threshold)),
        failure_threshold=int(data.get("failure_threshold", defaults.failure_threshold)),
        step=float(data.get("step", defaults.step)),
        promote_streak=int(data.get("promote_streak", defaults.promote_streak)),
        promote_min_attempts=int(
            data.get("promote_min_attempts", defaults.promote_min_attempts)
        ),
        demote_failures=int(data.get("demote_failures", defaults.demote_failures)),
        default_level=float(data.get("default_level", defaults.default_level)),
        min_level=float(data.get("min_level", defaults.min_level)),
        max_level=float(data.get("max_level", defaults.max_level)),
    )

    if policy.failure_threshold > policy.success_threshold:
        raise ValueError(
            "leveling.failure_threshold must not exceed leveling.success_threshold"
        )
    if not policy.min_level <= policy.default_level <= policy.max_level:
        raise ValueError("leveling.default_level must lie within [min_level, max_level]")

    return policy


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    providers = {}
    for name, pconfig in data.get("providers", defaults["providers"]).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            api_key_env=pconfig.get("api_key_env"),
        )

    gen_data = data.get("generator", {})
    generator = GeneratorConfig(
        provider=gen_data.get("provider", "openai"),
        model=gen_data.get("model", "gpt-4o-mini"),
        timeout_seconds=float(gen_data.get("timeout_seconds", 8.0)),
        temperature=float(gen_data.get("temperature", 0.8)),
        max_tokens=int(gen_data.get("max_tokens", 3000)),
    )

    cache_data = data.get("cache", {})
    cache = CacheConfig(
        pregenerate_target=int(cache_data.get("pregenerate_target", 10)),
    )

    paths = {**defaults["paths"], **data.get("paths", {})}

    return AppConfig(
        providers=providers,
        generator=generator,
        leveling=_parse_leveling(data.get("leveling") or {}),
        max_update_retries=int(data.get("max_update_retries", 5)),
        cache=cache,
        paths=paths,
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    config_file = Path(os.environ.get(CONFIG_ENV, CONFIG_FILE))

    data: dict[str, Any]
    if config_file.exists():
        logger.debug("loading_app_config", source=str(config_file))
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Get configuration for a specific provider.

    Args:
        provider: Provider name (e.g., "lmstudio", "openai")

    Returns:
        ProviderConfig or None if provider not found.
    """
    config = load_app_config()
    return config.providers.get(provider)


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
