"""Configuration package for the practice engine."""

from practice.config.app_config import (
    AppConfig,
    CacheConfig,
    GeneratorConfig,
    LevelingPolicy,
    ProviderConfig,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "CacheConfig",
    "GeneratorConfig",
    "LevelingPolicy",
    "ProviderConfig",
    "clear_config_cache",
    "get_provider_config",
    "load_app_config",
]
