"""Configuration package for Telxtab."""

from telxtab.config.app_config import (
    AIConfig,
    AppConfig,
    AuthConfig,
    ProviderConfig,
    RewardsConfig,
    StorageConfig,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)

__all__ = [
    "AIConfig",
    "AppConfig",
    "AuthConfig",
    "ProviderConfig",
    "RewardsConfig",
    "StorageConfig",
    "clear_config_cache",
    "get_provider_config",
    "load_app_config",
]
