"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is missing.

Usage:
    from telxtab.config.app_config import load_app_config, get_provider_config

    config = load_app_config()
    provider = get_provider_config("gemini")
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
CONFIG_FILE = Path("data/config/app_config_v1.yaml")


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
class AIConfig:
    """Defaults for the AI tutor, question generator and matchmaker."""

    default_provider: str = "gemini"
    chat_model: str | None = None
    fast_model: str | None = None
    temperature: float = 0.7
    max_tokens: int = 1000


@dataclass
class RewardsConfig:
    """XP rewards and progress write granularity."""

    lesson_completion_xp: int = 100
    exercise_correct_xp: int = 10
    progress_step_percent: int = 5


@dataclass
class AuthConfig:
    """Token lifetimes and password policy."""

    token_ttl_hours: int = 720
    reset_token_ttl_minutes: int = 60
    min_password_length: int = 6


@dataclass
class StorageConfig:
    """Object storage limits."""

    max_upload_bytes: int = 200 * 1024 * 1024
    public_base_url: str = "/storage"


@dataclass
class AppConfig:
    """Application-wide configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    ai: AIConfig = field(default_factory=AIConfig)
    rewards: RewardsConfig = field(default_factory=RewardsConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    paths: dict[str, str] = field(default_factory=dict)

    @property
    def db_path(self) -> Path:
        return Path(self.paths.get("db_path", "db/telxtab.db"))

    @property
    def storage_dir(self) -> Path:
        return Path(self.paths.get("storage_dir", "data/storage"))


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "providers": {
            "gemini": {
                "base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
                "default_model": "gemini-1.5-flash",
                "api_key_env": "GEMINI_API_KEY",
            },
            "openai": {
                "base_url": "https://api.openai.com/v1",
                "default_model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            },
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "api_key_env": None,
            },
        },
        "ai": {
            "default_provider": "gemini",
            "chat_model": None,
            "fast_model": None,
            "temperature": 0.7,
            "max_tokens": 1000,
        },
        "rewards": {
            "lesson_completion_xp": 100,
            "exercise_correct_xp": 10,
            "progress_step_percent": 5,
        },
        "auth": {
            "token_ttl_hours": 720,
            "reset_token_ttl_minutes": 60,
            "min_password_length": 6,
        },
        "storage": {
            "max_upload_bytes": 200 * 1024 * 1024,
            "public_base_url": "/storage",
        },
        "paths": {
            "db_path": "db/telxtab.db",
            "storage_dir": "data/storage",
            "config_dir": "data/config",
        },
    }


def _merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge a YAML document over the defaults, one level of nesting deep."""
    result = dict(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = {**result[key], **value}
        else:
            result[key] = value
    return result


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    providers = {}
    for name, pconfig in data.get("providers", {}).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            api_key_env=pconfig.get("api_key_env"),
        )

    ai_data = data.get("ai", {})
    ai = AIConfig(
        default_provider=ai_data.get("default_provider", "gemini"),
        chat_model=ai_data.get("chat_model"),
        fast_model=ai_data.get("fast_model"),
        temperature=float(ai_data.get("temperature", 0.7)),
        max_tokens=int(ai_data.get("max_tokens", 1000)),
    )

    rewards_data = data.get("rewards", {})
    rewards = RewardsConfig(
        lesson_completion_xp=int(rewards_data.get("lesson_completion_xp", 100)),
        exercise_correct_xp=int(rewards_data.get("exercise_correct_xp", 10)),
        progress_step_percent=int(rewards_data.get("progress_step_percent", 5)),
    )

    auth_data = data.get("auth", {})
    auth = AuthConfig(
        token_ttl_hours=int(auth_data.get("token_ttl_hours", 720)),
        reset_token_ttl_minutes=int(auth_data.get("reset_token_ttl_minutes", 60)),
        min_password_length=int(auth_data.get("min_password_length", 6)),
    )

    storage_data = data.get("storage", {})
    storage = StorageConfig(
        max_upload_bytes=int(storage_data.get("max_upload_bytes", 200 * 1024 * 1024)),
        public_base_url=storage_data.get("public_base_url", "/storage"),
    )

    return AppConfig(
        providers=providers,
        ai=ai,
        rewards=rewards,
        auth=auth,
        storage=storage,
        paths=data.get("paths", {}),
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data = _get_defaults()

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        file_data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
        data = _merge(data, file_data)
    else:
        logger.info("using_default_config")

    _cached_config = _parse_config(data)
    return _cached_config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Get configuration for a specific provider.

    Args:
        provider: Provider name (e.g., "gemini", "openai")

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
