"""Configuration loading for Rapport.

Usage:
    from rapport.config import get_settings

    settings = get_settings()
    attempts = settings.workflow.counter_retry_attempts
"""

from functools import lru_cache

from rapport.config.loader import load_config
from rapport.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance.

    The result is cached; call ``get_settings.cache_clear()`` or
    ``reload_settings()`` to pick up changed files or environment.
    """
    set_toml_config(load_config())
    return Settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
