"""Configuration loading utilities for GitSwitch."""

from .settings import (
    AppSettings,
    GitSwitchConfig,
    SecretStore,
    ensure_runtime_dirs,
    load_config,
)

__all__ = [
    "AppSettings",
    "GitSwitchConfig",
    "SecretStore",
    "ensure_runtime_dirs",
    "load_config",
]
