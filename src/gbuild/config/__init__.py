"""Configuration modules for gbuild."""

from .settings import GroovySettings, SettingsError

__all__ = [
    "GroovySettings",
    "SettingsError",
]
