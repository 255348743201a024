"""Configuration package."""

from ybs.config.settings import Settings, settings


__all__ = ["Settings", "settings"]
