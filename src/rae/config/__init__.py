"""Configuration package."""

from rae.config.settings import Settings

__all__ = ["Settings"]
