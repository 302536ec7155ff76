"""Settings, seed sources and source management."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
