"""Core module for shared utilities: config, errors, logging, security."""

from loginguard.core.config import Settings, get_settings

__all__ = ["get_settings", "Settings"]
