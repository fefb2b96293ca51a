"""
treetable configuration: all environment variables in one place.

Read from environment once at import time. The kernel never reads the
environment itself; the service layer passes these values in explicitly.
"""

from __future__ import annotations

import os

from treetable.kernel.formatter import DATE_WIDGET_TYPES


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name, "")
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items or default


class Settings:
    """Application settings from environment variables."""

    # Table defaults (used when a layout does not say otherwise)
    DEFAULT_KEY_PROPERTY: str = os.environ.get("TREETABLE_DEFAULT_KEY_PROPERTY", "id")
    DEFAULT_EXPANDED_DEPTH: int = int(os.environ.get("TREETABLE_DEFAULT_EXPANDED_DEPTH", "0"))
    DEFAULT_COLLAPSIBLE: bool = _env_bool("TREETABLE_DEFAULT_COLLAPSIBLE", True)

    # Field formatting
    DATE_WIDGET_TYPES: tuple[str, ...] = _env_list("TREETABLE_DATE_WIDGET_TYPES", DATE_WIDGET_TYPES)

    # Logging
    LOG_LEVEL: str = os.environ.get("TREETABLE_LOG_LEVEL", "INFO").upper()

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")


# Singleton instance
settings = Settings()

if settings.DEFAULT_EXPANDED_DEPTH < 0:
    raise RuntimeError("TREETABLE_DEFAULT_EXPANDED_DEPTH must be >= 0")
if not settings.DEFAULT_KEY_PROPERTY:
    raise RuntimeError("TREETABLE_DEFAULT_KEY_PROPERTY must not be empty")
