"""MapPath package initialisation helpers."""

from __future__ import annotations

from .settings import settings  # noqa: F401

__version__ = "0.1.0"

__all__ = ["settings", "__version__"]
