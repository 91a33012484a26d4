"""Crossbow: webhook ingestion and projection of source-control events."""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
