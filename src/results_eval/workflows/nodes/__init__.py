"""Convenience re-exports for workflow nodes."""
from __future__ import annotations

from . import (
    canonicalize,
    dates,
    eps_smoothing,
    growth,
    ingest,
    performance,
    persist,
    prices,
)

__all__ = [
    "canonicalize",
    "dates",
    "eps_smoothing",
    "growth",
    "ingest",
    "performance",
    "persist",
    "prices",
]
