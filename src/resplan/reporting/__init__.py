from __future__ import annotations

from .reporter import Reporter

__all__ = ["Reporter"]
