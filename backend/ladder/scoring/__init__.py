"""Scoring engines."""

from . import table_tennis

__all__ = ["table_tennis"]
