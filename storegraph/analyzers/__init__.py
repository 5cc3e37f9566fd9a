"""Per-file analyzers that feed the two-pass project scan."""

from __future__ import annotations

from .base import Analyzer
from .stores import StoreAnalyzer, StoreTable
from .subscribers import SubscriberAnalyzer

__all__ = ["Analyzer", "StoreAnalyzer", "StoreTable", "SubscriberAnalyzer"]
