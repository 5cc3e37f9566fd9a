"""Base class for per-file analysis passes."""

from abc import ABC, abstractmethod

from .tree_sitter import ParsedSource


class Analyzer(ABC):
    """Contract for a pass that inspects one parsed file at a time.

    A pass accumulates its findings on the instance; callers run it over every
    file of the project before reading results or starting the next pass.
    """

    @abstractmethod
    def analyze(self, source: ParsedSource) -> None:
        """Record findings for ``source``."""
