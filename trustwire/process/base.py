"""Abstract base class for processors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseProcessor(ABC):
    """Base class for batch steps applied to fetched or stored articles."""

    def __init__(self, config: dict):
        self.config = config

    @abstractmethod
    def process(self, items: list[Any]) -> list[Any]:
        """Process items and return the (possibly modified) list."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Processor name."""
        ...
