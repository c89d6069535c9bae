"""Processor registry for classification, trust scoring and dedup."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trustwire.process.base import BaseProcessor

PROCESSORS: dict[str, type[BaseProcessor]] = {}


def register_processor(name: str):
    """Decorator to register a processor."""

    def decorator(cls):
        PROCESSORS[name] = cls
        return cls

    return decorator


from trustwire.process.classify import ContentClassifier  # noqa: E402, F401
from trustwire.process.dedup import DedupProcessor  # noqa: E402, F401
