"""Ordered extraction strategies.

Rule documents are not guaranteed to be laid out the same way every time, so
each sub-section is extracted by a chain of strategies: the first strategy that
returns anything wins, later ones are only tried when earlier ones come back
empty.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SegmentedDocument:
    """Normalized document text together with its labelled sections."""

    text: str
    sections: Mapping[str, str] = field(default_factory=dict)

    def section(self, label: str) -> str:
        return self.sections.get(label, "")


Strategy = Callable[[SegmentedDocument], list[T]]


@dataclass(frozen=True)
class StrategyChain(Generic[T]):
    name: str
    strategies: tuple[Strategy, ...]

    def extract(self, document: SegmentedDocument) -> list[T]:
        for strategy in self.strategies:
            found = strategy(document)
            if found:
                logger.debug(
                    f"{self.name}: {strategy.__name__} extracted {len(found)} item(s)"
                )
                return found
        logger.debug(f"{self.name}: no strategy matched")
        return []


def unique_by(items: Iterable[T], key: Callable[[T], Hashable]) -> list[T]:
    """Drop items whose key was already seen, keeping first occurrences."""
    seen: set[Hashable] = set()
    unique: list[T] = []
    for item in items:
        marker = key(item)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(item)
    return unique
