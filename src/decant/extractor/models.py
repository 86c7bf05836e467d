"""
Data models for extraction results.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .constants import ParseFlags


@dataclass(slots=True, frozen=True)
class Article:
    """Result of article extraction."""

    title: str | None
    byline: str | None
    dir: str | None
    lang: str | None
    site_name: str | None
    excerpt: str | None
    content: str
    text_content: str
    length: int
    published_time: str | None = None

    def __post_init__(self) -> None:
        """Validate the result."""
        if self.length < 0:
            raise ValueError("Length must be non-negative")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class Attempt:
    """Output of one extraction pass kept for the longest-attempt fallback."""

    content: str
    text_length: int
    flags: ParseFlags


@dataclass(slots=True, frozen=True)
class NodeCounts:
    p: int = 0
    img: int = 0
    li: int = 0
    inputs: int = 0
    embeds: int = 0
    headings: int = 0


@dataclass(slots=True, frozen=True)
class FragmentStats:
    """Measurements of a block used by the conditional cleaner."""

    text_length: int
    link_density: float
    counts: NodeCounts
    comma_count: int
    class_id: str

    @property
    def is_empty(self) -> bool:
        return self.text_length == 0
