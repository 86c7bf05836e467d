"""
Content scoring for candidate elements.

Scores are plain floats kept in a ``ScoreTable`` for the duration of one
extraction attempt.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional, Tuple

from bs4 import Tag

from . import constants as C
from . import dom
from .constants import ParseFlags

MIN_PARAGRAPH_LENGTH = 25
CLASS_WEIGHT = 25

_TAG_BASE_SCORES: Dict[str, float] = {
    "p": 5.0,
    "section": 8.0,
    "article": 8.0,
    "pre": 3.0,
    "td": 3.0,
    "blockquote": 3.0,
    "address": -3.0,
    "ol": -3.0,
    "ul": -3.0,
    "dl": -3.0,
    "dd": -3.0,
    "dt": -3.0,
    "li": -3.0,
    "form": -3.0,
    "h1": -5.0,
    "h2": -5.0,
    "h3": -5.0,
    "h4": -5.0,
    "h5": -5.0,
    "h6": -5.0,
    "th": -5.0,
}


def class_weight(node: Tag, flags: ParseFlags) -> int:
    """Weight an element by its class and id.

    Class and id are checked separately; each contributes -25 when it matches
    the negative pattern, otherwise +25 when it matches the positive one.
    Returns 0 when ``WEIGHT_CLASSES`` is off.
    """
    if not flags & ParseFlags.WEIGHT_CLASSES:
        return 0

    weight = 0
    for value in (dom.attr(node, "class"), dom.attr(node, "id")):
        if not value:
            continue
        if C.NEGATIVE.search(value):
            weight -= CLASS_WEIGHT
        elif C.POSITIVE.search(value):
            weight += CLASS_WEIGHT
    return weight


def initial_score(node: Tag, flags: ParseFlags) -> float:
    """Base score of a node from its tag, plus its class weight."""
    name = (node.name or "").lower()
    if name == "div":
        # A div without block children reads like a paragraph.
        score = 2.0 if dom.has_child_block_element(node) else 5.0
    else:
        score = _TAG_BASE_SCORES.get(name, 0.0)
    return score + class_weight(node, flags)


def content_score(node: Tag, link_density_modifier: float = 0.0) -> float:
    """Score a paragraph-like element by its commas, length and links.

    Returns:
        0.0 for text shorter than 25 characters, otherwise
        ``(1 + commas + min(len/100, 3)) * (1 - link_density + modifier)``
    """
    text = dom.inner_text(node, False)
    if len(text) < MIN_PARAGRAPH_LENGTH:
        return 0.0

    score = 1.0
    score += len(C.COMMAS.findall(text))
    score += min(len(text) / 100.0, 3.0)
    score *= 1.0 - dom.link_density(node) + link_density_modifier
    return score


def propagation_divider(level: int) -> float:
    """Divider applied to a content score at ``level`` ancestors up (0 = parent)."""
    if level == 0:
        return 1.0
    if level == 1:
        return 2.0
    return float(level * 3)


def is_valid_byline(node: Tag, match_string: str) -> bool:
    rel = dom.attr(node, "rel")
    itemprop = dom.attr(node, "itemprop")
    length = len(dom.inner_text(node, False))
    looks_like_byline = rel == "author" or "author" in itemprop or bool(C.BYLINE.search(match_string))
    return looks_like_byline and 0 < length < 100


class ScoreTable:
    """Scores keyed by node identity.

    Nodes are held alongside their scores so the identity key stays valid for
    as long as the table lives.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, List] = {}

    def __contains__(self, node: Tag) -> bool:
        return id(node) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[Tag, float]]:
        for node, score in self._entries.values():
            yield node, score

    def get(self, node: Tag, default: Optional[float] = None) -> Optional[float]:
        entry = self._entries.get(id(node))
        return entry[1] if entry is not None else default

    def ensure(self, node: Tag, initializer: Callable[[Tag], float]) -> float:
        """Return the node's score, initialising it on first touch."""
        entry = self._entries.get(id(node))
        if entry is None:
            entry = [node, initializer(node)]
            self._entries[id(node)] = entry
        return entry[1]

    def add(self, node: Tag, amount: float) -> None:
        self._entries[id(node)][1] += amount

    def scale(self, factor: Callable[[Tag], float]) -> None:
        for entry in self._entries.values():
            entry[1] *= factor(entry[0])

    def ranked(self) -> List[Tuple[Tag, float]]:
        """Entries by descending score; ties keep first-touch order."""
        return sorted(self, key=lambda item: item[1], reverse=True)
