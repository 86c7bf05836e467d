"""
Quick check of whether a page is worth running extraction on.
"""

from __future__ import annotations

import math
from typing import List, Union

from bs4 import BeautifulSoup, Tag

from . import dom
from .candidates import is_unlikely_candidate


def is_probably_readerable(
    document: Union[str, bytes, BeautifulSoup],
    min_content_length: int = 140,
    min_score: float = 20,
    parser: str = "html.parser",
) -> bool:
    """Decide whether a page probably holds an article.

    Each visible ``p``, ``pre`` and ``article`` (and every ``div`` holding a
    ``<br>``) with at least ``min_content_length`` characters adds
    ``sqrt(length - min_content_length)`` to a running score.

    Returns:
        True as soon as the score exceeds ``min_score``
    """
    if not isinstance(document, BeautifulSoup):
        document = dom.parse_html(document, parser)

    nodes: List[Tag] = dom.select(document, "p, pre, article")
    seen = {id(node) for node in nodes}
    for br in dom.select(document, "div > br"):
        parent = br.parent
        if parent is not None and id(parent) not in seen:
            seen.add(id(parent))
            nodes.append(parent)

    score = 0.0
    for node in nodes:
        if not dom.is_probably_visible(node):
            continue
        if is_unlikely_candidate(node):
            continue
        if node.name == "p" and dom.has_ancestor_tag(node, "li"):
            continue

        length = len(node.get_text().strip())
        if length < min_content_length:
            continue

        score += math.sqrt(length - min_content_length)
        if score > min_score:
            return True
    return False
