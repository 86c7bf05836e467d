"""
DOM helpers over BeautifulSoup trees.

This module is the only place that knows how the document tree is built and
queried. Everything else asks it for text, link density, visibility and
ancestor chains.
"""

from __future__ import annotations

from typing import Callable, Iterator, List, Optional

import structlog
from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup
from soupsieve import SelectorSyntaxError

from . import constants as C
from .exceptions import DocumentTooLargeError, InputStructureError

logger = structlog.get_logger(__name__)


def decode_markup(markup: str | bytes) -> str:
    """Return document text; bytes are decoded as UTF-8.

    Raises:
        InputStructureError: If the input is neither text nor UTF-8 bytes
    """
    if isinstance(markup, bytes):
        try:
            return markup.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InputStructureError(f"Document is not valid UTF-8: {e}") from e
    if not isinstance(markup, str):
        raise InputStructureError(f"Expected HTML text, got {type(markup).__name__}")
    return markup


def parse_html(markup: str | bytes, parser: str = "html.parser", max_elements: int = 0) -> BeautifulSoup:
    """Build a tree for a whole document.

    Args:
        markup: HTML document as text or bytes (bytes are decoded as UTF-8)
        parser: BeautifulSoup tree builder name
        max_elements: Refuse documents with more elements than this (0 = no limit)

    Returns:
        Parsed document

    Raises:
        InputStructureError: If the input cannot be interpreted as HTML
    """
    try:
        document = parse_fragment(decode_markup(markup), parser)
    except ParserRejectedMarkup as e:
        raise InputStructureError(f"Parser rejected the document: {e}") from e

    if max_elements > 0:
        count = sum(1 for _ in document.find_all(True))
        if count > max_elements:
            raise DocumentTooLargeError(count, max_elements)
    return document


def parse_fragment(markup: str, parser: str = "html.parser") -> BeautifulSoup:
    """Parse markup with class/id kept as plain strings."""
    return BeautifulSoup(markup, parser, multi_valued_attributes=None)


def select(node: Tag, selector: str) -> List[Tag]:
    """Run a CSS query; a malformed selector yields no matches."""
    try:
        return node.select(selector)
    except (SelectorSyntaxError, ValueError) as e:
        logger.debug("selector_rejected", selector=selector, error=str(e))
        return []


def is_element(node: object) -> bool:
    """True for real elements (not text, not the document object)."""
    return isinstance(node, Tag) and not isinstance(node, BeautifulSoup)


def attr(node: Tag, name: str) -> str:
    value = node.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def class_and_id(node: Tag) -> str:
    return f"{attr(node, 'class')} {attr(node, 'id')}"


def inner_text(node: Tag, normalize_spaces: bool = True) -> str:
    """Text content of a node, trimmed and optionally with whitespace runs collapsed."""
    text = node.get_text().strip()
    if normalize_spaces:
        return C.NORMALIZE.sub(" ", text)
    return text


def link_density(node: Tag) -> float:
    """Share of the node's text that sits inside links.

    Links pointing at an in-page fragment (``#section``) count for 0.3 of
    their length.
    """
    text_length = len(inner_text(node, False))
    if text_length == 0:
        return 0.0

    links = node.find_all("a", href=True)
    if node.name == "a" and node.has_attr("href"):
        links.insert(0, node)

    link_length = 0.0
    for link in links:
        coefficient = 0.3 if C.HASH_URL.match(attr(link, "href")) else 1.0
        link_length += len(inner_text(link, False)) * coefficient

    return link_length / text_length


def element_children(node: Tag) -> List[Tag]:
    return [child for child in node.children if isinstance(child, Tag)]


def count_element_children(node: Tag) -> int:
    return sum(1 for child in node.children if isinstance(child, Tag))


def is_phrasing_content(node: Tag) -> bool:
    """Check whether an element is inline (phrasing) content.

    ``a``, ``del`` and ``ins`` only count when all their element children
    are phrasing content too.
    """
    name = (node.name or "").lower()
    if name in C.PHRASING_ELEMS:
        return True
    if name in ("a", "del", "ins"):
        return all(is_phrasing_content(child) for child in element_children(node))
    return False


def has_child_block_element(node: Tag) -> bool:
    return any(not is_phrasing_content(child) for child in element_children(node))


def is_hidden(node: Tag) -> bool:
    """Inline hiding on this node alone (ancestors are not consulted)."""
    style = attr(node, "style").lower()
    if "display:none" in style or "display: none" in style:
        return True
    if "visibility:hidden" in style or "visibility: hidden" in style:
        return True
    if node.has_attr("hidden"):
        return True
    return attr(node, "aria-hidden") == "true" and "fallback-image" not in attr(node, "class")


def is_probably_visible(node: Tag) -> bool:
    """Check inline styles, ``hidden`` and ``aria-hidden`` on the node and its ancestors."""
    current: Optional[Tag] = node
    while current is not None and is_element(current):
        if is_hidden(current):
            return False
        current = current.parent
    return True


def iter_ancestors(node: Tag) -> Iterator[Tag]:
    """Yield element ancestors, direct parent first."""
    parent = node.parent
    while parent is not None and is_element(parent):
        yield parent
        parent = parent.parent


def node_ancestors(node: Tag, max_depth: int = 0) -> List[Tag]:
    """Ancestors up to ``max_depth`` levels (0 = all)."""
    ancestors: List[Tag] = []
    for ancestor in iter_ancestors(node):
        ancestors.append(ancestor)
        if max_depth and len(ancestors) >= max_depth:
            break
    return ancestors


def has_ancestor(node: Tag, predicate: Callable[[Tag], bool]) -> bool:
    return any(predicate(ancestor) for ancestor in iter_ancestors(node))


def has_ancestor_tag(node: Tag, tag: str) -> bool:
    return has_ancestor(node, lambda ancestor: ancestor.name == tag)


def is_descendant_of(node: Tag, ancestor: Tag) -> bool:
    return any(candidate is ancestor for candidate in iter_ancestors(node))


def is_attached(node: Tag, root: Tag) -> bool:
    """True while ``node`` is still reachable from ``root``."""
    return node is root or any(ancestor is root for ancestor in node.parents)


def article_direction(document: BeautifulSoup) -> Optional[str]:
    """Text direction declared on the ``<html>`` element, if any."""
    html = document.find("html")
    if html is None:
        return None
    direction = attr(html, "dir").strip().lower()
    if direction in ("ltr", "rtl", "auto"):
        return direction
    return None


def text_length(markup: str, parser: str = "html.parser") -> int:
    """Length of the trimmed text content of a markup fragment."""
    return len(parse_fragment(markup, parser).get_text().strip())
