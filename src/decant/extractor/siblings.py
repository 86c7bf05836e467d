"""
Sibling aggregation and fragment serialization.

Once a best candidate is chosen, related content often sits next to it
(continuation paragraphs, figures, tables). Siblings are pulled in by score,
by looking like prose, or by being a substantial content block.
"""

from __future__ import annotations

import html
from typing import List, NamedTuple, Union

from bs4 import Comment, NavigableString, Tag
from bs4.element import CData, Declaration, Doctype, PageElement, ProcessingInstruction

from . import constants as C
from . import dom, scoring
from .cleaner import replace_brs
from .constants import ParseFlags
from .scoring import ScoreTable

SIBLING_SCORE_RATIO = 0.2
MIN_SIBLING_THRESHOLD = 10.0

_SKIPPED_STRINGS = (CData, Declaration, Doctype, ProcessingInstruction)


class _EndTag(NamedTuple):
    name: str


def has_sentence_boundary(text: str) -> bool:
    """True when a period is followed by whitespace or ends the text."""
    for index, char in enumerate(text):
        if char != ".":
            continue
        if index + 1 == len(text) or text[index + 1].isspace():
            return True
    return False


def is_good_sibling_paragraph(node: Tag) -> bool:
    if (node.name or "").lower() != "p":
        return False

    text = dom.inner_text(node, False)
    if not text:
        return False

    match_string = dom.class_and_id(node)
    if C.UNLIKELY_CANDIDATES.search(match_string) and not C.OK_MAYBE_ITS_A_CANDIDATE.search(match_string):
        return False

    density = dom.link_density(node)
    if len(text) > 80 and density < 0.25:
        return True
    return len(text) <= 80 and density == 0.0 and has_sentence_boundary(text)


def should_keep_block_element(node: Tag, best_score: float) -> bool:
    """Decide whether a non-paragraph sibling block carries enough content."""
    tag = (node.name or "").lower()
    if tag not in ("div", "section", "article", "ul", "ol", "table"):
        return False

    if scoring.class_weight(node, ParseFlags.WEIGHT_CLASSES) < -25 and best_score < 100.0:
        return False

    length = len(dom.inner_text(node, False))
    density = dom.link_density(node)
    if length == 0 or density > 0.6:
        return False

    if tag in ("ul", "ol"):
        return len(node.find_all("li")) >= 3 and length > 80 and density < 0.4
    if tag == "table":
        return (len(node.find_all("p")) >= 2 or length > 200) and density < 0.45
    if length > 400:
        return True
    return length > 140 and density < 0.35


def _should_render_as_paragraph(node: Tag) -> bool:
    if (node.name or "").lower() != "div":
        return False
    return not any((child.name or "").lower() in C.DIV_TO_P_ELEMS for child in dom.element_children(node))


def element_to_html(node: Tag) -> str:
    """Serialize an element and its subtree.

    Invisible subtrees serialize to an empty string, a div without block
    children is written as ``p``, and void elements are self-closed.
    """
    if not dom.is_probably_visible(node):
        return ""
    return _serialize(node)


def _open_tag(node: Tag, tag: str) -> str:
    parts: List[str] = [f"<{tag}"]
    for name, value in node.attrs.items():
        if isinstance(value, list):
            value = " ".join(value)
        parts.append(f' {name}="{html.escape(str(value), quote=True)}"')
    return "".join(parts)


def _serialize(root: Tag) -> str:
    # Explicit stack: nesting depth is bounded by the document, not the interpreter.
    parts: List[str] = []
    stack: List[Union[PageElement, _EndTag]] = [root]

    while stack:
        item = stack.pop()
        if isinstance(item, _EndTag):
            parts.append(f"</{item.name}>")
        elif isinstance(item, Tag):
            if dom.is_hidden(item):
                continue
            tag = "p" if _should_render_as_paragraph(item) else item.name
            if tag.lower() in C.VOID_ELEMENTS:
                parts.append(_open_tag(item, tag) + " />")
                continue
            parts.append(_open_tag(item, tag) + ">")
            stack.append(_EndTag(tag))
            stack.extend(reversed(list(item.children)))
        elif isinstance(item, Comment):
            parts.append(f"<!--{item}-->")
        elif isinstance(item, _SKIPPED_STRINGS):
            continue
        elif isinstance(item, NavigableString):
            parts.append(html.escape(str(item), quote=False))

    return "".join(parts)


def aggregate_siblings(best: Tag, scores: ScoreTable) -> str:
    """Serialize the best candidate together with the siblings worth keeping.

    Returns:
        Non-blank serialized siblings joined with newlines, in document order
    """
    best_score = scores.get(best, 0.0)
    parent = best.parent
    if parent is None:
        return replace_brs(element_to_html(best))

    best_class = dom.attr(best, "class")
    threshold = max(best_score * SIBLING_SCORE_RATIO, MIN_SIBLING_THRESHOLD)

    article_parts: List[str] = []
    for sibling in dom.element_children(parent):
        if sibling is best:
            include = True
        else:
            sibling_score = scores.get(sibling, 0.0)
            if best_class and dom.attr(sibling, "class") == best_class:
                sibling_score += best_score * SIBLING_SCORE_RATIO
            include = (
                sibling_score >= threshold
                or is_good_sibling_paragraph(sibling)
                or should_keep_block_element(sibling, best_score)
            )

        if include:
            fragment = replace_brs(element_to_html(sibling))
            if fragment.strip():
                article_parts.append(fragment)

    return "\n".join(article_parts)
