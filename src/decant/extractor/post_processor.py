"""
Unconditional cleanup of an extracted article fragment.

``prep_article`` strips elements that never belong in article output (forms,
embeds, share widgets, navigation) and tidies whitespace.
``remove_title_from_content`` drops a heading that repeats the article title.
"""

from __future__ import annotations

import html as html_lib
import re
from typing import List

import structlog

from . import constants as C
from . import dom
from .cleaner import remove_keyword_blocks

logger = structlog.get_logger(__name__)

_NAV_WRAPPER = re.compile(
    r'<div[^>]+class="[^"]*(?:navbar|nav|menu|sidebar|header)[^"]*"[^>]*>.*?</div>',
    re.IGNORECASE | re.DOTALL,
)
_NAV_BLOCK = re.compile(r"<nav\b[^>]*?>.*?</nav>", re.IGNORECASE | re.DOTALL)

_STYLE_ATTRIBUTES = (
    re.compile(r'\s+style\s*=\s*"[^"]*"', re.IGNORECASE),
    re.compile(r"\s+style\s*=\s*'[^']*'", re.IGNORECASE),
    re.compile(r"""\s+align\s*=\s*["'][^"']*["']""", re.IGNORECASE),
    re.compile(r"""\s+bgcolor\s*=\s*["'][^"']*["']""", re.IGNORECASE),
    re.compile(r"""\s+valign\s*=\s*["'][^"']*["']""", re.IGNORECASE),
)

_EMPTY_PARAGRAPHS = (
    re.compile(r"<p\b[^>]*>(?:\s|<br\s*/?>)*</p>", re.IGNORECASE),
    re.compile(r"<p\b[^>]*>\s*<span\b[^>]*>\s*</span>\s*</p>", re.IGNORECASE),
    re.compile(r"<p\b[^>]*>\s*<span\b[^>]*>\s*<br\s*/?>\s*</span>\s*</p>", re.IGNORECASE),
)
_ORPHAN_BRS = re.compile(r"(</(?:p|div|h[1-6])>)\s*(?:<br\s*/?>\s*)+(<(?:p|div|h[1-6]))", re.IGNORECASE)
_MULTI_NEWLINE = re.compile(r"\n{3,}")
_MULTI_SPACE = re.compile(r" {2,}")

_EMPTY_WRAPPERS = tuple(
    re.compile(rf"<{tag}\b[^>]*>\s*</{tag}>", re.IGNORECASE) for tag in ("header", "hgroup", "div", "section")
)
_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")
_WHITESPACE_LINE = re.compile(r"\n[ \t]+\n")
_WHITESPACE = re.compile(r"\s+")

MAX_EMPTY_PARAGRAPH_PASSES = 5
MAX_CLEANUP_PASSES = 3


def _unwanted_tag_pattern(tag: str) -> "re.Pattern[str]":
    pattern = rf"<{tag}\b[^>]*?>.*?</{tag}>"
    if tag in C.SELF_CLOSING_UNWANTED:
        pattern += rf"|<{tag}\b[^>]*?/?>"
    return re.compile(pattern, re.IGNORECASE | re.DOTALL)


_UNWANTED_TAG_PATTERNS = tuple(_unwanted_tag_pattern(tag) for tag in C.UNWANTED_TAGS)


def unwrap_nav_wrappers(html: str) -> str:
    return _NAV_WRAPPER.sub("", html)


def strip_presentational_attributes(html: str) -> str:
    """Remove style, align, bgcolor and valign attributes."""
    for pattern in _STYLE_ATTRIBUTES:
        html = pattern.sub("", html)
    return html


def remove_unwanted_elements(html: str) -> str:
    for pattern in _UNWANTED_TAG_PATTERNS:
        html = pattern.sub("", html)
    return html


def remove_share_elements(html: str) -> str:
    return remove_keyword_blocks(html, C.SHARE_TAGS, C.SHARE_KEYWORDS)


def remove_navigation_elements(html: str) -> str:
    html = _NAV_BLOCK.sub("", html)
    return remove_keyword_blocks(html, C.NAV_BLOCK_TAGS, C.NAVIGATION_KEYWORDS)


def remove_empty_paragraphs(html: str) -> str:
    """Drop paragraphs holding only whitespace, ``<br>`` or an empty span.

    Passes repeat until nothing changes (at most five), then ``<br>`` runs
    sitting between block elements are replaced by a newline.
    """
    for _ in range(MAX_EMPTY_PARAGRAPH_PASSES):
        previous = html
        for pattern in _EMPTY_PARAGRAPHS:
            html = pattern.sub("", html)
        if html == previous:
            break
    return _ORPHAN_BRS.sub(r"\1\n\2", html)


def normalize_whitespace(html: str) -> str:
    html = _MULTI_NEWLINE.sub("\n\n", html)
    return _MULTI_SPACE.sub(" ", html)


def prep_article(html: str, clean_styles: bool = True, clean_whitespace: bool = True) -> str:
    """Run the unconditional cleanup passes over an article fragment.

    Args:
        html: Article fragment
        clean_styles: Strip presentational attributes
        clean_whitespace: Remove empty paragraphs and collapse whitespace

    Returns:
        Cleaned fragment
    """
    html = unwrap_nav_wrappers(html)
    if clean_styles:
        html = strip_presentational_attributes(html)
    html = remove_unwanted_elements(html)
    html = remove_share_elements(html)
    html = remove_navigation_elements(html)
    if clean_whitespace:
        html = remove_empty_paragraphs(html)
        html = normalize_whitespace(html)
    return html


# --- Title de-duplication ---


def normalize_title(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip()).lower()


def titles_match(first: str, second: str) -> bool:
    """Equal, or one contains the other and their lengths are within 20%."""
    if first == second:
        return True
    if not first or not second:
        return False
    ratio = min(len(first), len(second)) / max(len(first), len(second))
    return ratio > 0.8 and (first in second or second in first)


def _heading_pattern(tag: str, text: str) -> "re.Pattern[str]":
    # Words may be separated by whitespace or inline tags only.
    gap = r"(?:\s|<[^>]*>)"
    words: List[str] = []
    for word in text.split():
        escaped = html_lib.escape(word, quote=False)
        if escaped == word:
            words.append(re.escape(word))
        else:
            words.append(f"(?:{re.escape(word)}|{re.escape(escaped)})")
    body = f"{gap}+".join(words)
    return re.compile(rf"<{tag}\b[^>]*>{gap}*{body}{gap}*</{tag}>", re.IGNORECASE)


def _cleanup_after_title_removal(html: str) -> str:
    for _ in range(MAX_CLEANUP_PASSES):
        previous = html
        for pattern in _EMPTY_WRAPPERS:
            html = pattern.sub("", html)
        if html == previous:
            break

    for _ in range(MAX_CLEANUP_PASSES):
        previous = html
        html = _BLANK_LINES.sub("\n\n", html)
        html = _WHITESPACE_LINE.sub("\n", html)
        if html == previous:
            break
    return html


def remove_title_from_content(html: str, title: str, parser: str = "html.parser") -> str:
    """Remove the first ``h1``/``h2`` whose text matches ``title``.

    Returns the fragment unchanged when the title is empty or no heading
    matches.
    """
    normalized_title = normalize_title(title or "")
    if not normalized_title:
        return html

    fragment = dom.parse_fragment(html, parser)
    for heading in fragment.find_all(["h1", "h2"]):
        heading_text = heading.get_text()
        if not titles_match(normalized_title, normalize_title(heading_text)):
            continue

        serialized = str(heading)
        position = html.find(serialized)
        if position >= 0:
            logger.debug("title_heading_removed", tag=heading.name, method="exact")
            return _cleanup_after_title_removal(html[:position] + html[position + len(serialized) :])

        if heading_text.split():
            result = _heading_pattern(heading.name, heading_text).sub("", html, count=1)
            if len(result) < len(html):
                logger.debug("title_heading_removed", tag=heading.name, method="pattern")
                return _cleanup_after_title_removal(result)

    return html
