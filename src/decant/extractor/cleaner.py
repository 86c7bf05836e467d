"""
Conditional cleaning of extracted article fragments.

Two strategies implement ``ConditionalCleaner``:

* ``TreeConditionalCleaner`` parses the fragment and evaluates every
  candidate block against the live tree.
* ``PatternConditionalCleaner`` works on the markup text, measuring each
  lazily matched block on its own. It is the fallback when a tree cannot be
  built or walked.

This module also holds the markup passes that run before scoring (document
prep, the light navigation pass) and the ``<br>`` run replacement used when
serializing candidates.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

import structlog
from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from decant.observability import increment

from . import constants as C
from . import dom
from .models import FragmentStats, NodeCounts
from .protocols import ConditionalCleaner

logger = structlog.get_logger(__name__)

MAX_EVALUATED_TEXT = 600

BR_RUNS = re.compile(r"(?:<br\s*/?>(?:\s|&nbsp;?)*){2,}", re.IGNORECASE)

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_BLOCK = re.compile(r"<style\b[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_FORM_BLOCK = re.compile(r"<form\b[^>]*>[\s\S]*?</form>", re.IGNORECASE)
_FONT_OPEN = re.compile(r"<font\b", re.IGNORECASE)
_FONT_CLOSE = re.compile(r"</font>", re.IGNORECASE)
_NOSCRIPT_BLOCK = re.compile(r"<noscript\b[^>]*>(.*?)</noscript>", re.IGNORECASE | re.DOTALL)
_NAV_BLOCK = re.compile(r"<nav\b[^>]*?>.*?</nav>", re.IGNORECASE | re.DOTALL)
_CLASS_ATTR = re.compile(r'class="([^"]*)"', re.IGNORECASE)
_ID_ATTR = re.compile(r'id="([^"]*)"', re.IGNORECASE)

_WRAPPER_CLASS = "__decant_wrapper"

_pattern_cache: Dict[Tuple[str, str, str], "re.Pattern[str]"] = {}


def _keyword_block_pattern(tag: str, attribute: str, keyword: str) -> "re.Pattern[str]":
    """``<tag ... attribute="...keyword...">...</tag>``, matched lazily."""
    key = (tag, attribute, keyword)
    pattern = _pattern_cache.get(key)
    if pattern is None:
        pattern = re.compile(
            rf'<{tag}\b[^>]*?{attribute}="[^"]*?{re.escape(keyword)}[^"]*?"[^>]*?>.*?</{tag}>',
            re.IGNORECASE | re.DOTALL,
        )
        _pattern_cache[key] = pattern
    return pattern


def _block_pattern(tag: str) -> "re.Pattern[str]":
    key = (tag, "", "")
    pattern = _pattern_cache.get(key)
    if pattern is None:
        pattern = re.compile(rf"<{tag}\b[^>]*?>.*?</{tag}>", re.IGNORECASE | re.DOTALL)
        _pattern_cache[key] = pattern
    return pattern


def remove_keyword_blocks(html: str, tags: Sequence[str], keywords: Sequence[str]) -> str:
    """Drop blocks of ``tags`` whose class or id contains any of ``keywords``."""
    for tag in tags:
        for keyword in keywords:
            for attribute in ("class", "id"):
                html = _keyword_block_pattern(tag, attribute, keyword).sub("", html)
    return html


# --- Pre-scoring passes ---


def prep_document(html: str) -> str:
    """Strip scripts, styles and forms, turn ``font`` into ``span`` and reveal lazy images.

    A ``<noscript>`` is unwrapped only when it holds an ``<img``.
    """
    html = _SCRIPT_BLOCK.sub("", html)
    html = _STYLE_BLOCK.sub("", html)
    html = _FONT_OPEN.sub("<span", html)
    html = _FONT_CLOSE.sub("</span>", html)
    html = _NOSCRIPT_BLOCK.sub(lambda m: m.group(1) if "<img" in m.group(1) else m.group(0), html)
    html = _FORM_BLOCK.sub("", html)
    return html


def remove_nav_like_sections(html: str) -> str:
    """Light navigation pass run before scoring.

    Removes ``<nav>`` blocks and div/section/ul/ol blocks whose class or id
    contains a navigation keyword. "widget" is not one of them.
    """
    html = _NAV_BLOCK.sub("", html)
    return remove_keyword_blocks(html, C.NAV_BLOCK_TAGS, C.LIGHT_NAV_KEYWORDS)


# --- <br> runs ---


def _split_paragraphs(content: str) -> Optional[str]:
    if not BR_RUNS.search(content):
        return None
    parts = (part.strip() for part in BR_RUNS.split(content))
    return "\n    ".join(f"<p>{part}</p>" for part in parts if part)


def _split_element(markup: str) -> Optional[Tuple[str, str, str]]:
    """Split ``<tag attrs>inner</tag>`` into its pieces, or None when it does not close."""
    opening_end = markup.find(">")
    if opening_end < 0:
        return None
    opening = markup[1:opening_end]
    match = re.search(r"\s", opening)
    if match:
        tag, attributes = opening[: match.start()], opening[match.start() :]
    else:
        tag, attributes = opening, ""
    closing_start = markup.rfind(f"</{tag}>")
    if not tag or closing_start < opening_end:
        return None
    return tag, attributes, markup[opening_end + 1 : closing_start]


def replace_brs(html: str) -> str:
    """Turn runs of two or more ``<br>`` into paragraphs.

    ``"A<br><br>B"`` becomes ``"<p>A</p>\\n    <p>B</p>"``. When the markup is a
    single element, the element is kept around the new paragraphs unless it
    is itself a ``p``; paragraphs are never nested.
    """
    trimmed = html.strip()

    if trimmed.startswith("<") and trimmed.endswith(">"):
        parts = _split_element(trimmed)
        if parts is not None:
            tag, attributes, inner = parts
            paragraphs = _split_paragraphs(inner)
            if paragraphs is None:
                return f"<{tag}{attributes}>{inner}</{tag}>"
            if tag.lower() == "p":
                return paragraphs
            return f"<{tag}{attributes}>{paragraphs}</{tag}>"

    paragraphs = _split_paragraphs(trimmed)
    return trimmed if paragraphs is None else paragraphs


# --- Data tables ---


def _table_dimensions(table: Tag) -> Tuple[int, int]:
    rows = 0
    columns = 0
    for row in table.find_all("tr"):
        rows += 1
        cells = sum(1 for cell in dom.element_children(row) if (cell.name or "").lower() in ("td", "th"))
        columns = max(columns, cells)
    return rows, columns


def detect_data_table(table: Tag) -> bool:
    """Guess whether a table holds data rather than page layout."""
    if dom.attr(table, "role") == "presentation":
        return False
    if dom.attr(table, "datatable") == "0":
        return False
    if table.has_attr("summary"):
        return True
    if table.find("caption") is not None:
        return True
    if any(table.find(tag) is not None for tag in ("col", "colgroup", "tfoot", "thead", "th")):
        return True
    if table.find("table") is not None:
        return False

    rows, columns = _table_dimensions(table)
    if rows == 0 or columns == 0:
        return False
    if rows == 1 or columns == 1:
        return False
    if rows >= 10 or columns > 4:
        return True
    return rows * columns > 10


def mark_data_tables(root: Tag) -> None:
    """Flag every table under ``root`` once with the data-table marker."""
    for table in root.find_all("table"):
        if table.has_attr(C.DATA_TABLE_ATTR):
            continue
        table[C.DATA_TABLE_ATTR] = "true" if detect_data_table(table) else "false"


def is_data_table(node: Tag) -> bool:
    return dom.attr(node, C.DATA_TABLE_ATTR) == "true"


def strip_data_table_markers(root: Tag) -> None:
    for table in root.find_all(attrs={C.DATA_TABLE_ATTR: True}):
        del table[C.DATA_TABLE_ATTR]


# --- Tree strategy ---


def _self_and_descendants(node: Tag, names: Sequence[str]) -> List[Tag]:
    # The node itself counts when its own tag is in ``names``.
    found = node.find_all(list(names))
    if (node.name or "").lower() in names:
        found.insert(0, node)
    return found


def _text_density(node: Tag, names: Sequence[str]) -> float:
    total = len(node.get_text())
    if total == 0:
        return 0.0
    return sum(len(child.get_text()) for child in _self_and_descendants(node, names)) / total


def _has_text_in(node: Tag, names: Sequence[str]) -> bool:
    return any(child.get_text() for child in _self_and_descendants(node, names))


def _tree_class_weight(node: Tag) -> int:
    """Class/id weight where a value may match both the negative and positive pattern."""
    weight = 0
    for value in (node.get("class"), node.get("id")):
        if value is None:
            continue
        if C.NEGATIVE.search(value):
            weight -= 25
        if C.POSITIVE.search(value):
            weight += 25
    return weight


def _has_allowed_video(node: Tag) -> bool:
    if any(C.VIDEOS.search(str(value)) for value in node.attrs.values()):
        return True
    return (node.name or "").lower() == "object" and bool(C.VIDEOS.search(node.get_text()))


def _is_gallery_list(node: Tag, img: int) -> bool:
    if not all(dom.count_element_children(child) <= 1 for child in dom.element_children(node)):
        return False
    li_count = len(node.find_all("li"))
    return li_count > 0 and img == li_count


def node_stats(node: Tag) -> FragmentStats:
    """Measure a live node for the tree strategy."""
    text = node.get_text().strip()
    length = len(text)
    if length == 0:
        density = 1.0
    else:
        density = sum(len(link.get_text()) for link in node.find_all("a")) / length

    counts = NodeCounts(
        p=len(node.find_all("p")),
        img=len(node.find_all("img")),
        li=max(len(node.find_all("li")) - 100, 0),
        inputs=len(node.find_all("input")),
        embeds=len(node.find_all(["object", "embed", "iframe"])),
        headings=len(node.find_all(list(C.HEADING_TAGS))),
    )
    return FragmentStats(
        text_length=length,
        link_density=density,
        counts=counts,
        comma_count=text.count(","),
        class_id=dom.class_and_id(node).strip().lower(),
    )


def should_remove_node(node: Tag, tag: str) -> bool:
    """Decide whether a block in the live tree is clutter."""
    text = node.get_text().strip()
    if len(text) > MAX_EVALUATED_TEXT:
        return False

    is_list = tag in ("ul", "ol")
    if not is_list:
        list_length = sum(len(child.get_text()) for child in node.find_all(["ul", "ol"]))
        is_list = list_length / max(len(text), 1) > 0.9

    if tag == "table" and is_data_table(node):
        return False
    if dom.has_ancestor(node, lambda ancestor: ancestor.name == "table" and is_data_table(ancestor)):
        return False
    if dom.has_ancestor_tag(node, "code"):
        return False
    if any(is_data_table(table) for table in node.find_all("table")):
        return False

    stats = node_stats(node)
    weight = _tree_class_weight(node)
    if weight < 0 and (stats.link_density > 0.25 or stats.text_length < 100):
        return True

    if stats.comma_count >= 10:
        return False

    if any(_has_allowed_video(embed) for embed in node.find_all(["object", "embed", "iframe"])):
        return False

    if C.AD_WORDS.match(text) or C.LOADING_WORDS.match(text):
        return True

    p, img, li, inputs = stats.counts.p, stats.counts.img, stats.counts.li, stats.counts.inputs
    embeds = stats.counts.embeds
    heading_density = _text_density(node, C.HEADING_TAGS)
    in_figure = dom.has_ancestor_tag(node, "figure")

    remove = (
        (not in_figure and img > 1 and p > 0 and p / img < 0.5)
        or (not is_list and li > p)
        or inputs > p // 3
        or (not is_list and not in_figure and heading_density < 0.9 and stats.text_length < 25 and stats.link_density > 0)
        or (not is_list and weight < 25 and stats.link_density > 0.2)
        or (weight >= 25 and stats.link_density > 0.5)
        or (embeds == 1 and stats.text_length < 75)
        or embeds > 1
        or (img == 0 and not _has_text_in(node, C.TEXTISH_TAGS))
    )

    if remove and is_list and _is_gallery_list(node, img):
        return False
    return remove


class TreeConditionalCleaner:
    """Evaluates candidate blocks against a parsed tree of the fragment."""

    name = "tree"

    def __init__(self, parser: str = "html.parser") -> None:
        self.parser = parser

    def clean(self, html: str) -> str:
        soup = dom.parse_fragment(html, self.parser)
        body = soup.find("body")
        target: Tag = body if body is not None else soup

        mark_data_tables(target)
        for tag in C.CONDITIONAL_CLEAN_TAGS:
            for node in target.find_all(tag):
                if not dom.is_attached(node, target):
                    continue
                if should_remove_node(node, tag):
                    node.extract()

        strip_data_table_markers(target)
        return target.decode_contents()


# --- Pattern strategy ---


def fragment_stats(fragment: str, parser: str = "html.parser") -> FragmentStats:
    """Measure a markup block on its own, wrapped in a marker div."""
    soup: BeautifulSoup = dom.parse_fragment(f'<div class="{_WRAPPER_CLASS}">{fragment}</div>', parser)
    wrapper = soup.find("div", class_=_WRAPPER_CLASS) or soup

    text = wrapper.get_text()
    length = len(text.strip())
    link_length = sum(len(link.get_text()) for link in wrapper.find_all("a"))

    counts = NodeCounts(
        p=len(wrapper.find_all("p")),
        img=len(wrapper.find_all("img")),
        li=len(wrapper.find_all("li")),
        inputs=len(wrapper.find_all("input")),
        embeds=len(wrapper.find_all(["iframe", "embed", "object"])),
        headings=len(wrapper.find_all(list(C.HEADING_TAGS))),
    )
    return FragmentStats(
        text_length=length,
        link_density=1.0 if length == 0 else link_length / length,
        counts=counts,
        comma_count=text.count(","),
        class_id=_fragment_class_id(fragment),
    )


def _fragment_class_id(fragment: str) -> str:
    class_match = _CLASS_ATTR.search(fragment)
    id_match = _ID_ATTR.search(fragment)
    class_value = class_match.group(1).lower() if class_match else ""
    id_value = id_match.group(1).lower() if id_match else ""
    return f"{class_value} {id_value}".strip()


def should_remove_block(stats: FragmentStats, tag: str) -> bool:
    """Decide whether a standalone markup block is clutter."""
    if stats.text_length > MAX_EVALUATED_TEXT:
        return False

    counts = stats.counts
    is_list = tag in ("ul", "ol") or (counts.li > 0 and counts.li / max(counts.p, 1) > 1.5)

    if stats.class_id and any(keyword in stats.class_id for keyword in C.PATTERN_NAV_KEYWORDS):
        if stats.link_density > 0.1 or stats.text_length < 400 or tag == "table":
            return True

    if stats.is_empty and stats.link_density >= 0.2:
        return True
    if stats.link_density > 0.55:
        return True
    if not is_list and counts.img > 1 and counts.p > 0 and counts.p / counts.img < 0.5:
        return True
    if not is_list and counts.li > counts.p and counts.li > 0:
        return True
    if counts.inputs > 0 and counts.inputs * 3 > max(counts.p, 1):
        return True
    if counts.headings > counts.p and stats.comma_count < 2 and stats.text_length < 150:
        return True
    return counts.embeds > 1 and stats.text_length < 220


class PatternConditionalCleaner:
    """Removes clutter blocks by matching them in the markup text."""

    name = "pattern"

    def __init__(self, parser: str = "html.parser") -> None:
        self.parser = parser

    def clean(self, html: str) -> str:
        for tag in C.PATTERN_CLEAN_TAGS:
            html = _block_pattern(tag).sub(lambda match: self._replace(match, tag), html)
        return html

    def _replace(self, match: "re.Match[str]", tag: str) -> str:
        block = match.group(0)
        return "" if should_remove_block(fragment_stats(block, self.parser), tag) else block


# --- Cascade ---

_FALLBACK_ERRORS = (RecursionError, ParserRejectedMarkup)


class CascadeConditionalCleaner:
    """Tries each strategy in order, falling through on tree failures."""

    name = "cascade"

    def __init__(self, cleaners: Optional[Sequence[ConditionalCleaner]] = None, parser: str = "html.parser") -> None:
        self.cleaners: List[ConditionalCleaner] = list(
            cleaners
            if cleaners is not None
            else (TreeConditionalCleaner(parser), PatternConditionalCleaner(parser))
        )
        if not self.cleaners:
            raise ValueError("CascadeConditionalCleaner needs at least one cleaner")
        self.logger = logger.bind(component="CascadeConditionalCleaner")

    def clean(self, html: str) -> str:
        last_error: Optional[BaseException] = None
        for cleaner in self.cleaners:
            try:
                cleaned = cleaner.clean(html)
            except _FALLBACK_ERRORS as e:
                last_error = e
                self.logger.warning(
                    "Conditional cleaner failed, falling back",
                    cleaner=cleaner.name,
                    error_type=type(e).__name__,
                )
                continue
            increment("cleaner_path", labels={"path": cleaner.name})
            return cleaned

        # Every strategy failed; surface the last error.
        raise last_error  # type: ignore[misc]


def clean_conditionally(html: str, parser: str = "html.parser") -> str:
    """Remove clutter blocks from an article fragment."""
    return CascadeConditionalCleaner(parser=parser).clean(html)
