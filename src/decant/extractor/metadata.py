"""
Article metadata: title, byline, excerpt, site name, publish time, language
and direction.

Sources are tried in order: JSON-LD (schema.org article types), then
``<meta>`` tags (OpenGraph, Twitter cards, Dublin Core, plain name/property),
then the document itself (``<title>``, headings, byline-looking elements).
Metadata is read from the raw document, before scripts are stripped.
"""

from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import structlog
from bs4 import BeautifulSoup, Tag

from . import constants as C
from . import dom, scoring

logger = structlog.get_logger(__name__)

_CDATA = re.compile(r"^\s*<!\[CDATA\[|\]\]>\s*$")
_SCHEMA_CONTEXT = re.compile(r"^https?://schema\.org/?$")
_META_KEY_SPACES = re.compile(r"\s+")
_SEPARATOR_CHARS = r"\|\-–—\\/>»"
_LAST_SEPARATOR = re.compile(rf"(.*)\s[{_SEPARATOR_CHARS}]\s.*", re.DOTALL)
_FIRST_SEPARATOR = re.compile(rf"[^{_SEPARATOR_CHARS}]*[{_SEPARATOR_CHARS}](.*)", re.DOTALL)
_SEPARATOR_STRIP = re.compile(rf"[{_SEPARATOR_CHARS}]+")

# Meta keys in priority order for each field.
TITLE_KEYS = (
    "dc:title",
    "dcterm:title",
    "og:title",
    "weibo:article:title",
    "weibo:webpage:title",
    "title",
    "twitter:title",
)
BYLINE_KEYS = ("dc:creator", "dcterm:creator", "author", "article:author")
EXCERPT_KEYS = (
    "dc:description",
    "dcterm:description",
    "og:description",
    "weibo:article:description",
    "weibo:webpage:description",
    "description",
    "twitter:description",
)
SITE_NAME_KEYS = ("og:site_name",)
PUBLISHED_TIME_KEYS = ("article:published_time", "og:published_time", "dc:date", "dcterm:date")


@dataclass(slots=True)
class Metadata:
    title: Optional[str] = None
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    site_name: Optional[str] = None
    published_time: Optional[str] = None
    lang: Optional[str] = None
    dir: Optional[str] = None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = html.unescape(str(value)).strip()
    return text or None


def word_count(text: str) -> int:
    return len(text.split())


def _name_of(value: Any) -> Optional[str]:
    """The ``name`` of a schema.org person/organization, or a plain string."""
    if isinstance(value, dict):
        return _clean(value.get("name"))
    if isinstance(value, str):
        return _clean(value)
    return None


def _is_article_type(item: Dict[str, Any]) -> bool:
    item_type = item.get("@type")
    types: Iterable[Any] = item_type if isinstance(item_type, list) else [item_type]
    return any(isinstance(t, str) and C.JSON_LD_ARTICLE_TYPES.search(t) for t in types)


def _json_ld_items(document: BeautifulSoup) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for script in document.find_all("script", type="application/ld+json"):
        raw = script.string
        if not raw:
            continue
        try:
            data = json.loads(_CDATA.sub("", str(raw)))
        except json.JSONDecodeError as e:
            logger.debug("json_ld_invalid", error=str(e))
            continue

        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if not isinstance(candidate, dict):
                continue
            context = candidate.get("@context")
            if isinstance(context, str) and not _SCHEMA_CONTEXT.match(context):
                continue
            graph = candidate.get("@graph")
            if "@type" not in candidate and isinstance(graph, list):
                items.extend(node for node in graph if isinstance(node, dict))
            else:
                items.append(candidate)
    return items


def parse_json_ld(document: BeautifulSoup, document_title: Optional[str] = None) -> Dict[str, str]:
    """Read article fields from the first schema.org article object."""
    for item in _json_ld_items(document):
        if not _is_article_type(item):
            continue

        fields: Dict[str, str] = {}
        name = _clean(item.get("name")) if isinstance(item.get("name"), str) else None
        headline = _clean(item.get("headline")) if isinstance(item.get("headline"), str) else None
        if name and headline and name != headline and document_title:
            # Prefer whichever one the page title agrees with.
            name_matches = _similar(name, document_title)
            headline_matches = _similar(headline, document_title)
            fields["title"] = headline if headline_matches and not name_matches else name
        elif name or headline:
            fields["title"] = name or headline  # type: ignore[assignment]

        author = item.get("author")
        if isinstance(author, list):
            names = [n for n in (_name_of(a) for a in author) if n]
            if names:
                fields["byline"] = ", ".join(names)
        else:
            author_name = _name_of(author)
            if author_name:
                fields["byline"] = author_name

        description = _clean(item.get("description")) if isinstance(item.get("description"), str) else None
        if description:
            fields["excerpt"] = description

        publisher = _name_of(item.get("publisher"))
        if publisher:
            fields["site_name"] = publisher

        published = _clean(item.get("datePublished")) if isinstance(item.get("datePublished"), str) else None
        if published:
            fields["published_time"] = published

        return fields
    return {}


def _similar(a: str, b: str) -> bool:
    a_words = set(a.lower().split())
    b_words = set(b.lower().split())
    if not a_words:
        return False
    return len(a_words & b_words) / len(a_words) >= 0.75


def parse_meta_tags(document: BeautifulSoup) -> Dict[str, str]:
    """Collect ``<meta>`` values keyed by normalised name or property."""
    values: Dict[str, str] = {}
    for meta in document.find_all("meta"):
        content = _clean(meta.get("content"))
        if not content:
            continue

        prop = dom.attr(meta, "property").strip().lower()
        if prop:
            # A property attribute may carry several space-separated keys.
            for key in prop.split():
                values.setdefault(key, content)

        name = dom.attr(meta, "name").strip().lower()
        if name:
            key = _META_KEY_SPACES.sub("", name).replace(".", ":")
            values.setdefault(key, content)
    return values


def _first(values: Dict[str, str], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        if values.get(key):
            return values[key]
    return None


def get_article_title(document: BeautifulSoup) -> Optional[str]:
    """Title from ``<title>`` with the site name trimmed off.

    ``"Story | Site"`` gives ``"Story"``; colon-style titles keep the part
    after the colon unless a heading repeats the full title.
    """
    title_tag = document.find("title")
    original = dom.inner_text(title_tag) if title_tag is not None else ""
    current = original
    hierarchical = False

    if C.TITLE_SEPARATORS.search(current):
        hierarchical = bool(C.HIERARCHICAL_SEPARATORS.search(current))
        current = _LAST_SEPARATOR.sub(r"\1", original)
        if word_count(current) < 3:
            current = _FIRST_SEPARATOR.sub(r"\1", original)
    elif ": " in current:
        headings = document.find_all(["h1", "h2"])
        if not any(heading.get_text().strip() == current.strip() for heading in headings):
            current = original[original.rfind(":") + 1 :]
            if word_count(current) < 3:
                current = original[original.find(":") + 1 :]
            elif word_count(original[: original.find(":")]) > 5:
                current = original
    elif len(current) > 150 or len(current) < 15:
        headings = document.find_all("h1")
        if len(headings) == 1:
            current = dom.inner_text(headings[0])

    current = C.NORMALIZE.sub(" ", current.strip())
    current_words = word_count(current)
    if current_words <= 4 and (
        not hierarchical or current_words != word_count(_SEPARATOR_STRIP.sub("", original)) - 1
    ):
        current = original

    return current or None


def find_byline(document: BeautifulSoup) -> Optional[str]:
    """First visible element that looks like an author line."""
    for node in document.find_all(True):
        if node.name in ("html", "head", "body", "meta", "script", "style"):
            continue
        match_string = dom.class_and_id(node)
        if not scoring.is_valid_byline(node, match_string):
            continue
        if not dom.is_probably_visible(node):
            continue
        name_node = node.find(attrs={"itemprop": "name"})
        source: Tag = name_node if isinstance(name_node, Tag) else node
        byline = dom.inner_text(source)
        if byline:
            return byline
    return None


def get_lang(document: BeautifulSoup) -> Optional[str]:
    root = document.find("html")
    if root is None:
        return None
    return dom.attr(root, "lang").strip() or None


def extract_metadata(document: BeautifulSoup) -> Metadata:
    """Collect article metadata from a raw (unprepared) document."""
    document_title = get_article_title(document)
    json_ld = parse_json_ld(document, document_title)
    meta = parse_meta_tags(document)

    metadata = Metadata(
        title=json_ld.get("title") or _first(meta, TITLE_KEYS) or document_title,
        byline=json_ld.get("byline") or _first(meta, BYLINE_KEYS),
        excerpt=json_ld.get("excerpt") or _first(meta, EXCERPT_KEYS),
        site_name=json_ld.get("site_name") or _first(meta, SITE_NAME_KEYS),
        published_time=json_ld.get("published_time") or _first(meta, PUBLISHED_TIME_KEYS),
        lang=get_lang(document),
        dir=dom.article_direction(document),
    )
    if metadata.byline is None:
        metadata.byline = find_byline(document)

    logger.debug(
        "metadata_extracted",
        has_json_ld=bool(json_ld),
        title=metadata.title,
        byline=metadata.byline,
    )
    return metadata


def first_paragraph(content: str, parser: str = "html.parser") -> Optional[str]:
    """Text of the first non-empty paragraph of an article fragment."""
    fragment = dom.parse_fragment(content, parser)
    for paragraph in fragment.find_all("p"):
        text = dom.inner_text(paragraph)
        if text:
            return text
    return None
