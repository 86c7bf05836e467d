"""
Article extraction entry point.

``Readability`` wires the passes together: metadata is read from the raw
document, the markup is prepared, the retry controller grabs the article
fragment, the conditional cleaner prunes it and the post-processor tidies it
into an ``Article``.
"""

from __future__ import annotations

import time
from typing import Optional

import structlog

from decant.config.config import ExtractionSettings
from decant.observability import histogram, increment

from . import dom
from .cleaner import clean_conditionally, prep_document, remove_nav_like_sections
from .exceptions import InputStructureError
from .grabber import grab_article
from .metadata import Metadata, extract_metadata, first_paragraph
from .models import Article
from .post_processor import prep_article, remove_title_from_content

logger = structlog.get_logger(__name__)


class Readability:
    """Extracts the main article from one HTML document.

    Args:
        html: Document as text or UTF-8 bytes
        url: Source URL, used for log context only
        settings: Extraction settings (defaults when omitted)
        title: Known article title; overrides the title found in metadata
    """

    name = "readability"

    def __init__(
        self,
        html: str | bytes,
        url: Optional[str] = None,
        settings: Optional[ExtractionSettings] = None,
        title: Optional[str] = None,
    ) -> None:
        self.html = html
        self.url = url
        self.settings = settings or ExtractionSettings()
        self.title = title
        self.logger = logger.bind(component="Readability")

    def parse(self) -> Optional[Article]:
        """Extract the article.

        Returns:
            The article, or None when no content was found

        Raises:
            InputStructureError: If the document cannot be read as HTML
        """
        start_time = time.perf_counter()
        with structlog.contextvars.bound_contextvars(document_url=self.url):
            try:
                try:
                    article = self._parse()
                except RecursionError as e:
                    raise InputStructureError("Document nesting is too deep") from e
            except InputStructureError as e:
                increment("documents_processed", labels={"outcome": "invalid_input"})
                self.logger.warning("Document rejected", error=str(e))
                raise

            duration = time.perf_counter() - start_time
            histogram("extraction_duration_seconds", duration)
            increment("documents_processed", labels={"outcome": "content" if article else "no_content"})
            self.logger.debug(
                "Extraction finished",
                found=article is not None,
                length=article.length if article else 0,
                duration=round(duration, 4),
            )
        return article

    def _parse(self) -> Optional[Article]:
        settings = self.settings
        markup = dom.decode_markup(self.html)

        raw_document = dom.parse_html(markup, settings.parser, settings.max_elems_to_parse)
        metadata = extract_metadata(raw_document)
        title = self.title or metadata.title

        prepared = remove_nav_like_sections(prep_document(markup))
        document = dom.parse_html(prepared, settings.parser)

        content = grab_article(document, settings)
        if content is None:
            return None

        content = clean_conditionally(content, settings.parser)
        content = prep_article(content, settings.clean_styles, settings.clean_whitespace)
        if settings.remove_title and title:
            content = remove_title_from_content(content, title, settings.parser)
        if not content.strip():
            return None

        return self._build_article(content, title, metadata)

    def _build_article(self, content: str, title: Optional[str], metadata: Metadata) -> Article:
        text_content = dom.parse_fragment(content, self.settings.parser).get_text().strip()
        return Article(
            title=title,
            byline=metadata.byline,
            dir=metadata.dir,
            lang=metadata.lang,
            site_name=metadata.site_name,
            excerpt=metadata.excerpt or first_paragraph(content, self.settings.parser),
            content=content,
            text_content=text_content,
            length=len(text_content),
            published_time=metadata.published_time,
        )


def extract(
    html: str | bytes,
    title: Optional[str] = None,
    url: Optional[str] = None,
    settings: Optional[ExtractionSettings] = None,
) -> Optional[Article]:
    """Extract the main article from ``html``; None means no content was found."""
    return Readability(html, url=url, settings=settings, title=title).parse()
