"""
Unit tests for the retry controller.
"""

from decant.config.config import ExtractionSettings
from decant.extractor import dom
from decant.extractor.cleaner import clean_conditionally
from decant.extractor.constants import FLAG_RELAXATION_ORDER, MAX_ATTEMPTS, ParseFlags
from decant.extractor.grabber import grab_article, run_attempt
from prometheus_client import REGISTRY


def _attempts(flags):
    value = REGISTRY.get_sample_value("decant_extraction_attempts_total", {"flags": flags})
    return value or 0.0


class TestGrabArticle:
    """Test attempt sequencing and fallbacks."""

    def test_short_blocks_yield_nothing(self, short_page):
        """Test that a page of tiny blocks has no content."""
        assert grab_article(dom.parse_html(short_page)) is None

    def test_all_attempts_run_before_giving_up(self, short_page):
        """Test that every flag combination is tried once."""
        labels = [
            "strip_unlikelys+weight_classes+clean_conditionally",
            "weight_classes+clean_conditionally",
            "clean_conditionally",
            "none",
        ]
        before = [_attempts(label) for label in labels]

        grab_article(dom.parse_html(short_page))

        assert [_attempts(label) - count for label, count in zip(labels, before)] == [1.0, 1.0, 1.0, 1.0]

    def test_first_sufficient_attempt_wins(self, article_page, article_paragraphs):
        """Test that a long article is returned from the first attempt."""
        before = _attempts("weight_classes+clean_conditionally")

        content = grab_article(dom.parse_html(article_page))

        assert content is not None
        for paragraph in article_paragraphs:
            assert paragraph in content
        assert _attempts("weight_classes+clean_conditionally") == before

    def test_longest_attempt_fallback(self, two_paragraph_article):
        """Test that a short article is still returned when no attempt reaches the threshold."""
        html, first, second = two_paragraph_article

        content = grab_article(dom.parse_html(html), ExtractionSettings(char_threshold=500))

        assert content is not None
        assert f"<p>{first}</p>" in content
        assert f"<p>{second}</p>" in content

    def test_low_threshold(self, two_paragraph_article):
        """Test that lowering the threshold accepts the first attempt."""
        html, first, _ = two_paragraph_article
        before = _attempts("weight_classes+clean_conditionally")

        content = grab_article(dom.parse_html(html), ExtractionSettings(char_threshold=100))

        assert first in content
        assert _attempts("weight_classes+clean_conditionally") == before


class TestRunAttempt:
    """Test a single pass."""

    def test_empty_document(self):
        """Test that a document with nothing to score gives None."""
        assert run_attempt(dom.parse_html("<p>x</p>"), ParseFlags.ALL, ExtractionSettings()) is None

    def test_fragment_is_uncleaned(self):
        """Test that attempts return the fragment before conditional cleaning."""
        prose = "Rivers, streams, brooks, and creeks all shape the land, in time, with patience, and force. " * 3
        html = (
            f'<body><div id="story"><p>{prose}</p><div class="share-widget">'
            '<ul><li><a href="/a">Link one</a></li><li><a href="/b">Link two</a></li></ul></div></div></body>'
        )
        settings = ExtractionSettings()

        strict = run_attempt(dom.parse_html(html), ParseFlags.ALL, settings)
        relaxed = run_attempt(dom.parse_html(html), ParseFlags(0), settings)

        assert "share-widget" in strict
        assert "share-widget" in relaxed
        assert "share-widget" not in clean_conditionally(strict)


class TestRelaxationOrder:
    """Test the flag schedule."""

    def test_order(self):
        """Test that flags drop one at a time in a fixed order."""
        assert FLAG_RELAXATION_ORDER == (
            ParseFlags.STRIP_UNLIKELYS,
            ParseFlags.WEIGHT_CLASSES,
            ParseFlags.CLEAN_CONDITIONALLY,
        )
        assert MAX_ATTEMPTS == 4
