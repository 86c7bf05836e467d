"""
Unit tests for content scoring and the score table.
"""

import pytest
from decant.extractor import dom, scoring
from decant.extractor.constants import ParseFlags
from decant.extractor.scoring import ScoreTable


def _node(markup, name):
    return dom.parse_html(markup).find(name)


class TestClassWeight:
    """Test class/id weighting."""

    def test_positive_class(self):
        """Test a positive class keyword."""
        node = _node('<div class="article-body">x</div>', "div")
        assert scoring.class_weight(node, ParseFlags.ALL) == 25

    def test_negative_wins_per_attribute(self):
        """Test that a value matching both patterns counts as negative."""
        node = _node('<div class="comment-content">x</div>', "div")
        assert scoring.class_weight(node, ParseFlags.ALL) == -25

    def test_class_and_id_add_up(self):
        """Test that class and id contribute separately."""
        node = _node('<div class="post" id="sidebar">x</div>', "div")
        assert scoring.class_weight(node, ParseFlags.ALL) == 0

    def test_disabled_without_flag(self):
        """Test that weighting is off when WEIGHT_CLASSES is dropped."""
        node = _node('<div class="article-body">x</div>', "div")
        assert scoring.class_weight(node, ParseFlags.STRIP_UNLIKELYS) == 0


class TestInitialScore:
    """Test tag base scores."""

    def test_paragraph(self):
        """Test that a paragraph starts at 5."""
        assert scoring.initial_score(_node("<p>x</p>", "p"), ParseFlags.NONE) == 5.0

    def test_div_with_block_children(self):
        """Test that a div holding blocks starts at 2."""
        assert scoring.initial_score(_node("<div><p>x</p></div>", "div"), ParseFlags.NONE) == 2.0

    def test_div_with_inline_children(self):
        """Test that a paragraph-like div starts at 5."""
        assert scoring.initial_score(_node("<div><span>x</span></div>", "div"), ParseFlags.NONE) == 5.0

    @pytest.mark.parametrize("tag,expected", [("article", 8.0), ("li", -3.0), ("h2", -5.0), ("span", 0.0)])
    def test_tag_table(self, tag, expected):
        """Test a sample of the tag base scores."""
        node = _node(f"<{tag}>x</{tag}>", tag)
        assert scoring.initial_score(node, ParseFlags.NONE) == expected

    def test_class_weight_included(self):
        """Test that the class weight is added to the base score."""
        node = _node('<p class="entry">x</p>', "p")
        assert scoring.initial_score(node, ParseFlags.ALL) == 30.0


class TestContentScore:
    """Test paragraph content scoring."""

    def test_short_text_scores_zero(self):
        """Test that text under 25 characters scores nothing."""
        assert scoring.content_score(_node("<p>Short text here.</p>", "p")) == 0.0

    def test_commas_and_length(self):
        """Test one point per comma plus one per hundred characters."""
        node = _node("<p>" + "word, " * 20 + "</p>", "p")
        # 119 characters after trimming, 20 commas.
        assert scoring.content_score(node) == pytest.approx(1 + 20 + 1.19)

    def test_length_bonus_capped(self):
        """Test that the length bonus stops at 3."""
        node = _node("<p>" + "a" * 1000 + "</p>", "p")
        assert scoring.content_score(node) == pytest.approx(4.0)

    def test_links_reduce_score(self):
        """Test that link density scales the score down."""
        node = _node('<p>' + "a" * 50 + '<a href="/x">' + "b" * 50 + "</a></p>", "p")
        assert scoring.content_score(node) == pytest.approx(2.0 * 0.5)

    def test_link_density_modifier(self):
        """Test that the modifier offsets the link penalty."""
        node = _node('<p>' + "a" * 50 + '<a href="/x">' + "b" * 50 + "</a></p>", "p")
        assert scoring.content_score(node, link_density_modifier=0.5) == pytest.approx(2.0)


class TestPropagation:
    """Test the ancestor divider."""

    @pytest.mark.parametrize("level,divider", [(0, 1.0), (1, 2.0), (2, 6.0), (4, 12.0)])
    def test_divider(self, level, divider):
        """Test parent, grandparent and deeper dividers."""
        assert scoring.propagation_divider(level) == divider


class TestByline:
    """Test byline detection."""

    def test_rel_author(self):
        """Test rel=author."""
        node = _node('<a rel="author">Jane Doe</a>', "a")
        assert scoring.is_valid_byline(node, dom.class_and_id(node))

    def test_class_byline(self):
        """Test a byline class."""
        node = _node('<div class="byline">By Jane Doe</div>', "div")
        assert scoring.is_valid_byline(node, dom.class_and_id(node))

    def test_too_long(self):
        """Test that long text is not a byline."""
        node = _node('<div class="byline">' + "x" * 120 + "</div>", "div")
        assert not scoring.is_valid_byline(node, dom.class_and_id(node))


class TestScoreTable:
    """Test the identity-keyed score table."""

    def test_ensure_initializes_once(self):
        """Test that the initializer runs only on first touch."""
        node = _node("<p>x</p>", "p")
        calls = []
        table = ScoreTable()

        def initializer(n):
            calls.append(n)
            return 5.0

        assert table.ensure(node, initializer) == 5.0
        table.add(node, 2.5)
        assert table.ensure(node, initializer) == 7.5
        assert len(calls) == 1
        assert node in table
        assert len(table) == 1

    def test_equal_nodes_are_distinct_keys(self):
        """Test that structurally equal elements keep separate scores."""
        soup = dom.parse_html("<p>same</p><p>same</p>")
        first, second = soup.find_all("p")
        table = ScoreTable()
        table.ensure(first, lambda n: 1.0)
        table.ensure(second, lambda n: 2.0)

        assert table.get(first) == 1.0
        assert table.get(second) == 2.0

    def test_ranked_keeps_touch_order_on_ties(self):
        """Test descending order with stable ties."""
        soup = dom.parse_html("<p id='a'>a</p><p id='b'>b</p><p id='c'>c</p>")
        a, b, c = soup.find_all("p")
        table = ScoreTable()
        table.ensure(a, lambda n: 1.0)
        table.ensure(b, lambda n: 3.0)
        table.ensure(c, lambda n: 1.0)

        assert [node["id"] for node, _ in table.ranked()] == ["b", "a", "c"]

    def test_scale(self):
        """Test scaling every entry."""
        node = _node("<p>x</p>", "p")
        table = ScoreTable()
        table.ensure(node, lambda n: 10.0)
        table.scale(lambda n: 0.5)
        assert table.get(node) == 5.0

    def test_get_default(self):
        """Test the default for unknown nodes."""
        assert ScoreTable().get(_node("<p>x</p>", "p"), 0.0) == 0.0
