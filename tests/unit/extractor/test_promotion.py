"""
Unit tests for the promotion stages.

Each stage is exercised on its own against a hand-built score table.
"""

from decant.extractor import dom
from decant.extractor.promotion import (
    DenseWrapperChildStage,
    PromotionState,
    SemanticDescendantStage,
    SemanticParentStage,
    SharedAncestorStage,
    SingleChildChainStage,
    ViableCandidateStage,
    select_best_candidate,
)
from decant.extractor.scoring import ScoreTable

PROSE = "Long enough prose for a viable candidate, written in plain sentences. " * 3


def _table(*entries):
    table = ScoreTable()
    for node, score in entries:
        table.ensure(node, lambda n, s=score: s)
    return table


def _state(table, best=None, best_score=None):
    ranked = table.ranked()
    first, first_score = ranked[0]
    return PromotionState(
        best=best if best is not None else first,
        best_score=best_score if best_score is not None else first_score,
        scores=table,
        ranked=ranked,
        top_candidates=ranked[:5],
    )


class TestViableCandidateStage:
    """Test the viability scan."""

    def test_skips_link_heavy_candidate(self):
        """Test that a link list loses to a prose block."""
        soup = dom.parse_html(
            f'<body><div id="links"><a href="/1">{PROSE}</a></div><div id="story">{PROSE}</div></body>'
        )
        links, story = soup.find(id="links"), soup.find(id="story")
        state = _state(_table((links, 100.0), (story, 60.0)))

        assert ViableCandidateStage().promote(state) is story

    def test_short_low_score_not_viable(self):
        """Test that short text needs a high score."""
        soup = dom.parse_html("<p>Short text but real.</p>")
        stage = ViableCandidateStage()

        assert not stage.is_viable(soup.p, 10.0)
        assert stage.is_viable(soup.p, 60.0)

    def test_nav_class_with_links(self):
        """Test that nav-named blocks tolerate less link density."""
        soup = dom.parse_html(f'<div class="menu">{PROSE}<a href="/x">{PROSE[:150]}</a></div>')
        assert not ViableCandidateStage().is_viable(soup.div, 100.0)


class TestSharedAncestorStage:
    """Test promotion to a shared ancestor."""

    def test_promotes_common_parent(self):
        """Test that three close runners-up pull the best up to their parent."""
        soup = dom.parse_html(
            '<body><div id="wrap"><div id="a"></div><div id="b"></div><div id="c"></div><div id="d"></div></div></body>'
        )
        nodes = [soup.find(id=name) for name in "abcd"]
        table = _table((nodes[0], 100.0), (nodes[1], 80.0), (nodes[2], 80.0), (nodes[3], 80.0))

        assert SharedAncestorStage().promote(_state(table)) is soup.find(id="wrap")

    def test_needs_three_runners_up(self):
        """Test that two close runners-up are not enough."""
        soup = dom.parse_html('<body><div id="wrap"><div id="a"></div><div id="b"></div><div id="c"></div></div></body>')
        nodes = [soup.find(id=name) for name in "abc"]
        table = _table((nodes[0], 100.0), (nodes[1], 80.0), (nodes[2], 80.0))

        assert SharedAncestorStage().promote(_state(table)) is None

    def test_far_runners_up_ignored(self):
        """Test that candidates under 75% of the best score do not count."""
        soup = dom.parse_html(
            '<body><div id="wrap"><div id="a"></div><div id="b"></div><div id="c"></div><div id="d"></div></div></body>'
        )
        nodes = [soup.find(id=name) for name in "abcd"]
        table = _table((nodes[0], 100.0), (nodes[1], 50.0), (nodes[2], 50.0), (nodes[3], 50.0))

        assert SharedAncestorStage().promote(_state(table)) is None


class TestSemanticParentStage:
    """Test climbing to semantic containers."""

    def test_climbs_to_higher_scoring_article(self):
        """Test that an outscoring article ancestor is preferred."""
        soup = dom.parse_html("<body><article><div><p>x</p></div></article></body>")
        table = _table((soup.div, 30.0), (soup.article, 40.0))

        assert SemanticParentStage().promote(_state(table, best=soup.div, best_score=30.0)) is soup.article

    def test_ignores_lower_scoring_article(self):
        """Test that a weaker article ancestor is left alone."""
        soup = dom.parse_html("<body><article><div><p>x</p></div></article></body>")
        table = _table((soup.div, 30.0), (soup.article, 20.0))

        assert SemanticParentStage().promote(_state(table, best=soup.div, best_score=30.0)) is None

    def test_role_main(self):
        """Test that role=main counts as a semantic container."""
        soup = dom.parse_html('<body><div role="main"><div id="inner"></div></div></body>')
        inner, main = soup.find(id="inner"), soup.find(attrs={"role": "main"})
        table = _table((inner, 30.0), (main, 45.0))

        assert SemanticParentStage().promote(_state(table, best=inner, best_score=30.0)) is main


class TestSingleChildChainStage:
    """Test climbing through single-child wrappers."""

    def test_climbs_to_outermost_only_child_wrapper(self):
        """Test that wrappers holding only the best are climbed up to body."""
        soup = dom.parse_html('<body><div id="outer"><div id="inner"><p>x</p></div></div><p>y</p></body>')
        table = _table((soup.p, 10.0))

        assert SingleChildChainStage().promote(_state(table)) is soup.find(id="outer")

    def test_stops_at_siblings(self):
        """Test that a parent with several children stops the climb."""
        soup = dom.parse_html("<body><div><p>x</p><p>y</p></div></body>")
        table = _table((soup.p, 10.0))

        assert SingleChildChainStage().promote(_state(table)) is None


RELATED_LINKS = "".join(f'<li><a href="/r{i}">Related reading item number {i} here</a></li>' for i in range(5))


def _wrapper_page(tag="div"):
    soup = dom.parse_html(
        f'<body><{tag} id="wrap"><ul>{RELATED_LINKS}</ul><div id="story"><p>{PROSE}</p></div></{tag}></body>'
    )
    return soup.find(id="wrap"), soup.find(id="story")


class TestDenseWrapperChildStage:
    """Test swapping link-heavy wrappers for their prose child."""

    def test_swaps_link_heavy_wrapper(self):
        """Test that the dense prose child replaces a link-heavy wrapper."""
        wrapper, story = _wrapper_page()
        table = _table((wrapper, 100.0), (story, 60.0))

        assert dom.link_density(wrapper) > 0.3
        assert DenseWrapperChildStage().promote(_state(table)) is story

    def test_score_ratio_cutoff(self):
        """Test that the child needs 45% of the wrapper score."""
        wrapper, story = _wrapper_page()
        stage = DenseWrapperChildStage()

        assert stage.promote(_state(_table((wrapper, 100.0), (story, 45.0)))) is story
        assert stage.promote(_state(_table((wrapper, 100.0), (story, 44.0)))) is None

    def test_article_wrapper_untouched(self):
        """Test that a semantic container is never swapped."""
        wrapper, story = _wrapper_page("article")
        table = _table((wrapper, 100.0), (story, 60.0))

        assert DenseWrapperChildStage().promote(_state(table)) is None


class TestSemanticDescendantStage:
    """Test preferring article-named descendants of layout wrappers."""

    def test_picks_post_body(self):
        """Test that a post-body inside a content wrapper is chosen."""
        soup = dom.parse_html(
            f'<body><div class="content-wrapper"><div class="post-body">{PROSE}</div><div>aside</div></div></body>'
        )
        wrapper, post = soup.find(class_="content-wrapper"), soup.find(class_="post-body")
        table = _table((wrapper, 100.0), (post, 60.0))

        assert SemanticDescendantStage().promote(_state(table)) is post

    def test_plain_wrapper_untouched(self):
        """Test that a wrapper without layout naming is kept."""
        soup = dom.parse_html(f'<body><div id="story"><div class="post-body">{PROSE}</div></div></body>')
        story, post = soup.find(id="story"), soup.find(class_="post-body")
        table = _table((story, 100.0), (post, 60.0))

        assert SemanticDescendantStage().promote(_state(table)) is None


class TestSelectBestCandidate:
    """Test the promotion chain as a whole."""

    def test_empty_table(self):
        """Test that an empty table has no best candidate."""
        assert select_best_candidate(ScoreTable()) is None

    def test_no_stages_returns_top(self):
        """Test that without stages the top-ranked node wins."""
        soup = dom.parse_html("<p id='a'>a</p><p id='b'>b</p>")
        a, b = soup.find_all("p")
        table = _table((a, 5.0), (b, 9.0))

        assert select_best_candidate(table, stages=()) == (b, 9.0)

    def test_single_child_chain_keeps_score(self):
        """Test that climbing a single-child chain does not refresh the score."""
        soup = dom.parse_html('<body><div id="outer"><div id="inner"><p>x</p></div></div><p>y</p></body>')
        outer = soup.find(id="outer")
        table = _table((soup.p, 10.0), (outer, 3.0))

        best, score = select_best_candidate(table, stages=(SingleChildChainStage(),))
        assert best is outer
        assert score == 10.0
