"""
Candidate discovery and the scoring pass of one extraction attempt.
"""

from __future__ import annotations

from typing import List

import structlog
from bs4 import BeautifulSoup, Tag

from . import constants as C
from . import dom, scoring
from .constants import ParseFlags
from .scoring import ScoreTable

logger = structlog.get_logger(__name__)

PROPAGATION_LEVELS = 5


def is_unlikely_candidate(node: Tag) -> bool:
    """Class/id look like page furniture and nothing rescues them."""
    match_string = dom.class_and_id(node)
    return bool(C.UNLIKELY_CANDIDATES.search(match_string)) and not C.OK_MAYBE_ITS_A_CANDIDATE.search(match_string)


def _accept(node: Tag, flags: ParseFlags) -> bool:
    if not dom.is_probably_visible(node):
        return False
    if flags & ParseFlags.STRIP_UNLIKELYS and is_unlikely_candidate(node):
        return False
    return len(dom.inner_text(node, False)) >= scoring.MIN_PARAGRAPH_LENGTH


def find_candidates(document: BeautifulSoup, flags: ParseFlags, dedupe: bool = False) -> List[Tag]:
    """Collect elements worth scoring.

    Paragraphs are scanned first, then every tag in ``DEFAULT_TAGS_TO_SCORE``.
    A paragraph shows up in both scans and is returned twice unless
    ``dedupe`` is set.
    """
    candidates: List[Tag] = [p for p in document.find_all("p") if _accept(p, flags)]
    for tag in C.DEFAULT_TAGS_TO_SCORE:
        candidates.extend(node for node in document.find_all(tag) if _accept(node, flags))

    if dedupe:
        seen = set()
        unique: List[Tag] = []
        for node in candidates:
            if id(node) not in seen:
                seen.add(id(node))
                unique.append(node)
        candidates = unique
    return candidates


def score_candidates(candidates: List[Tag], flags: ParseFlags, link_density_modifier: float = 0.0) -> ScoreTable:
    """Score candidates and propagate their content score to five ancestor levels."""
    scores = ScoreTable()

    def initializer(node: Tag) -> float:
        return scoring.initial_score(node, flags)

    for candidate in candidates:
        score = scoring.content_score(candidate, link_density_modifier)
        if score == 0.0:
            continue

        scores.ensure(candidate, initializer)
        scores.add(candidate, score)

        for level, ancestor in enumerate(dom.node_ancestors(candidate, PROPAGATION_LEVELS)):
            scores.ensure(ancestor, initializer)
            scores.add(ancestor, score / scoring.propagation_divider(level))

    return scores


def apply_link_density_penalty(scores: ScoreTable) -> None:
    """Scale every score by ``max(0, 1 - link_density)`` read from the live tree."""
    scores.scale(lambda node: max(0.0, 1.0 - dom.link_density(node)))


def build_score_table(
    document: BeautifulSoup,
    flags: ParseFlags,
    link_density_modifier: float = 0.0,
    dedupe: bool = False,
) -> ScoreTable:
    candidates = find_candidates(document, flags, dedupe=dedupe)
    if not candidates:
        return ScoreTable()
    scores = score_candidates(candidates, flags, link_density_modifier)
    apply_link_density_penalty(scores)
    logger.debug("candidates_scored", candidates=len(candidates), scored=len(scores), flags=int(flags))
    return scores
