"""
Best-candidate selection as an ordered chain of promotion stages.

Each stage looks at the shared ``PromotionState`` and either proposes a new
best node or leaves the current one alone. Stages are independent, so each
rule can be exercised on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

import structlog
from bs4 import Tag

from . import constants as C
from . import dom, scoring
from .constants import ParseFlags
from .scoring import ScoreTable

logger = structlog.get_logger(__name__)

Ranked = List[Tuple[Tag, float]]


@dataclass
class PromotionState:
    """The current best candidate and the data stages decide on."""

    best: Tag
    best_score: float
    scores: ScoreTable
    ranked: Ranked
    top_candidates: Ranked


class PromotionStage:
    """A single promotion rule.

    ``refresh_score`` tells the chain to re-read the best score from the
    table after this stage promotes.
    """

    name = "stage"
    refresh_score = True

    def promote(self, state: PromotionState) -> Optional[Tag]:
        raise NotImplementedError


def _is_body(node: Tag) -> bool:
    return (node.name or "").lower() == "body"


def _walk_up_to_body(node: Tag):
    parent = node.parent
    while parent is not None and dom.is_element(parent) and not _is_body(parent):
        yield parent
        parent = parent.parent


class ViableCandidateStage(PromotionStage):
    """Pick the first top candidate that is long enough and not link-heavy."""

    name = "viable_candidate"

    MIN_TEXT_LENGTH = 150
    MIN_SCORE = 50.0
    MAX_LINK_DENSITY = 0.6
    MAX_NAV_LINK_DENSITY = 0.3

    def promote(self, state: PromotionState) -> Optional[Tag]:
        for node, score in state.top_candidates:
            if self.is_viable(node, score):
                return node
        return None

    def is_viable(self, node: Tag, score: float) -> bool:
        if len(dom.inner_text(node, False)) < self.MIN_TEXT_LENGTH and score < self.MIN_SCORE:
            return False

        density = dom.link_density(node)
        if density > self.MAX_LINK_DENSITY:
            return False

        match_string = dom.class_and_id(node).lower()
        if any(keyword in match_string for keyword in C.NAV_KEYWORDS) and density > self.MAX_NAV_LINK_DENSITY:
            return False
        return True


class SharedAncestorStage(PromotionStage):
    """Move up to an ancestor shared by several near-best candidates."""

    name = "shared_ancestor"

    MINIMUM_TOP_CANDIDATES = 3
    SCORE_RATIO = 0.75

    def promote(self, state: PromotionState) -> Optional[Tag]:
        if state.best_score <= 0:
            return None

        ancestor_sets: List[Set[int]] = []
        for node, score in state.top_candidates[1:]:
            if score < state.best_score * self.SCORE_RATIO:
                continue
            ancestors = dom.node_ancestors(node)
            if ancestors:
                ancestor_sets.append({id(ancestor) for ancestor in ancestors})

        if len(ancestor_sets) < self.MINIMUM_TOP_CANDIDATES:
            return None

        for parent in _walk_up_to_body(state.best):
            containing = sum(1 for ancestors in ancestor_sets if id(parent) in ancestors)
            if containing >= self.MINIMUM_TOP_CANDIDATES:
                return parent
        return None


class SemanticParentStage(PromotionStage):
    """Climb to an ``article``/``section``/``main`` ancestor that outscores the best."""

    name = "semantic_parent"

    MAX_LINK_DENSITY = 0.33

    def promote(self, state: PromotionState) -> Optional[Tag]:
        last_score = state.best_score
        threshold = state.best_score / 3.0

        for parent in _walk_up_to_body(state.best):
            looks_like_main = (parent.name or "").lower() in C.SEMANTIC_CONTAINERS or (
                dom.attr(parent, "role").lower() == "main"
            )
            if not looks_like_main:
                continue

            parent_score = state.scores.get(parent)
            if parent_score is None:
                continue
            if parent_score < threshold:
                break
            if dom.link_density(parent) > self.MAX_LINK_DENSITY:
                continue
            if parent_score > last_score:
                return parent
            last_score = parent_score
        return None


class SingleChildChainStage(PromotionStage):
    """Climb through parents that hold nothing but the current best."""

    name = "single_child_chain"
    refresh_score = False

    def promote(self, state: PromotionState) -> Optional[Tag]:
        promoted = None
        for parent in _walk_up_to_body(state.best):
            if dom.count_element_children(parent) != 1:
                break
            promoted = parent
        return promoted


class DenseWrapperChildStage(PromotionStage):
    """Swap a link-heavy generic wrapper for its best prose-like descendant."""

    name = "dense_wrapper_child"

    SCAN_LIMIT = 20
    MIN_TEXT_LENGTH = 160
    MAX_LINK_DENSITY = 0.35
    DENSITY_MARGIN = 0.15
    MIN_TEXT_WITHOUT_PARAGRAPHS = 300
    SCORE_RATIO = 0.45

    def promote(self, state: PromotionState) -> Optional[Tag]:
        best = state.best
        if (best.name or "").lower() in C.SEMANTIC_CONTAINERS:
            return None

        wrapper_score = state.scores.get(best, 0.0)
        wrapper_density = dom.link_density(best)

        chosen: Optional[Tuple[Tag, float]] = None
        for node, score in state.ranked[: self.SCAN_LIMIT]:
            if node is best or not dom.is_descendant_of(node, best):
                continue

            length = len(dom.inner_text(node, False))
            if length < self.MIN_TEXT_LENGTH:
                continue

            density = dom.link_density(node)
            if density >= self.MAX_LINK_DENSITY or density >= wrapper_density - self.DENSITY_MARGIN:
                continue

            if scoring.class_weight(node, ParseFlags.WEIGHT_CLASSES) < 0:
                if not C.POSITIVE.search(dom.class_and_id(node)):
                    continue

            if node.find("p") is None and length < self.MIN_TEXT_WITHOUT_PARAGRAPHS:
                continue

            if chosen is None or score > chosen[1]:
                chosen = (node, score)

        if chosen is not None and (wrapper_score == 0.0 or chosen[1] >= wrapper_score * self.SCORE_RATIO):
            return chosen[0]
        return None


class SemanticDescendantStage(PromotionStage):
    """Prefer a descendant named like article content over a layout wrapper."""

    name = "semantic_descendant"
    refresh_score = False

    SCAN_LIMIT = 40
    MIN_TEXT_LENGTH = 200
    MAX_LINK_DENSITY = 0.45
    SCORE_RATIO = 0.4

    def promote(self, state: PromotionState) -> Optional[Tag]:
        if state.best_score <= 0:
            return None

        best = state.best
        class_id = dom.class_and_id(best).lower()
        if not any(keyword in class_id for keyword in C.LAYOUT_KEYWORDS):
            return None

        chosen: Optional[Tuple[Tag, float]] = None
        for node, score in state.ranked[: self.SCAN_LIMIT]:
            if node is best or not dom.is_descendant_of(node, best):
                continue
            if len(dom.inner_text(node, False)) < self.MIN_TEXT_LENGTH:
                continue
            if dom.link_density(node) > self.MAX_LINK_DENSITY:
                continue

            match_string = f"{dom.class_and_id(node)} {dom.attr(node, 'itemprop')}".lower()
            if not any(keyword in match_string for keyword in C.SEMANTIC_KEYWORDS):
                continue
            if score < state.best_score * self.SCORE_RATIO:
                continue

            if chosen is None or score > chosen[1]:
                chosen = (node, score)

        return chosen[0] if chosen is not None else None


DEFAULT_STAGES: Tuple[PromotionStage, ...] = (
    ViableCandidateStage(),
    SharedAncestorStage(),
    SemanticParentStage(),
    SingleChildChainStage(),
    DenseWrapperChildStage(),
    SemanticDescendantStage(),
)


def select_best_candidate(
    scores: ScoreTable,
    nb_top_candidates: int = 5,
    stages: Sequence[PromotionStage] = DEFAULT_STAGES,
) -> Optional[Tuple[Tag, float]]:
    """Run the promotion chain and return the final best node and its score."""
    ranked = scores.ranked()
    top_candidates = ranked[:nb_top_candidates]
    if not top_candidates:
        return None

    best, best_score = top_candidates[0]
    state = PromotionState(
        best=best,
        best_score=best_score,
        scores=scores,
        ranked=ranked,
        top_candidates=top_candidates,
    )

    for stage in stages:
        promoted = stage.promote(state)
        if promoted is None or promoted is state.best:
            continue
        state.best = promoted
        if stage.refresh_score:
            state.best_score = scores.get(promoted, state.best_score)
        logger.debug("candidate_promoted", stage=stage.name, tag=promoted.name, score=round(state.best_score, 2))

    return state.best, state.best_score
