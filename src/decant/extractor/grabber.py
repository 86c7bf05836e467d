"""
Retry controller for article grabbing.

Each attempt scores the document, promotes a best candidate and aggregates its
siblings. When the result is shorter than ``char_threshold`` the next attempt
runs with one more strictness flag dropped. Scoring never mutates the tree, so
every attempt sees the same document. Lengths are measured before conditional
cleaning, which runs once on the fragment this module returns.
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from bs4 import BeautifulSoup

from decant.config.config import ExtractionSettings
from decant.observability import increment

from . import constants as C
from . import dom
from .candidates import build_score_table
from .constants import ParseFlags
from .models import Attempt
from .promotion import select_best_candidate
from .siblings import aggregate_siblings

logger = structlog.get_logger(__name__)


def _flag_label(flags: ParseFlags) -> str:
    names = [flag.name.lower() for flag in C.FLAG_RELAXATION_ORDER if flags & flag and flag.name]
    return "+".join(names) or "none"


def run_attempt(document: BeautifulSoup, flags: ParseFlags, settings: ExtractionSettings) -> Optional[str]:
    """Run one scoring, promotion and aggregation pass.

    Returns:
        Uncleaned article fragment, or None when nothing could be scored
    """
    scores = build_score_table(
        document,
        flags,
        link_density_modifier=settings.link_density_modifier,
        dedupe=settings.dedupe_candidates,
    )
    if not len(scores):
        return None

    selected = select_best_candidate(scores, settings.nb_top_candidates)
    if selected is None:
        return None

    best, _ = selected
    return aggregate_siblings(best, scores)


def grab_article(document: BeautifulSoup, settings: Optional[ExtractionSettings] = None) -> Optional[str]:
    """Extract the article fragment from a parsed document.

    Args:
        document: Prepared document tree
        settings: Extraction settings (defaults when omitted)

    Returns:
        The first fragment reaching ``char_threshold``, else the longest
        non-empty attempt, else None
    """
    settings = settings or ExtractionSettings()
    flags = ParseFlags.ALL
    attempts: List[Attempt] = []

    for attempt_number in range(C.MAX_ATTEMPTS):
        increment("extraction_attempts", labels={"flags": _flag_label(flags)})
        content = run_attempt(document, flags, settings)

        if content is not None:
            length = dom.text_length(content, settings.parser)
            logger.debug(
                "attempt_finished",
                attempt=attempt_number,
                flags=_flag_label(flags),
                text_length=length,
                char_threshold=settings.char_threshold,
            )
            if length >= settings.char_threshold:
                return content
            attempts.append(Attempt(content=content, text_length=length, flags=flags))
        else:
            logger.debug("attempt_empty", attempt=attempt_number, flags=_flag_label(flags))

        if attempt_number < len(C.FLAG_RELAXATION_ORDER):
            flags &= ~C.FLAG_RELAXATION_ORDER[attempt_number]

    if not attempts:
        return None

    longest = max(attempts, key=lambda attempt: attempt.text_length)
    if longest.text_length <= 0:
        return None
    logger.debug("using_longest_attempt", text_length=longest.text_length, flags=_flag_label(longest.flags))
    return longest.content
