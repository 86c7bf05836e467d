"""
decant article extraction.

Scores the elements of an HTML document, promotes the best content
candidate, pulls in related siblings and cleans the result:

1. Candidate discovery and scoring with ancestor propagation
2. Ordered promotion stages over the top candidates
3. Sibling aggregation and serialization
4. Up to four attempts with progressively relaxed strictness flags
5. Conditional cleaning (tree strategy with a text-pattern fallback)
6. Unconditional post-processing and title de-duplication
"""

from .cleaner import (
    CascadeConditionalCleaner,
    PatternConditionalCleaner,
    TreeConditionalCleaner,
    clean_conditionally,
    prep_document,
    remove_nav_like_sections,
    replace_brs,
)
from .constants import ParseFlags
from .exceptions import DecantError, DocumentTooLargeError, InputStructureError
from .grabber import grab_article
from .models import Article, Attempt, FragmentStats, NodeCounts
from .post_processor import prep_article, remove_title_from_content
from .protocols import ConditionalCleaner
from .readability import Readability, extract
from .readerable import is_probably_readerable

__all__ = [
    "Article",
    "Attempt",
    "CascadeConditionalCleaner",
    "ConditionalCleaner",
    "DecantError",
    "DocumentTooLargeError",
    "FragmentStats",
    "InputStructureError",
    "NodeCounts",
    "ParseFlags",
    "PatternConditionalCleaner",
    "Readability",
    "TreeConditionalCleaner",
    "clean_conditionally",
    "extract",
    "grab_article",
    "is_probably_readerable",
    "prep_article",
    "prep_document",
    "remove_nav_like_sections",
    "remove_title_from_content",
    "replace_brs",
]
