"""
decant - readable article extraction from cluttered HTML.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config, ExtractionSettings
from .extractor import (
    Article,
    DecantError,
    InputStructureError,
    Readability,
    extract,
    grab_article,
    is_probably_readerable,
)

__all__ = [
    "__version__",
    "Article",
    "Config",
    "DecantError",
    "ExtractionSettings",
    "InputStructureError",
    "Readability",
    "extract",
    "grab_article",
    "is_probably_readerable",
]
