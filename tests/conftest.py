"""
Shared test configuration for decant.

Provides HTML documents used across unit and integration tests.
"""

from typing import List, Tuple

import pytest
from decant.config.config import LazyConfig

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


# ============================================================================
# Documents
# ============================================================================

ARTICLE_PARAGRAPHS: List[str] = [
    "Rivers are patient sculptors. Over thousands of years, a modest stream can cut through soft rock, "
    "carry away sediment, and leave behind a valley far wider than the water that made it.",
    "The shape of that valley tells a story. Young rivers, fast and steep, carve narrow V-shaped gorges, "
    "while older rivers wander, meander, and flatten the land around them into broad plains.",
    "Floods matter more than calm seasons. A single wet spring, with its swollen banks and churning water, "
    "can move more gravel than a decade of quiet flow, reshaping bars, islands, and channels.",
    "Geologists read these changes in layers of silt, sand, and stone. Each layer records a season, "
    "a storm, or a drought, and together they map the slow work of water across the landscape.",
]


def _paragraph(seed: str, length: int = 120) -> str:
    text = (seed + " ") * (length // len(seed) + 1)
    return text[:length]


@pytest.fixture
def article_paragraphs() -> List[str]:
    return list(ARTICLE_PARAGRAPHS)


@pytest.fixture
def article_page() -> str:
    """A typical news page: navigation, article body, sidebar and footer."""
    body = "\n".join(f"<p>{text}</p>" for text in ARTICLE_PARAGRAPHS)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<title>How Rivers Slowly Shape Valleys | Geo Weekly</title>
<meta property="og:site_name" content="Geo Weekly">
<meta name="description" content="A look at erosion.">
<meta name="author" content="Jane Doe">
<script>var tracking = "<p>not content</p>";</script>
</head>
<body>
<nav class="site-nav"><a href="/">Home</a> <a href="/news">News</a> <a href="/about">About</a></nav>
<div id="main-content" class="article-body">
<h1>How Rivers Slowly Shape Valleys</h1>
{body}
</div>
<div class="sidebar"><ul><li><a href="/a">Popular one</a></li><li><a href="/b">Popular two</a></li></ul></div>
<footer class="footer">Copyright Geo Weekly</footer>
</body>
</html>"""


@pytest.fixture
def short_page() -> str:
    """Every block is shorter than 25 characters."""
    return "<html><body><div><p>Too short.</p><p>Also short.</p><span>Tiny</span></div></body></html>"


@pytest.fixture
def two_paragraph_article() -> Tuple[str, str, str]:
    """An ``<article>`` with two 120-character paragraphs, and the paragraphs themselves."""
    first = _paragraph("Valleys widen as rivers age and wander across the plain.")
    second = _paragraph("Sediment settles where the current slows near the banks.")
    return f"<article><p>{first}</p><p>{second}</p></article>", first, second


# ============================================================================
# Isolation
# ============================================================================


@pytest.fixture
def fresh_lazy_config():
    """Forget any lazily loaded configuration before and after a test."""
    LazyConfig.reset()
    yield
    LazyConfig.reset()
