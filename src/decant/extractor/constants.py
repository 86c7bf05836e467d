"""
Static lookup data for article extraction.

Keyword patterns and tag lists are compiled once at import time and never
mutated afterwards, so they can be shared by extractions running in parallel.
"""

from __future__ import annotations

import enum
import re


class ParseFlags(enum.IntFlag):
    """Strictness switches relaxed one by one across extraction attempts."""

    NONE = 0
    STRIP_UNLIKELYS = 0x1
    WEIGHT_CLASSES = 0x2
    CLEAN_CONDITIONALLY = 0x4
    ALL = STRIP_UNLIKELYS | WEIGHT_CLASSES | CLEAN_CONDITIONALLY


# Order in which flags are dropped after a failed attempt.
FLAG_RELAXATION_ORDER = (
    ParseFlags.STRIP_UNLIKELYS,
    ParseFlags.WEIGHT_CLASSES,
    ParseFlags.CLEAN_CONDITIONALLY,
)

MAX_ATTEMPTS = 4

# div is scored too: plenty of sites use divs where paragraphs belong.
DEFAULT_TAGS_TO_SCORE = ("section", "h2", "h3", "h4", "h5", "h6", "p", "td", "pre", "div")

# Children that stop a div from being rewritten as a paragraph.
DIV_TO_P_ELEMS = frozenset(["blockquote", "dl", "div", "img", "ol", "p", "pre", "table", "ul"])

PHRASING_ELEMS = frozenset(
    [
        "abbr", "audio", "b", "bdo", "br", "button", "cite", "code", "data", "datalist", "dfn",
        "em", "embed", "i", "img", "input", "kbd", "label", "mark", "math", "meter", "noscript",
        "object", "output", "progress", "q", "ruby", "samp", "script", "select", "small", "span",
        "strong", "sub", "sup", "textarea", "time", "var", "wbr",
    ]
)

VOID_ELEMENTS = frozenset(
    ["area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "param", "source", "track", "wbr"]
)

SEMANTIC_CONTAINERS = frozenset(["article", "section", "main"])

# Tags whose subtrees the conditional cleaner inspects, in processing order.
CONDITIONAL_CLEAN_TAGS = ("form", "fieldset", "table", "ul", "ol", "div", "section")
PATTERN_CLEAN_TAGS = ("table", "ul", "ol", "div", "section")

# Tags the post-processor always strips.
UNWANTED_TAGS = (
    "form", "fieldset", "footer", "aside", "object", "embed", "iframe",
    "input", "textarea", "select", "button", "link",
)
SELF_CLOSING_UNWANTED = frozenset(["embed", "input", "link"])

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
TEXTISH_TAGS = ("span", "li", "td", *sorted(DIV_TO_P_ELEMS))

# Keyword lists used by the promotion stages and the regex passes.
NAV_KEYWORDS = ("nav", "navbar", "menu", "breadcrumbs", "sidebar", "widget")
# "widget" is left out: page builders put it on ordinary content containers.
LIGHT_NAV_KEYWORDS = ("nav", "navbar", "menu", "breadcrumbs", "sidebar")
NAVIGATION_KEYWORDS = ("nav", "navbar", "menu", "breadcrumbs")
SHARE_KEYWORDS = ("share", "social", "sharedaddy")
SHARE_TAGS = ("div", "span", "aside", "section")
NAV_BLOCK_TAGS = ("div", "section", "ul", "ol")
PATTERN_NAV_KEYWORDS = ("nav", "menu", "sidebar", "related", "sponsored")
LAYOUT_KEYWORDS = ("content", "container", "main", "column", "outer", "inner", "wrapper")
SEMANTIC_KEYWORDS = ("article", "post", "entry", "body", "story", "text", "blog")

UNLIKELY_CANDIDATES = re.compile(
    r"-ad-|ai2html|banner|breadcrumbs|combx|comment|community|cover-wrap|disqus|extra|footer|gdpr|header|"
    r"legends|menu|related|remark|replies|rss|shoutbox|sidebar|skyscraper|social|sponsor|supplemental|"
    r"ad-break|agegate|pagination|pager|popup|yom-remote",
    re.IGNORECASE,
)
OK_MAYBE_ITS_A_CANDIDATE = re.compile(r"and|article|body|column|content|main|mathjax|shadow", re.IGNORECASE)
POSITIVE = re.compile(
    r"article|body|content|entry|hentry|h-entry|main|page|pagination|post|text|blog|story",
    re.IGNORECASE,
)
NEGATIVE = re.compile(
    r"-ad-|hidden|^hid$| hid$| hid |^hid |banner|combx|comment|com-|contact|footer|gdpr|masthead|media|"
    r"meta|outbrain|promo|related|scroll|share|shoutbox|sidebar|skyscraper|sponsor|shopping|tags|widget",
    re.IGNORECASE,
)
BYLINE = re.compile(r"byline|author|dateline|writtenby|p-author", re.IGNORECASE)
NORMALIZE = re.compile(r"\s{2,}")
VIDEOS = re.compile(
    r"//(www\.)?((dailymotion|youtube|youtube-nocookie|player\.vimeo|v\.qq|bilibili|live.bilibili)\.com|"
    r"(archive|upload\.wikimedia)\.org|player\.twitch\.tv)",
    re.IGNORECASE,
)
HASH_URL = re.compile(r"^#.+")
COMMAS = re.compile("[,،﹐︐︑⹁⸴⸲，]")
JSON_LD_ARTICLE_TYPES = re.compile(
    r"^Article|AdvertiserContentArticle|NewsArticle|AnalysisNewsArticle|AskPublicNewsArticle|"
    r"BackgroundNewsArticle|OpinionNewsArticle|ReportageNewsArticle|ReviewNewsArticle|Report|"
    r"SatiricalArticle|ScholarlyArticle|MedicalScholarlyArticle|SocialMediaPosting|BlogPosting|"
    r"LiveBlogPosting|DiscussionForumPosting|TechArticle|APIReference$"
)
AD_WORDS = re.compile(r"^(ad(vertising|vertisement)?|pub(licité)?|werb(ung)?|广告|Реклама|Anuncio)$", re.IGNORECASE)
LOADING_WORDS = re.compile(r"^((loading|正在加载|Загрузка|chargement|cargando)(…|\.\.\.)?)$", re.IGNORECASE)
TITLE_SEPARATORS = re.compile(r"\s[|\-–—\\/>»]\s")
HIERARCHICAL_SEPARATORS = re.compile(r"\s[\\/>»]\s")

# Marker attribute set on tables while a cleaning pass runs.
DATA_TABLE_ATTR = "data-decant-table"
