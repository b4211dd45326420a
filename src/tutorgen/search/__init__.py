"""Web search strategies and the two-phase resolver."""

from .resolver import EMPTY_CONTEXT, SearchContext, SearchResolver
from .strategies import (
    MAX_SEARCH_RESULTS,
    DuckDuckGoHTMLSearch,
    SearchResult,
    SearchStrategy,
    TavilySearch,
    parse_duckduckgo_html,
)

__all__ = [
    "EMPTY_CONTEXT",
    "MAX_SEARCH_RESULTS",
    "DuckDuckGoHTMLSearch",
    "SearchContext",
    "SearchResolver",
    "SearchResult",
    "SearchStrategy",
    "TavilySearch",
    "parse_duckduckgo_html",
]
