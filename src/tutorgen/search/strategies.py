"""Concrete web search strategies.

Two strategies are shipped: a scrape of DuckDuckGo's HTML results page
(no credentials, used first) and the Tavily search API (needs a key, used as
the fallback). Both return at most ``max_results`` :class:`SearchResult`
objects and wrap every transport or parsing problem in
:class:`~tutorgen.errors.SearchStrategyError`.
"""

from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import requests
from bs4 import BeautifulSoup

from .. import __version__
from ..errors import SearchStrategyError

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_SEARCH_RESULTS",
    "SearchResult",
    "SearchStrategy",
    "DuckDuckGoHTMLSearch",
    "TavilySearch",
    "parse_duckduckgo_html",
    "request_headers",
]

MAX_SEARCH_RESULTS = 8
DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"
TAVILY_BASE_URL = "https://api.tavily.com"


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One organic search hit."""

    title: str
    link: str
    snippet: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "link": self.link, "snippet": self.snippet}


class SearchStrategy(Protocol):
    """A single way of turning a query into search results."""

    name: str

    def search(self, query: str) -> Sequence[SearchResult]:
        """Return results in provider order, or raise ``SearchStrategyError``."""


def request_headers() -> dict[str, str]:
    return {
        "User-Agent": f"Mozilla/5.0 (compatible; tutorgen/{__version__})",
        "Accept-Language": "en-US,en;q=0.8",
    }


def _unwrap_redirect(href: str) -> str:
    if href.startswith("//"):
        href = "https:" + href
    parsed = urllib.parse.urlparse(href)
    if parsed.path.startswith("/l/"):
        target = urllib.parse.parse_qs(parsed.query).get("uddg")
        if target:
            return target[0]
    return href


def parse_duckduckgo_html(html: str, *, max_results: int = MAX_SEARCH_RESULTS) -> list[SearchResult]:
    """Extract organic results from a DuckDuckGo HTML results page."""

    soup = BeautifulSoup(html or "", "html.parser")
    results: list[SearchResult] = []
    seen: set[str] = set()
    for block in soup.select("div.result"):
        classes = block.get("class") or []
        if "result--ad" in classes:
            continue
        anchor = block.select_one("a.result__a")
        if anchor is None:
            continue
        href = anchor.get("href") or ""
        link = _unwrap_redirect(str(href).strip())
        title = anchor.get_text(" ", strip=True)
        if not link or not title or link in seen:
            continue
        snippet_tag = block.select_one(".result__snippet")
        snippet = snippet_tag.get_text(" ", strip=True) if snippet_tag is not None else ""
        seen.add(link)
        results.append(SearchResult(title=title, link=link, snippet=snippet))
        if len(results) >= max_results:
            break
    return results


class DuckDuckGoHTMLSearch:
    """Scrape DuckDuckGo's lightweight HTML endpoint."""

    name = "duckduckgo"

    def __init__(
        self,
        *,
        timeout: float = 5.0,
        max_results: int = MAX_SEARCH_RESULTS,
        region: str = "wt-wt",
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_results = max_results
        self.region = region
        self._session = session or requests.Session()

    def search(self, query: str) -> list[SearchResult]:
        try:
            response = self._session.get(
                DUCKDUCKGO_HTML_URL,
                params={"q": query, "kl": self.region},
                headers=request_headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SearchStrategyError(f"DuckDuckGo request failed: {exc}") from exc
        try:
            results = parse_duckduckgo_html(response.text, max_results=self.max_results)
        except Exception as exc:  # pragma: no cover - defensive guard
            raise SearchStrategyError(f"Could not parse DuckDuckGo results: {exc}") from exc
        logger.debug("DuckDuckGo returned %s result(s) for %r", len(results), query)
        return results


class TavilySearch:
    """Query the Tavily search API."""

    name = "tavily"

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 5.0,
        max_results: int = MAX_SEARCH_RESULTS,
        search_depth: str = "basic",
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.max_results = max_results
        self.search_depth = search_depth
        self.base = TAVILY_BASE_URL
        self._session = session or requests.Session()

    def search(self, query: str) -> list[SearchResult]:
        payload: dict[str, Any] = {
            "api_key": self.api_key,
            "query": query,
            "max_results": self.max_results,
            "search_depth": self.search_depth,
            "include_raw_content": False,
        }
        try:
            response = self._session.post(f"{self.base}/search", json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise SearchStrategyError(f"Tavily request failed: {exc}") from exc

        items = data.get("results") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise SearchStrategyError("Tavily response did not contain a results list")

        results: list[SearchResult] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            link = str(item.get("url") or "").strip()
            if not link:
                continue
            title = str(item.get("title") or link).strip()
            snippet = str(item.get("content") or "").strip()
            results.append(SearchResult(title=title, link=link, snippet=snippet))
            if len(results) >= self.max_results:
                break
        return results
