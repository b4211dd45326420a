"""Two-phase search resolution followed by evidence-only summarisation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from ..errors import SearchStrategyError, SearchUnavailable
from ..llm.invoker import RateLimitAwareInvoker
from ..prompts import AUTO_LANGUAGE, search_summary_prompt
from .strategies import MAX_SEARCH_RESULTS, SearchResult, SearchStrategy

logger = logging.getLogger(__name__)

__all__ = ["EMPTY_CONTEXT", "SearchContext", "SearchResolver"]

EMPTY_CONTEXT = "no information found"


@dataclass(slots=True)
class SearchContext:
    """Summarised evidence for one query plus the results it was built from."""

    context: str
    sources: list[SearchResult] = field(default_factory=list)
    strategy: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.sources


class SearchResolver:
    """Try each strategy in order and summarise the first non-empty answer.

    The first strategy is the primary phase, the rest are fallbacks. A strategy
    that raises or returns nothing counts as a failed phase. When only the
    primary is configured and it fails, :class:`SearchUnavailable` is raised.
    When a fallback answers without error but finds nothing, the resolver
    returns an explicit empty :class:`SearchContext` instead.
    """

    def __init__(
        self,
        strategies: Sequence[SearchStrategy],
        invoker: RateLimitAwareInvoker,
        *,
        max_results: int = MAX_SEARCH_RESULTS,
        summary_temperature: float = 0.5,
    ) -> None:
        self.strategies = list(strategies)
        self.invoker = invoker
        self.max_results = min(max_results, MAX_SEARCH_RESULTS)
        self.summary_temperature = summary_temperature

    def fetch(self, query: str) -> tuple[list[SearchResult], str | None]:
        """Return capped results and the name of the strategy that produced them."""

        if not self.strategies:
            raise SearchUnavailable("No search strategies configured")

        failures: list[str] = []
        fallback_answered = False
        for position, strategy in enumerate(self.strategies):
            try:
                results = list(strategy.search(query))[: self.max_results]
            except SearchStrategyError as exc:
                logger.warning("Search strategy '%s' failed for %r: %s", strategy.name, query, exc)
                failures.append(f"{strategy.name}: {exc}")
                continue
            if results:
                return results, strategy.name
            if position > 0:
                fallback_answered = True
            failures.append(f"{strategy.name}: no results")

        if fallback_answered:
            return [], None
        raise SearchUnavailable(f"Search unavailable for {query!r} ({'; '.join(failures)})")

    def resolve(self, query: str, *, language: str = AUTO_LANGUAGE) -> SearchContext:
        results, strategy = self.fetch(query)
        if not results:
            return SearchContext(context=EMPTY_CONTEXT, sources=[], strategy=None)

        evidence = "\n".join(
            f"{index}. {result.title}: {result.snippet}" if result.snippet else f"{index}. {result.title}"
            for index, result in enumerate(results, start=1)
        )
        summary = self.invoker.generate(
            search_summary_prompt(query, evidence, language),
            temperature=self.summary_temperature,
        )
        return SearchContext(context=summary or EMPTY_CONTEXT, sources=results, strategy=strategy)
