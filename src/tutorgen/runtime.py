"""Wiring of the shared key pool, invoker and search resolver.

One :class:`TutorGenRuntime` is built per process. Its :class:`KeyPool` is the
only mutable state shared between runs; every pipeline created from the
runtime draws on the same rotation cursor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from .config import LLMConfig, SearchConfig, TutorGenConfig
from .llm.invoker import RateLimitAwareInvoker
from .llm.keys import KeyPool
from .llm.providers import ProviderFactory, build_provider_factory
from .prompts import AUTO_LANGUAGE
from .search.resolver import SearchResolver
from .search.strategies import DuckDuckGoHTMLSearch, SearchStrategy, TavilySearch
from .tutorial.orchestrator import ActivityCallback, TutorialPipeline
from .tutorial.simplify_agent import SimplifyAgent
from .tutorial.store import ProgressiveOutputStore

logger = logging.getLogger(__name__)

__all__ = [
    "TutorGenRuntime",
    "build_key_pool",
    "build_runtime",
    "build_search_strategies",
]


def build_key_pool(config: LLMConfig) -> KeyPool:
    """Create the process-wide pool; fails when no credential is configured."""

    return KeyPool(config.require_api_keys())


def build_search_strategies(
    config: SearchConfig,
    *,
    session: requests.Session | None = None,
) -> list[SearchStrategy]:
    if not config.enabled:
        return []
    strategies: list[SearchStrategy] = [
        DuckDuckGoHTMLSearch(
            timeout=config.timeout,
            max_results=config.max_results,
            region=config.region,
            session=session,
        )
    ]
    if config.has_fallback:
        strategies.append(
            TavilySearch(
                config.tavily_api_key or "",
                timeout=config.timeout,
                max_results=config.max_results,
                session=session,
            )
        )
    return strategies


@dataclass(slots=True)
class TutorGenRuntime:
    config: TutorGenConfig
    pool: KeyPool
    invoker: RateLimitAwareInvoker
    resolver: SearchResolver | None

    def pipeline(
        self,
        *,
        store: ProgressiveOutputStore | None = None,
        on_activity: ActivityCallback | None = None,
    ) -> TutorialPipeline:
        return TutorialPipeline(
            self.invoker,
            self.resolver,
            config=self.config.pipeline,
            store=store,
            on_activity=on_activity,
        )

    def simplifier(self) -> SimplifyAgent:
        return SimplifyAgent(self.invoker, temperature=self.config.pipeline.simplify_temperature)

    def simplify_text(self, text: str, audience: str, language: str = AUTO_LANGUAGE) -> str:
        return self.simplifier().simplify(text, audience, language=language)


def build_runtime(
    config: TutorGenConfig | None = None,
    *,
    provider_factory: ProviderFactory | None = None,
    session: requests.Session | None = None,
) -> TutorGenRuntime:
    """Assemble a runtime from ``config`` (or the environment when omitted)."""

    config = config or TutorGenConfig.from_env()
    pool = build_key_pool(config.llm)
    invoker = RateLimitAwareInvoker(pool, provider_factory or build_provider_factory(config.llm))

    strategies = build_search_strategies(config.search, session=session)
    resolver: SearchResolver | None = None
    if strategies:
        resolver = SearchResolver(
            strategies,
            invoker,
            max_results=config.search.max_results,
            summary_temperature=config.pipeline.summary_temperature,
        )
    logger.info(
        "Runtime ready: model=%s keys=%s search=%s",
        config.llm.model,
        len(pool),
        ",".join(strategy.name for strategy in strategies) or "disabled",
    )
    return TutorGenRuntime(config=config, pool=pool, invoker=invoker, resolver=resolver)
