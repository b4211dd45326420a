"""Dataclass-driven configuration for the tutorial generator."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Literal

from dotenv import load_dotenv

from .errors import ConfigurationError
from .paths import resolve_output_path

__all__ = [
    "SearchPolicy",
    "SEARCH_POLICIES",
    "LLMConfig",
    "SearchConfig",
    "PipelineConfig",
    "TutorGenConfig",
    "parse_key_list",
]

SearchPolicy = Literal["advisory", "force", "off"]
SEARCH_POLICIES: tuple[str, ...] = ("advisory", "force", "off")

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_API_KEY_LIST_ENV = "TUTORGEN_API_KEYS"
DEFAULT_API_KEY_ENVS: tuple[str, ...] = ("TUTORGEN_API_KEY", "OPENAI_API_KEY")


def _env_float(name: str, default: float | None = None) -> float | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:  # pragma: no cover - defensive guard
        return default


def _env_int(name: str, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:  # pragma: no cover - defensive guard
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def parse_key_list(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split a comma/newline separated key list, dropping blanks and duplicates."""

    if raw is None:
        return ()
    if isinstance(raw, str):
        candidates: Iterable[str] = raw.replace("\n", ",").split(",")
    else:
        candidates = raw
    keys: list[str] = []
    for candidate in candidates:
        cleaned = (candidate or "").strip()
        if cleaned and cleaned not in keys:
            keys.append(cleaned)
    return tuple(keys)


@dataclass(slots=True)
class LLMConfig:
    """Configuration for the LangChain-backed chat provider."""

    model: str = field(default_factory=lambda: os.getenv("TUTORGEN_MODEL", DEFAULT_MODEL))
    base_url: str | None = field(
        default_factory=lambda: os.getenv("TUTORGEN_BASE_URL") or os.getenv("OPENAI_BASE_URL")
    )
    timeout: float | None = field(default_factory=lambda: _env_float("TUTORGEN_TIMEOUT"))
    max_tokens: int | None = field(default_factory=lambda: _env_int("TUTORGEN_MAX_TOKENS"))
    api_keys: tuple[str, ...] = ()
    api_key_list_env: str = DEFAULT_API_KEY_LIST_ENV
    fallback_api_key_envs: tuple[str, ...] = DEFAULT_API_KEY_ENVS

    def resolve_api_keys(self) -> tuple[str, ...]:
        """Return the ordered credential list, explicit keys first."""

        if self.api_keys:
            return parse_key_list(self.api_keys)
        from_list = parse_key_list(os.getenv(self.api_key_list_env))
        if from_list:
            return from_list
        for name in self.fallback_api_key_envs:
            value = os.getenv(name)
            if value:
                return parse_key_list(value)
        return ()

    def require_api_keys(self) -> tuple[str, ...]:
        keys = self.resolve_api_keys()
        if not keys:
            envs = ", ".join((self.api_key_list_env, *self.fallback_api_key_envs))
            raise ConfigurationError(f"No API keys configured; set one of: {envs}")
        return keys


@dataclass(slots=True)
class SearchConfig:
    """Settings for the web search strategies."""

    enabled: bool = field(default_factory=lambda: _env_bool("TUTORGEN_SEARCH_ENABLED", True))
    tavily_api_key: str | None = field(default_factory=lambda: os.getenv("TAVILY_API_KEY") or None)
    timeout: float = field(default_factory=lambda: _env_float("TUTORGEN_SEARCH_TIMEOUT", 5.0) or 5.0)
    max_results: int = 8
    region: str = field(default_factory=lambda: os.getenv("TUTORGEN_SEARCH_REGION", "wt-wt"))

    @property
    def has_fallback(self) -> bool:
        return bool(self.tavily_api_key)


@dataclass(slots=True)
class PipelineConfig:
    """Behavioural switches for a tutorial generation run."""

    search_policy: str = field(default_factory=lambda: os.getenv("TUTORGEN_SEARCH_POLICY", "advisory"))
    analyze_topic: bool = field(default_factory=lambda: _env_bool("TUTORGEN_ANALYZE_TOPIC", True))
    outline_temperature: float = 0.4
    content_temperature: float = 0.65
    summary_temperature: float = 0.5
    simplify_temperature: float = 0.5
    analysis_temperature: float = 0.0

    def __post_init__(self) -> None:
        self.search_policy = (self.search_policy or "advisory").strip().lower()
        if self.search_policy not in SEARCH_POLICIES:
            raise ConfigurationError(
                f"Unknown search policy '{self.search_policy}'; expected one of {', '.join(SEARCH_POLICIES)}"
            )


@dataclass(slots=True)
class TutorGenConfig:
    """Primary configuration entry point for the tutorial generator."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    output_root: Path = field(
        default_factory=lambda: Path(os.getenv("TUTORGEN_OUTPUT_ROOT", "outputs")) / "tutorials"
    )

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "TutorGenConfig":
        """Load ``.env`` (when present) and build a config from the environment."""

        if dotenv:
            load_dotenv()
        return cls()

    @property
    def output_path(self) -> Path:
        return resolve_output_path(self.output_root, create=False)

    def with_overrides(
        self,
        *,
        model: str | None = None,
        base_url: str | None = None,
        search_policy: str | None = None,
        analyze_topic: bool | None = None,
        output_root: Path | str | None = None,
    ) -> "TutorGenConfig":
        llm = replace(
            self.llm,
            model=model or self.llm.model,
            base_url=base_url or self.llm.base_url,
        )
        pipeline = replace(
            self.pipeline,
            search_policy=search_policy or self.pipeline.search_policy,
            analyze_topic=self.pipeline.analyze_topic if analyze_topic is None else analyze_topic,
        )
        root = Path(output_root) if output_root is not None else self.output_root
        return replace(self, llm=llm, pipeline=pipeline, output_root=root)
