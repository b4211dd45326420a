"""LangChain chat provider abstraction used by every tutorial agent."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import openai
from langchain_core.messages import HumanMessage

try:  # pragma: no cover - import guard for optional dependency
    from langchain_openai import ChatOpenAI
except ImportError:  # pragma: no cover - gracefully degrade when dependency missing
    ChatOpenAI = None  # type: ignore[assignment]

from ..config import LLMConfig
from ..errors import ProviderDependencyError, ProviderError, QuotaExceededError

__all__ = [
    "ChatProvider",
    "GenerationResult",
    "LangChainChatProvider",
    "ProviderFactory",
    "ProviderSettings",
    "build_provider",
    "build_provider_factory",
    "is_quota_error",
]

QUOTA_STATUS_CODES = {429, "429", "RESOURCE_EXHAUSTED", "rate_limit_exceeded", "insufficient_quota"}
QUOTA_MESSAGE_PATTERN = re.compile(r"\b429\b|quota|rate[ _]limit|resource_exhausted", re.IGNORECASE)


@dataclass(slots=True)
class GenerationResult:
    """Text returned by a single model call."""

    text: str
    model_name: str | None = None


class ChatProvider(Protocol):
    """Narrow contract the invoker and agents rely on."""

    def generate(
        self,
        prompt: str,
        *,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> GenerationResult:
        """Return the model's answer to ``prompt``."""


ProviderFactory = Callable[[str], ChatProvider]


def is_quota_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` signals a provider rate limit or quota."""

    if isinstance(exc, (QuotaExceededError, openai.RateLimitError)):
        return True
    for attr in ("status_code", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, (int, str)) and value in QUOTA_STATUS_CODES:
            return True
    return QUOTA_MESSAGE_PATTERN.search(str(exc)) is not None


@dataclass(slots=True)
class ProviderSettings:
    """Settings bundle for a chat provider bound to one credential."""

    model: str
    api_key: str
    base_url: str | None = None
    temperature: float = 0.5
    max_tokens: int | None = None
    timeout: float | None = None

    def as_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "api_key": self.api_key,
            "temperature": self.temperature,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs


class LangChainChatProvider:
    """Thin wrapper around ``langchain_openai.ChatOpenAI`` with quota detection."""

    def __init__(self, settings: ProviderSettings):
        if ChatOpenAI is None:
            raise ProviderDependencyError(
                "langchain-openai is required to instantiate LangChainChatProvider"
            )
        self.settings = settings
        self._client = self._build_client(settings)

    def _build_client(self, settings: ProviderSettings):
        try:
            # Retries are owned by the key-rotating invoker.
            return ChatOpenAI(max_retries=0, **settings.as_kwargs())  # type: ignore[arg-type]
        except Exception as exc:  # pragma: no cover - passthrough
            raise ProviderError(f"Failed to initialise chat model '{settings.model}': {exc}") from exc

    @property
    def model(self) -> str:
        return self.settings.model

    def generate(
        self,
        prompt: str,
        *,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> GenerationResult:
        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self._client.invoke([HumanMessage(content=prompt)], **kwargs)
        except Exception as exc:
            if is_quota_error(exc):
                raise QuotaExceededError(f"Quota exceeded for model '{self.settings.model}': {exc}") from exc
            raise ProviderError(f"Invocation failed for model '{self.settings.model}': {exc}") from exc
        model_name = None
        response_meta = getattr(response, "response_metadata", None)
        if isinstance(response_meta, dict):
            model_name = response_meta.get("model_name")
        return GenerationResult(text=_extract_content(response), model_name=model_name or self.settings.model)


def _extract_content(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        pieces: list[str] = []
        for segment in content:
            if isinstance(segment, dict):
                pieces.append(str(segment.get("text", "")))
            else:
                pieces.append(str(segment))
        return "".join(pieces)
    return str(content or "")


def build_provider(api_key: str, config: LLMConfig | None = None) -> LangChainChatProvider:
    """Create a provider for ``api_key`` using the model settings in ``config``."""

    config = config or LLMConfig()
    settings = ProviderSettings(
        model=config.model,
        api_key=api_key,
        base_url=config.base_url,
        max_tokens=config.max_tokens,
        timeout=config.timeout,
    )
    return LangChainChatProvider(settings)


def build_provider_factory(config: LLMConfig | None = None) -> ProviderFactory:
    """Return a callable mapping a credential to a configured provider."""

    config = config or LLMConfig()

    def factory(api_key: str) -> ChatProvider:
        return build_provider(api_key, config)

    return factory
