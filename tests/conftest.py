"""Shared fixtures for the test suite."""
from __future__ import annotations

import re
from typing import Any, Callable, Iterable

import pytest

from tutorgen.llm.invoker import RateLimitAwareInvoker
from tutorgen.llm.keys import KeyPool
from tutorgen.llm.providers import GenerationResult

ENV_VARS = {
    "TUTORGEN_API_KEYS",
    "TUTORGEN_API_KEY",
    "OPENAI_API_KEY",
    "TUTORGEN_MODEL",
    "TUTORGEN_BASE_URL",
    "OPENAI_BASE_URL",
    "TUTORGEN_TIMEOUT",
    "TUTORGEN_MAX_TOKENS",
    "TAVILY_API_KEY",
    "TUTORGEN_SEARCH_ENABLED",
    "TUTORGEN_SEARCH_TIMEOUT",
    "TUTORGEN_SEARCH_REGION",
    "TUTORGEN_SEARCH_POLICY",
    "TUTORGEN_ANALYZE_TOPIC",
    "TUTORGEN_OUTPUT_ROOT",
}

Handler = Callable[[str, str], str]


@pytest.fixture(autouse=True)
def _clear_llm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure LLM-related environment variables do not leak between tests."""

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def dummy_chat_model(monkeypatch: pytest.MonkeyPatch):
    """Patch the LangChain chat client used by the provider abstraction."""

    from tutorgen.llm import providers

    class DummyChatModel:
        reply: Any = "dummy reply"

        def __init__(self, **kwargs: Any) -> None:
            self.kwargs = kwargs
            self.invocations: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

        def invoke(self, messages: Iterable[Any], **kwargs: Any) -> Any:
            self.invocations.append((tuple(messages), dict(kwargs)))
            if isinstance(self.reply, BaseException):
                raise self.reply
            return type("Reply", (), {"content": self.reply, "response_metadata": {"model_name": "dummy"}})()

    monkeypatch.setattr(providers, "ChatOpenAI", DummyChatModel)
    return DummyChatModel


class ScriptedBackend:
    """Provider factory whose replies come from ``handler(api_key, prompt)``.

    Every call is recorded as ``(api_key, prompt, json_mode, temperature)``.
    """

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.calls: list[tuple[str, str, bool, float | None]] = []
        self.created: list[str] = []

    def __call__(self, api_key: str) -> "ScriptedProvider":
        self.created.append(api_key)
        return ScriptedProvider(self, api_key)

    def prompts_containing(self, marker: str) -> list[str]:
        return [prompt for _, prompt, _, _ in self.calls if marker in prompt]


class ScriptedProvider:
    def __init__(self, backend: ScriptedBackend, api_key: str) -> None:
        self.backend = backend
        self.api_key = api_key

    def generate(self, prompt: str, *, json_mode: bool = False, temperature: float | None = None) -> GenerationResult:
        self.backend.calls.append((self.api_key, prompt, json_mode, temperature))
        return GenerationResult(text=self.backend.handler(self.api_key, prompt), model_name="scripted")


@pytest.fixture
def make_invoker():
    """Build ``(invoker, backend)`` over a fresh pool for the given keys."""

    def _factory(handler: Handler, keys: Iterable[str] = ("key-a",)) -> tuple[RateLimitAwareInvoker, ScriptedBackend]:
        backend = ScriptedBackend(handler)
        return RateLimitAwareInvoker(KeyPool(keys), backend), backend

    return _factory


@pytest.fixture
def section_heading() -> Callable[[str], str]:
    """Return a helper extracting the heading a content prompt asks for."""

    def _extract(prompt: str) -> str:
        match = re.search(r'section titled: "([^"]+)"', prompt)
        assert match, "not a content prompt"
        return match.group(1)

    return _extract
