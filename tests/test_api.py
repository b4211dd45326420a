from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from tutorgen.api import create_app, status_code_for
from tutorgen.config import LLMConfig, PipelineConfig, SearchConfig, TutorGenConfig
from tutorgen.errors import (
    AllKeysExhausted,
    ContentGenerationFailed,
    InvalidOutline,
    QuotaExceededError,
    RequestFailed,
    SearchStrategyError,
    SearchUnavailable,
)
from tutorgen.runtime import TutorGenRuntime
from tutorgen.search import SearchResolver, SearchResult

LONG_TEXT = "Compilers translate high level source code into machine instructions through several distinct phases."


class StubStrategy:
    name = "stub"

    def __init__(self, outcome: list[SearchResult] | Exception) -> None:
        self.outcome = outcome

    def search(self, query: str) -> list[SearchResult]:
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return list(self.outcome)


@pytest.fixture
def build_client(make_invoker, section_heading):
    def _build(handler=None, *, search_outcome=None) -> tuple[TestClient, object]:
        def default_handler(key: str, prompt: str) -> str:
            if "time-sensitive information" in prompt:
                return '{"requires_search": true}'
            if "curriculum designer" in prompt:
                return json.dumps({"headings": ["Lexing", "Parsing (requires_search)"]})
            if "Summarize the key information" in prompt:
                return "Evidence summary."
            if "simplifying complex topics" in prompt:
                return "Computers read code in steps."
            return f"Text for {section_heading(prompt)}."

        invoker, backend = make_invoker(handler or default_handler, keys=("k1", "k2"))
        config = TutorGenConfig(
            llm=LLMConfig(api_keys=("k1", "k2")),
            search=SearchConfig(enabled=search_outcome is not None),
            pipeline=PipelineConfig(search_policy="advisory", analyze_topic=True),
        )
        resolver = SearchResolver([StubStrategy(search_outcome)], invoker) if search_outcome is not None else None
        runtime = TutorGenRuntime(config=config, pool=invoker.pool, invoker=invoker, resolver=resolver)
        return TestClient(create_app(runtime)), backend

    return _build


def test_health_reports_runtime(build_client) -> None:
    client, _ = build_client(search_outcome=[])
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["keys"] == 2
    assert body["search"] == ["stub"]


def test_outline_endpoint(build_client) -> None:
    client, backend = build_client()

    response = client.post("/api/outline", json={"topic": "Compilers", "num_sections": 2})

    assert response.status_code == 200
    assert response.json() == {
        "time_sensitive": True,
        "outline": [
            {"heading": "Lexing", "requires_search": False},
            {"heading": "Parsing", "requires_search": True},
        ],
    }
    assert len(backend.calls) == 2


def test_outline_endpoint_caps_headings_at_requested_count(build_client) -> None:
    client, _ = build_client(lambda key, prompt: '["One", "Two", "Three"]')

    response = client.post("/api/outline", json={"topic": "Compilers", "num_sections": 2, "analyze_topic": False})

    assert response.status_code == 200
    assert [item["heading"] for item in response.json()["outline"]] == ["One", "Two"]


def test_outline_endpoint_maps_invalid_outline_to_422(build_client) -> None:
    client, _ = build_client(lambda key, prompt: "nonsense")
    response = client.post("/api/outline", json={"topic": "Compilers", "analyze_topic": False})
    assert response.status_code == 422
    assert response.json()["error"]["type"] == "InvalidOutline"


def test_request_validation_errors(build_client) -> None:
    client, _ = build_client()
    assert client.post("/api/outline", json={"topic": ""}).status_code == 422
    assert client.post("/api/tutorials", json={"topic": "x", "num_sections": 0}).status_code == 422


def test_content_endpoint(build_client) -> None:
    client, backend = build_client()

    response = client.post(
        "/api/content",
        json={
            "topic": "Compilers",
            "heading": "Parsing",
            "headings": ["Lexing", "Parsing"],
            "previous_summary": "Lexing was covered.",
            "search_context": "Recent parser news.",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"heading": "Parsing", "markdown": "Text for Parsing."}
    prompt = backend.calls[0][1]
    assert "Lexing was covered." in prompt
    assert "Recent parser news." in prompt


def test_content_endpoint_maps_exhausted_keys_to_429(build_client) -> None:
    def handler(key: str, prompt: str) -> str:
        raise QuotaExceededError("429")

    client, _ = build_client(handler)
    response = client.post("/api/content", json={"topic": "Compilers", "heading": "Lexing"})
    assert response.status_code == 429


def test_search_endpoint(build_client) -> None:
    client, _ = build_client(search_outcome=[SearchResult("LLVM", "https://llvm.example", "New release")])
    body = client.post("/api/search", json={"query": "llvm news"}).json()
    assert body["context"] == "Evidence summary."
    assert body["sources"] == [{"title": "LLVM", "link": "https://llvm.example", "snippet": "New release"}]


def test_search_endpoint_unavailable_is_503(build_client) -> None:
    client, _ = build_client(search_outcome=SearchStrategyError("down"))
    assert client.post("/api/search", json={"query": "q"}).status_code == 503

    client, _ = build_client()
    assert client.post("/api/search", json={"query": "q"}).status_code == 503


def test_simplify_endpoint(build_client) -> None:
    client, _ = build_client()
    assert client.post("/api/simplify", json={"text": LONG_TEXT}).json() == {"text": "Computers read code in steps."}
    assert client.post("/api/simplify", json={"text": "too short"}).status_code == 422


def test_tutorials_endpoint_runs_pipeline(build_client) -> None:
    client, _ = build_client(search_outcome=[SearchResult("Ref", "https://ref.example", "info")])

    body = client.post("/api/tutorials", json={"topic": "Compilers", "num_sections": 2}).json()

    assert body["status"] == "complete"
    assert [section["heading"] for section in body["sections"]] == ["Lexing", "Parsing"]
    assert body["sections"][1]["sources"] == [{"title": "Ref", "uri": "https://ref.example"}]
    assert body["markdown"].startswith("# Compilers\n\n## Lexing")


def test_status_code_for_error_types() -> None:
    exhausted = AllKeysExhausted("all gone", attempts=2)
    wrapped = ContentGenerationFailed("failed", heading="h")
    wrapped.__cause__ = exhausted

    assert status_code_for(InvalidOutline("bad")) == 422
    assert status_code_for(exhausted) == 429
    assert status_code_for(wrapped) == 429
    assert status_code_for(SearchUnavailable("none")) == 503
    assert status_code_for(RequestFailed("boom")) == 502
