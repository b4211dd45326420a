from __future__ import annotations

import json
import threading
from typing import Callable

import pytest

from tutorgen.config import PipelineConfig
from tutorgen.errors import ProviderError, QuotaExceededError, SearchStrategyError
from tutorgen.search import SearchResolver, SearchResult
from tutorgen.tutorial import (
    FIRST_SECTION_CONTEXT,
    PipelineState,
    ProgressiveOutputStore,
    TutorialPipeline,
    TutorialRequest,
)


class StubStrategy:
    def __init__(self, name: str = "stub", outcome: list[SearchResult] | Exception | None = None) -> None:
        self.name = name
        self.outcome = outcome if outcome is not None else [
            SearchResult(title="Release notes", link="https://example.com/notes", snippet="Version 9 shipped.")
        ]
        self.queries: list[str] = []

    def search(self, query: str) -> list[SearchResult]:
        self.queries.append(query)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return list(self.outcome)


def scripted_model(
    headings: list[str] | str,
    section_heading: Callable[[str], str],
    *,
    time_sensitive: bool = False,
    fail_on: str | None = None,
):
    def handler(key: str, prompt: str) -> str:
        if "time-sensitive information" in prompt:
            return json.dumps({"requires_search": time_sensitive})
        if "curriculum designer" in prompt:
            return headings if isinstance(headings, str) else json.dumps({"headings": headings})
        if "Summarize the key information" in prompt:
            return "Search summary."
        heading = section_heading(prompt)
        if heading == fail_on:
            raise ProviderError("model crashed")
        return f"## {heading}\n\nBody for {heading}."

    return handler


def _pipeline(invoker, resolver=None, **config) -> TutorialPipeline:
    settings = {"search_policy": "advisory", "analyze_topic": True}
    settings.update(config)
    return TutorialPipeline(invoker, resolver, config=PipelineConfig(**settings))


def _content_prompts(backend) -> list[str]:
    return backend.prompts_containing("technical writer")


def test_marked_headings_trigger_search_and_keep_order(make_invoker, section_heading) -> None:
    handler = scripted_model(["Intro", "What's new (requires_search)", "Wrap-up"], section_heading)
    invoker, backend = make_invoker(handler)
    strategy = StubStrategy()
    pipeline = _pipeline(invoker, SearchResolver([strategy], invoker))

    run = pipeline.run(TutorialRequest(topic="Rust", num_sections=3))

    assert run.status is PipelineState.COMPLETE
    assert run.succeeded
    assert pipeline.state is PipelineState.COMPLETE
    assert strategy.queries == ["Rust - What's new"]
    assert [section.heading for section in run.sections] == ["Intro", "What's new", "Wrap-up"]
    assert [section.markdown_body for section in run.sections] == [
        "Body for Intro.",
        "Body for What's new.",
        "Body for Wrap-up.",
    ]
    assert [s.uri for s in run.sections[1].sources] == ["https://example.com/notes"]
    assert run.sections[0].sources == ()

    prompts = _content_prompts(backend)
    assert "<search_results>\nSearch summary.\n</search_results>" in prompts[1]
    assert "<search_results>" not in prompts[0]
    assert "<search_results>" not in prompts[2]
    assert [entry.requires_search for entry in run.outline] == [False, True, False]


def test_previous_section_summary_is_threaded(make_invoker, section_heading) -> None:
    invoker, backend = make_invoker(scripted_model(["One", "Two"], section_heading))

    _pipeline(invoker).run(TutorialRequest(topic="Topic", num_sections=2))

    first, second = _content_prompts(backend)
    assert FIRST_SECTION_CONTEXT in first
    assert 'The previous section was "One" with content starting: "Body for One."' in second


def test_search_failure_is_not_fatal(make_invoker, section_heading, caplog: pytest.LogCaptureFixture) -> None:
    invoker, backend = make_invoker(scripted_model(["News (requires_search)", "More"], section_heading))
    resolver = SearchResolver([StubStrategy(outcome=SearchStrategyError("timed out"))], invoker)

    run = _pipeline(invoker, resolver).run(TutorialRequest(topic="Topic", num_sections=2))

    assert run.status is PipelineState.COMPLETE
    assert len(run.sections) == 2
    assert run.sections[0].sources == ()
    assert "<search_results>" not in _content_prompts(backend)[0]
    assert any(entry.agent == "Researcher" and "Proceeding without" in entry.message for entry in run.log)
    assert "continuing without it" in caplog.text


def test_marked_heading_without_resolver_still_gets_content(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["News (requires_search)"], section_heading))
    run = _pipeline(invoker, None).run(TutorialRequest(topic="Topic", num_sections=1))
    assert run.status is PipelineState.COMPLETE
    assert run.sections[0].heading == "News"


def test_content_failure_keeps_partial_sections(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["One", "Two", "Three"], section_heading, fail_on="Two"))
    pipeline = _pipeline(invoker)
    observed: list[str] = []
    pipeline.store.subscribe(lambda artifact, index: observed.append(artifact.heading))

    run = pipeline.run(TutorialRequest(topic="Topic", num_sections=3))

    assert run.status is PipelineState.FAILED
    assert run.failed_stage == "generating_content"
    assert "Two" in (run.message or "")
    assert [section.heading for section in run.sections] == ["One"]
    assert [section.heading for section in pipeline.store.sections] == ["One"]
    assert observed == ["One"]


def test_invalid_outline_fails_the_run(make_invoker, section_heading) -> None:
    invoker, backend = make_invoker(scripted_model("not json at all", section_heading))

    run = _pipeline(invoker).run(TutorialRequest(topic="Topic", num_sections=3))

    assert run.status is PipelineState.FAILED
    assert run.failed_stage == "generating_outline"
    assert run.sections == []
    assert _content_prompts(backend) == []


def test_exhausted_keys_fail_at_the_current_stage(make_invoker, section_heading) -> None:
    def handler(key: str, prompt: str) -> str:
        raise QuotaExceededError("429 Too Many Requests")

    invoker, backend = make_invoker(handler, keys=("a", "b"))
    run = _pipeline(invoker).run(TutorialRequest(topic="Topic"))

    assert run.status is PipelineState.FAILED
    assert run.failed_stage == "analyzing_topic"
    assert len(backend.calls) == 2


def test_shared_pool_rotates_past_exhausted_key(make_invoker, section_heading) -> None:
    content = scripted_model(["One", "Two"], section_heading)

    def handler(key: str, prompt: str) -> str:
        if key == "a":
            raise QuotaExceededError("quota")
        return content(key, prompt)

    invoker, backend = make_invoker(handler, keys=("a", "b"))
    run = _pipeline(invoker).run(TutorialRequest(topic="Topic", num_sections=2))

    assert run.status is PipelineState.COMPLETE
    assert invoker.pool.current() == "b"
    assert [call[0] for call in backend.calls].count("a") == 1


def test_force_policy_searches_every_heading_of_time_sensitive_topic(make_invoker, section_heading) -> None:
    handler = scripted_model(["One", "Two"], section_heading, time_sensitive=True)
    invoker, _ = make_invoker(handler)
    strategy = StubStrategy()

    run = _pipeline(invoker, SearchResolver([strategy], invoker), search_policy="force").run(
        TutorialRequest(topic="Elections", num_sections=2)
    )

    assert run.time_sensitive is True
    assert strategy.queries == ["Elections - One", "Elections - Two"]


def test_off_policy_never_searches(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["One (requires_search)"], section_heading))
    strategy = StubStrategy()

    _pipeline(invoker, SearchResolver([strategy], invoker), search_policy="off").run(
        TutorialRequest(topic="Topic", num_sections=1)
    )

    assert strategy.queries == []


def test_topic_analysis_can_be_skipped(make_invoker, section_heading) -> None:
    invoker, backend = make_invoker(scripted_model(["One"], section_heading))

    run = _pipeline(invoker, analyze_topic=False).run(TutorialRequest(topic="Topic", num_sections=1))

    assert run.status is PipelineState.COMPLETE
    assert backend.prompts_containing("time-sensitive information") == []


def test_extra_outline_headings_are_dropped(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["A", "B", "C", "D"], section_heading))
    run = _pipeline(invoker).run(TutorialRequest(topic="Topic", num_sections=2))
    assert [section.heading for section in run.sections] == ["A", "B"]


def test_cancellation_keeps_recorded_sections(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["One", "Two", "Three"], section_heading))
    cancel = threading.Event()
    store = ProgressiveOutputStore()
    store.subscribe(lambda artifact, index: cancel.set())
    pipeline = TutorialPipeline(invoker, config=PipelineConfig(analyze_topic=False), store=store)

    run = pipeline.run(TutorialRequest(topic="Topic", num_sections=3), cancel_event=cancel)

    assert run.status is PipelineState.CANCELLED
    assert run.failed_stage is None
    assert [section.heading for section in run.sections] == ["One"]


def test_activity_callback_and_log(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["One"], section_heading))
    activities: list[str | None] = []
    pipeline = TutorialPipeline(
        invoker,
        config=PipelineConfig(analyze_topic=False),
        on_activity=activities.append,
    )

    run = pipeline.run(TutorialRequest(topic="Topic", num_sections=1))

    assert activities[-1] is None
    assert any(activity and activity.startswith("Content Writer") for activity in activities)
    assert run.log[0].message.startswith('Process started for topic: "Topic"')
    assert run.log[-1].message.endswith("Tutorial generation complete!")
    assert run.to_dict()["status"] == "complete"


def test_runs_reset_the_store(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["One"], section_heading))
    pipeline = _pipeline(invoker, analyze_topic=False)

    pipeline.run(TutorialRequest(topic="First", num_sections=1))
    run = pipeline.run(TutorialRequest(topic="Second", num_sections=1))

    assert len(pipeline.store) == 1
    assert len(run.sections) == 1


def test_request_validation() -> None:
    with pytest.raises(ValueError, match="Please enter a tutorial topic"):
        TutorialRequest(topic="   ")
    with pytest.raises(ValueError):
        TutorialRequest(topic="x", num_sections=0)


def test_injected_store_receives_sections(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["A", "B"], section_heading))
    store = ProgressiveOutputStore()
    observed: list[tuple[str, int]] = []
    store.subscribe(lambda artifact, index: observed.append((artifact.heading, index)))
    pipeline = TutorialPipeline(invoker, config=PipelineConfig(analyze_topic=False), store=store)

    run = pipeline.run(TutorialRequest(topic="Topic", num_sections=2))

    assert pipeline.store is store
    assert observed == [("A", 0), ("B", 1)]
    assert [section.heading for section in store.sections] == ["A", "B"]
    assert run.status is PipelineState.COMPLETE


def test_empty_search_without_fallback_still_writes_section(make_invoker, section_heading) -> None:
    invoker, backend = make_invoker(scripted_model(["News (requires_search)"], section_heading))
    strategy = StubStrategy(outcome=[])
    resolver = SearchResolver([strategy], invoker)

    run = _pipeline(invoker, resolver).run(TutorialRequest(topic="Topic", num_sections=1))

    assert run.status is PipelineState.COMPLETE
    assert strategy.queries == ["Topic - News"]
    assert [section.heading for section in run.sections] == ["News"]
    assert run.sections[0].sources == ()
    assert backend.prompts_containing("Summarize the key information") == []
    assert "<search_results>" not in _content_prompts(backend)[0]


def test_pipeline_rejects_a_second_concurrent_run(make_invoker, section_heading) -> None:
    invoker, _ = make_invoker(scripted_model(["One"], section_heading))
    pipeline = TutorialPipeline(invoker, config=PipelineConfig(analyze_topic=False))
    during: list[tuple[PipelineState, str | None]] = []

    def reenter(artifact, index) -> None:
        during.append((pipeline.state, pipeline.current_activity))
        with pytest.raises(RuntimeError, match="already in progress"):
            pipeline.run(TutorialRequest(topic="Other", num_sections=1))

    pipeline.store.subscribe(reenter)
    run = pipeline.run(TutorialRequest(topic="Topic", num_sections=1))

    assert during == [(PipelineState.RECORDING, 'Content Writer: generating content for "One"...')]
    assert run.status is PipelineState.COMPLETE
    assert pipeline.state.is_terminal
    assert pipeline.current_activity is None
    assert pipeline.run(TutorialRequest(topic="Again", num_sections=1)).succeeded


def test_terminal_states() -> None:
    terminal = {state for state in PipelineState if state.is_terminal}
    assert terminal == {PipelineState.COMPLETE, PipelineState.FAILED, PipelineState.CANCELLED}
