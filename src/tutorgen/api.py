"""FastAPI application exposing the pipeline and the individual agents.

Endpoints are plain ``def`` functions, so FastAPI runs them in its thread
pool; concurrent requests share the runtime's single :class:`KeyPool`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .errors import (
    AllKeysExhausted,
    ConfigurationError,
    InvalidOutline,
    SearchUnavailable,
    TutorialError,
)
from .prompts import AUDIENCE_PRESETS, AUTO_LANGUAGE
from .runtime import TutorGenRuntime, build_runtime
from .search.resolver import SearchContext
from .tutorial.outline_agent import OutlineAgent, TopicAnalysisAgent, apply_search_policy
from .tutorial.simplify_agent import can_simplify
from .tutorial.state import FIRST_SECTION_CONTEXT, OutlineEntry, PipelineContext, TutorialRequest
from .tutorial.store import render_markdown
from .tutorial.writing_agent import WritingAgent

logger = logging.getLogger(__name__)

__all__ = ["create_app", "status_code_for"]

DEFAULT_AUDIENCE = AUDIENCE_PRESETS[1]
MAX_SECTIONS = 20

router = APIRouter(prefix="/api")


class OutlineRequest(BaseModel):
    topic: str = Field(min_length=1)
    num_sections: int = Field(default=5, ge=1, le=MAX_SECTIONS)
    language: str = AUTO_LANGUAGE
    analyze_topic: Optional[bool] = None


class OutlineItem(BaseModel):
    heading: str
    requires_search: bool = False


class OutlineResponse(BaseModel):
    time_sensitive: bool
    outline: list[OutlineItem]


class ContentRequest(BaseModel):
    topic: str = Field(min_length=1)
    heading: str = Field(min_length=1)
    headings: list[str] = Field(default_factory=list)
    previous_summary: Optional[str] = None
    audience: str = DEFAULT_AUDIENCE
    language: str = AUTO_LANGUAGE
    search_context: Optional[str] = None


class ContentResponse(BaseModel):
    heading: str
    markdown: str


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    language: str = AUTO_LANGUAGE


class SimplifyRequest(BaseModel):
    text: str = Field(min_length=1)
    audience: str = DEFAULT_AUDIENCE
    language: str = AUTO_LANGUAGE


class TutorialPayload(BaseModel):
    topic: str = Field(min_length=1)
    audience: str = DEFAULT_AUDIENCE
    num_sections: int = Field(default=5, ge=1, le=MAX_SECTIONS)
    language: str = AUTO_LANGUAGE


def status_code_for(exc: TutorialError) -> int:
    """Map a pipeline error (or the error it wraps) to an HTTP status."""

    candidates = [exc]
    if isinstance(exc.__cause__, TutorialError):
        candidates.append(exc.__cause__)
    for candidate in candidates:
        if isinstance(candidate, InvalidOutline):
            return 422
        if isinstance(candidate, AllKeysExhausted):
            return 429
        if isinstance(candidate, SearchUnavailable):
            return 503
        if isinstance(candidate, ConfigurationError):
            return 500
    return 502


def _runtime(request: Request) -> TutorGenRuntime:
    return request.app.state.runtime


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    runtime = _runtime(request)
    strategies = runtime.resolver.strategies if runtime.resolver is not None else []
    return {
        "status": "ok",
        "version": __version__,
        "model": runtime.config.llm.model,
        "keys": len(runtime.pool),
        "search": [strategy.name for strategy in strategies],
    }


@router.post("/outline", response_model=OutlineResponse)
def outline(payload: OutlineRequest, request: Request) -> OutlineResponse:
    runtime = _runtime(request)
    settings = runtime.config.pipeline
    analyze = settings.analyze_topic if payload.analyze_topic is None else payload.analyze_topic

    time_sensitive = False
    if analyze:
        analyst = TopicAnalysisAgent(runtime.invoker, temperature=settings.analysis_temperature)
        time_sensitive = analyst.is_time_sensitive(payload.topic)
    agent = OutlineAgent(runtime.invoker, temperature=settings.outline_temperature)
    entries = agent.generate(
        payload.topic,
        payload.num_sections,
        language=payload.language,
        time_sensitive=time_sensitive,
    )
    entries = apply_search_policy(entries, settings.search_policy, time_sensitive=time_sensitive)
    return OutlineResponse(
        time_sensitive=time_sensitive,
        outline=[OutlineItem(heading=entry.heading, requires_search=entry.requires_search) for entry in entries],
    )


@router.post("/content", response_model=ContentResponse)
def content(payload: ContentRequest, request: Request) -> ContentResponse:
    runtime = _runtime(request)
    headings = list(payload.headings) or [payload.heading]
    if payload.heading not in headings:
        headings.insert(0, payload.heading)
    context = PipelineContext(
        topic=payload.topic,
        audience=payload.audience,
        language=payload.language,
        outline=[OutlineEntry(heading) for heading in headings],
        previous_summary=payload.previous_summary or FIRST_SECTION_CONTEXT,
    )
    writer = WritingAgent(runtime.invoker, temperature=runtime.config.pipeline.content_temperature)
    body = writer.write_section(context, headings.index(payload.heading), search_context=payload.search_context)
    return ContentResponse(heading=payload.heading, markdown=body)


@router.post("/search")
def search(payload: SearchRequest, request: Request) -> dict[str, Any]:
    runtime = _runtime(request)
    if runtime.resolver is None:
        raise SearchUnavailable("Web search is disabled")
    found: SearchContext = runtime.resolver.resolve(payload.query, language=payload.language)
    return {
        "context": found.context,
        "strategy": found.strategy,
        "sources": [result.to_dict() for result in found.sources],
    }


@router.post("/simplify")
def simplify(payload: SimplifyRequest, request: Request) -> dict[str, str]:
    if not can_simplify(payload.text):
        raise HTTPException(status_code=422, detail="Text is too short to simplify; provide more than 10 words.")
    runtime = _runtime(request)
    return {"text": runtime.simplify_text(payload.text, payload.audience, payload.language)}


@router.post("/tutorials")
def tutorials(payload: TutorialPayload, request: Request) -> dict[str, Any]:
    runtime = _runtime(request)
    tutorial_request = TutorialRequest(
        topic=payload.topic,
        audience=payload.audience,
        num_sections=payload.num_sections,
        language=payload.language,
    )
    run = runtime.pipeline().run(tutorial_request)
    body = run.to_dict()
    body["markdown"] = render_markdown(run.sections, title=tutorial_request.topic)
    return body


def create_app(runtime: TutorGenRuntime | None = None) -> FastAPI:
    """Build the app around ``runtime`` (built from the environment when omitted)."""

    app = FastAPI(title="tutorgen", version=__version__)
    app.state.runtime = runtime or build_runtime()

    @app.exception_handler(TutorialError)
    async def tutorial_error_handler(request: Request, exc: TutorialError) -> JSONResponse:
        status_code = status_code_for(exc)
        logger.warning("Request to %s failed with %s: %s", request.url.path, status_code, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": {"type": type(exc).__name__, "message": str(exc)}},
        )

    app.include_router(router)
    return app
