"""LangGraph-powered orchestration for tutorial generation.

The workflow runs ``analyze_topic → generate_outline`` once, then loops
``[resolve_search →] generate_content → record_section`` over the outline in
order. Sections are never generated concurrently: every content prompt
depends on the summary of the section recorded just before it. Finished
sections are appended to a :class:`ProgressiveOutputStore` so observers see
progress as it happens.

Only search failures are absorbed (the section is written without evidence).
Any other error stops the run, which ends ``FAILED`` with the stage it failed
in; sections recorded before the failure stay in the store.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from langgraph.graph import END, START, StateGraph

from ..config import PipelineConfig
from ..errors import PipelineCancelled, SearchError, SearchUnavailable, TutorialError
from ..llm.invoker import RateLimitAwareInvoker
from ..search.resolver import SearchResolver
from .outline_agent import OutlineAgent, TopicAnalysisAgent, apply_search_policy
from .state import (
    FIRST_SECTION_CONTEXT,
    LogEntry,
    OutlineEntry,
    PipelineContext,
    PipelineState,
    SectionArtifact,
    SourceRef,
    TutorialRequest,
    TutorialRun,
    TutorialWorkflowState,
)
from .store import ProgressiveOutputStore
from .writing_agent import WritingAgent, summarise_previous_section

logger = logging.getLogger(__name__)

ActivityCallback = Callable[[Optional[str]], None]

__all__ = ["ActivityCallback", "TutorialPipeline"]


class TutorialPipeline:
    """Coordinate the agents for one tutorial run at a time."""

    def __init__(
        self,
        invoker: RateLimitAwareInvoker,
        resolver: SearchResolver | None = None,
        *,
        config: PipelineConfig | None = None,
        store: ProgressiveOutputStore | None = None,
        on_activity: ActivityCallback | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.invoker = invoker
        self.resolver = resolver
        self.store = store if store is not None else ProgressiveOutputStore()
        self.on_activity = on_activity

        self.topic_agent = TopicAnalysisAgent(invoker, temperature=self.config.analysis_temperature)
        self.outline_agent = OutlineAgent(invoker, temperature=self.config.outline_temperature)
        self.writing_agent = WritingAgent(invoker, temperature=self.config.content_temperature)

        self.state = PipelineState.IDLE
        self.current_activity: str | None = None
        self.log: list[LogEntry] = []
        self._outline: list[OutlineEntry] = []
        self._time_sensitive = False
        self._cancel_event: threading.Event | None = None
        self._graph = self._build_graph()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self, request: TutorialRequest, *, cancel_event: threading.Event | None = None) -> TutorialRun:
        """Execute the workflow and return its terminal outcome.

        ``cancel_event`` is checked before every stage; once set, the run stops
        with status ``CANCELLED`` and keeps the sections recorded so far.
        """

        if not (self.state is PipelineState.IDLE or self.state.is_terminal):
            raise RuntimeError("A tutorial run is already in progress on this pipeline")

        self.store.reset()
        self.log = []
        self._outline = []
        self._time_sensitive = False
        self._cancel_event = cancel_event
        self.state = PipelineState.IDLE

        self._note(
            f'Process started for topic: "{request.topic}" with audience: "{request.audience}" '
            f"and {request.num_sections} sections."
        )
        initial_state: TutorialWorkflowState = {
            "topic": request.topic,
            "audience": request.audience,
            "language": request.language,
            "num_sections": request.num_sections,
            "time_sensitive": False,
            "outline": [],
            "section_index": 0,
            "previous_summary": FIRST_SECTION_CONTEXT,
            "search_context": None,
            "sources": [],
        }

        failed_stage: str | None = None
        message: str | None = None
        try:
            self._graph.invoke(
                initial_state,
                config={"recursion_limit": 3 * request.num_sections + 10},
            )
        except PipelineCancelled as exc:
            status = PipelineState.CANCELLED
            message = str(exc)
            self._note(f"Run cancelled: {message}")
        except TutorialError as exc:
            status = PipelineState.FAILED
            failed_stage = self.state.value
            message = str(exc)
            logger.error("Tutorial run failed during %s: %s", failed_stage, message)
            self._note(f"Error: {message}")
        except Exception:
            self.state = PipelineState.FAILED
            raise
        else:
            status = PipelineState.COMPLETE
            self._note("All sections processed. Tutorial generation complete!")
        finally:
            self._cancel_event = None
            self._set_activity(None)

        self.state = status
        return TutorialRun(
            request=request,
            status=status,
            sections=list(self.store.sections),
            outline=list(self._outline),
            time_sensitive=self._time_sensitive,
            failed_stage=failed_stage,
            message=message,
            log=list(self.log),
        )

    # ------------------------------------------------------------------
    # LangGraph node implementations
    # ------------------------------------------------------------------
    def _node_analyze_topic(self, state: TutorialWorkflowState) -> TutorialWorkflowState:
        updated = dict(state)
        if not self.config.analyze_topic:
            updated["time_sensitive"] = False
            return updated

        self._enter(PipelineState.ANALYZING_TOPIC)
        self._set_activity("Topic Analyst: checking whether the topic needs recent information...")
        time_sensitive = self.topic_agent.is_time_sensitive(state["topic"])
        self._time_sensitive = time_sensitive
        self._note(f"Topic classified as {'time-sensitive' if time_sensitive else 'evergreen'}.", "Topic Analyst")
        updated["time_sensitive"] = time_sensitive
        return updated

    def _node_generate_outline(self, state: TutorialWorkflowState) -> TutorialWorkflowState:
        self._enter(PipelineState.GENERATING_OUTLINE)
        num_sections = state["num_sections"]
        self._set_activity("Outliner: generating tutorial outline...")
        self._note(f"Requesting outline for {num_sections} sections.", "Outliner")

        time_sensitive = bool(state.get("time_sensitive"))
        entries = self.outline_agent.generate(
            state["topic"],
            num_sections,
            language=state["language"],
            time_sensitive=time_sensitive,
        )
        entries = apply_search_policy(entries, self.config.search_policy, time_sensitive=time_sensitive)
        self._outline = entries

        self._note(f"Cleaned outline for processing: [{', '.join(entry.heading for entry in entries)}]", "Outliner")
        updated = dict(state)
        updated["outline"] = entries
        updated["section_index"] = 0
        return updated

    def _node_resolve_search(self, state: TutorialWorkflowState) -> TutorialWorkflowState:
        self._enter(PipelineState.RESOLVING_SEARCH)
        entry = state["outline"][state["section_index"]]
        query = f"{state['topic']} - {entry.heading}"
        self._set_activity(f'Researcher: searching for "{entry.heading}"...')

        updated = dict(state)
        updated["search_context"] = None
        updated["sources"] = []
        try:
            if self.resolver is None:
                raise SearchUnavailable("Web search is disabled")
            found = self.resolver.resolve(query, language=state["language"])
        except SearchError as exc:
            logger.warning("Search failed for %r; continuing without it: %s", entry.heading, exc)
            self._note(
                f'Failed to fetch internet results for "{entry.heading}". Proceeding without. Error: {exc}',
                "Researcher",
            )
            return updated

        sources = [SourceRef(title=result.title or result.link, uri=result.link) for result in found.sources]
        self._note(f'Found {len(sources)} source(s) for "{entry.heading}".', "Researcher")
        updated["search_context"] = found.context if sources else None
        updated["sources"] = sources
        return updated

    def _node_generate_content(self, state: TutorialWorkflowState) -> TutorialWorkflowState:
        self._enter(PipelineState.GENERATING_CONTENT)
        index = state["section_index"]
        outline = state["outline"]
        entry = outline[index]
        self._set_activity(f'Content Writer: generating content for "{entry.heading}"...')
        self._note(f'Preparing section {index + 1}/{len(outline)}: "{entry.heading}"')

        context = PipelineContext(
            topic=state["topic"],
            audience=state["audience"],
            language=state["language"],
            outline=list(outline),
            previous_summary=state.get("previous_summary") or FIRST_SECTION_CONTEXT,
        )
        body = self.writing_agent.write_section(context, index, search_context=state.get("search_context"))

        updated = dict(state)
        updated["section_body"] = body
        return updated

    def _node_record_section(self, state: TutorialWorkflowState) -> TutorialWorkflowState:
        self._enter(PipelineState.RECORDING)
        index = state["section_index"]
        entry = state["outline"][index]
        body = state["section_body"]

        artifact = SectionArtifact(
            heading=entry.heading,
            markdown_body=body,
            sources=tuple(state.get("sources") or ()),
        )
        self.store.append(artifact)
        self._note(f'Content for "{entry.heading}" formatted and stored.', "Formatter")

        updated = dict(state)
        updated["section_index"] = index + 1
        updated["previous_summary"] = summarise_previous_section(entry.heading, body)
        updated["search_context"] = None
        updated["sources"] = []
        updated["section_body"] = ""
        return updated

    def _route_section(self, state: TutorialWorkflowState) -> str:
        index = state.get("section_index", 0)
        outline = state.get("outline") or []
        if index >= len(outline):
            return END
        if outline[index].requires_search:
            return "resolve_search"
        return "generate_content"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_graph(self):
        graph = StateGraph(TutorialWorkflowState)
        graph.add_node("analyze_topic", self._node_analyze_topic)
        graph.add_node("generate_outline", self._node_generate_outline)
        graph.add_node("resolve_search", self._node_resolve_search)
        graph.add_node("generate_content", self._node_generate_content)
        graph.add_node("record_section", self._node_record_section)

        routes = {
            "resolve_search": "resolve_search",
            "generate_content": "generate_content",
            END: END,
        }
        graph.add_edge(START, "analyze_topic")
        graph.add_edge("analyze_topic", "generate_outline")
        graph.add_conditional_edges("generate_outline", self._route_section, routes)
        graph.add_edge("resolve_search", "generate_content")
        graph.add_edge("generate_content", "record_section")
        graph.add_conditional_edges("record_section", self._route_section, routes)
        return graph.compile()

    def _enter(self, stage: PipelineState) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise PipelineCancelled(f"Cancelled before {stage.value}")
        self.state = stage
        logger.info("Pipeline stage: %s", stage.value)

    def _set_activity(self, activity: str | None) -> None:
        self.current_activity = activity
        if self.on_activity is not None:
            self.on_activity(activity)

    def _note(self, message: str, agent: str = "System") -> None:
        self.log.append(LogEntry(message=message, agent=agent))
        logger.debug("[%s] %s", agent, message)
