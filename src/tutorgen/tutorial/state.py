"""State definitions for the tutorial generation workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TypedDict

from ..prompts import AUTO_LANGUAGE

FIRST_SECTION_CONTEXT = "This is the first section of the tutorial."


class PipelineState(str, Enum):
    """Lifecycle of one tutorial generation run."""

    IDLE = "idle"
    ANALYZING_TOPIC = "analyzing_topic"
    GENERATING_OUTLINE = "generating_outline"
    RESOLVING_SEARCH = "resolving_search"
    GENERATING_CONTENT = "generating_content"
    RECORDING = "recording"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {PipelineState.COMPLETE, PipelineState.FAILED, PipelineState.CANCELLED}


@dataclass(frozen=True, slots=True)
class OutlineEntry:
    """One planned section and whether it needs web evidence."""

    heading: str
    requires_search: bool = False


@dataclass(frozen=True, slots=True)
class SourceRef:
    title: str
    uri: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "uri": self.uri}


@dataclass(frozen=True, slots=True)
class SectionArtifact:
    """A finished section; never mutated once recorded."""

    heading: str
    markdown_body: str
    sources: tuple[SourceRef, ...] = ()

    @property
    def full_markdown(self) -> str:
        return f"## {self.heading}\n\n{self.markdown_body}\n\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "heading": self.heading,
            "markdown_body": self.markdown_body,
            "sources": [source.to_dict() for source in self.sources],
        }


@dataclass(slots=True)
class TutorialRequest:
    """User input for a run."""

    topic: str
    audience: str = "Beginner (13+)"
    num_sections: int = 5
    language: str = AUTO_LANGUAGE

    def __post_init__(self) -> None:
        self.topic = (self.topic or "").strip()
        if not self.topic:
            raise ValueError("Please enter a tutorial topic.")
        if self.num_sections < 1:
            raise ValueError("num_sections must be at least 1")
        self.audience = (self.audience or "").strip() or "Beginner (13+)"
        self.language = (self.language or "").strip() or AUTO_LANGUAGE


@dataclass(slots=True)
class PipelineContext:
    """Context carried from one section to the next within a single run."""

    topic: str
    audience: str
    language: str
    outline: list[OutlineEntry] = field(default_factory=list)
    previous_summary: str = FIRST_SECTION_CONTEXT

    @property
    def headings(self) -> list[str]:
        return [entry.heading for entry in self.outline]

    def next_heading(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.outline) - 1:
            return self.outline[index + 1].heading
        return None


@dataclass(frozen=True, slots=True)
class LogEntry:
    message: str
    agent: str = "System"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
            "agent": self.agent,
            "message": self.message,
        }


@dataclass(slots=True)
class TutorialRun:
    """Terminal outcome of a run plus whatever sections were recorded."""

    request: TutorialRequest
    status: PipelineState
    sections: list[SectionArtifact] = field(default_factory=list)
    outline: list[OutlineEntry] = field(default_factory=list)
    time_sensitive: bool = False
    failed_stage: Optional[str] = None
    message: Optional[str] = None
    log: list[LogEntry] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is PipelineState.COMPLETE

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.request.topic,
            "audience": self.request.audience,
            "language": self.request.language,
            "num_sections": self.request.num_sections,
            "status": self.status.value,
            "failed_stage": self.failed_stage,
            "message": self.message,
            "time_sensitive": self.time_sensitive,
            "outline": [
                {"heading": entry.heading, "requires_search": entry.requires_search} for entry in self.outline
            ],
            "sections": [section.to_dict() for section in self.sections],
            "log": [entry.to_dict() for entry in self.log],
        }


class TutorialWorkflowState(TypedDict, total=False):
    """State propagated through the LangGraph workflow."""

    topic: str
    audience: str
    language: str
    num_sections: int
    time_sensitive: bool
    outline: list[OutlineEntry]
    section_index: int
    previous_summary: str
    search_context: Optional[str]
    sources: list[SourceRef]
    section_body: str


__all__ = [
    "FIRST_SECTION_CONTEXT",
    "LogEntry",
    "OutlineEntry",
    "PipelineContext",
    "PipelineState",
    "SectionArtifact",
    "SourceRef",
    "TutorialRequest",
    "TutorialRun",
    "TutorialWorkflowState",
]
