"""Tutorial-specific agents, workflow state and the generation pipeline."""

from .orchestrator import ActivityCallback, TutorialPipeline
from .outline_agent import (
    OutlineAgent,
    TopicAnalysisAgent,
    apply_search_policy,
    parse_outline_entries,
    parse_outline_response,
    parse_topic_analysis,
)
from .simplify_agent import SimplifyAgent, can_simplify
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
)
from .store import ProgressiveOutputStore
from .writing_agent import WritingAgent, strip_leading_heading, summarise_previous_section

__all__ = [
    "ActivityCallback",
    "TutorialPipeline",
    "OutlineAgent",
    "TopicAnalysisAgent",
    "apply_search_policy",
    "parse_outline_entries",
    "parse_outline_response",
    "parse_topic_analysis",
    "SimplifyAgent",
    "can_simplify",
    "FIRST_SECTION_CONTEXT",
    "LogEntry",
    "OutlineEntry",
    "PipelineContext",
    "PipelineState",
    "SectionArtifact",
    "SourceRef",
    "TutorialRequest",
    "TutorialRun",
    "ProgressiveOutputStore",
    "WritingAgent",
    "strip_leading_heading",
    "summarise_previous_section",
]
