"""Multi-agent tutorial generator built on LangChain and LangGraph."""

__version__ = "0.1.0"

from .config import LLMConfig, PipelineConfig, SearchConfig, TutorGenConfig
from .errors import (
    AllKeysExhausted,
    ConfigurationError,
    ContentGenerationFailed,
    InvalidOutline,
    RequestFailed,
    SearchUnavailable,
    TutorialError,
)
from .io import TutorialIO
from .llm import KeyPool, RateLimitAwareInvoker
from .runtime import TutorGenRuntime, build_key_pool, build_runtime
from .search import SearchContext, SearchResolver
from .tutorial import (
    PipelineState,
    ProgressiveOutputStore,
    SectionArtifact,
    TutorialPipeline,
    TutorialRequest,
    TutorialRun,
)

__all__ = [
    "__version__",
    "LLMConfig",
    "PipelineConfig",
    "SearchConfig",
    "TutorGenConfig",
    "AllKeysExhausted",
    "ConfigurationError",
    "ContentGenerationFailed",
    "InvalidOutline",
    "RequestFailed",
    "SearchUnavailable",
    "TutorialError",
    "TutorialIO",
    "KeyPool",
    "RateLimitAwareInvoker",
    "TutorGenRuntime",
    "build_key_pool",
    "build_runtime",
    "SearchContext",
    "SearchResolver",
    "PipelineState",
    "ProgressiveOutputStore",
    "SectionArtifact",
    "TutorialPipeline",
    "TutorialRequest",
    "TutorialRun",
]
