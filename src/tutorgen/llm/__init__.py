"""LLM tooling for the tutorial pipeline."""

from .invoker import RateLimitAwareInvoker
from .keys import KeyPool
from .providers import (
    ChatProvider,
    GenerationResult,
    LangChainChatProvider,
    ProviderSettings,
    build_provider,
    build_provider_factory,
    is_quota_error,
)

__all__ = [
    "KeyPool",
    "RateLimitAwareInvoker",
    "ChatProvider",
    "GenerationResult",
    "LangChainChatProvider",
    "ProviderSettings",
    "build_provider",
    "build_provider_factory",
    "is_quota_error",
]
