"""Exception hierarchy shared by the tutorial generation pipeline."""

from __future__ import annotations

__all__ = [
    "TutorialError",
    "ConfigurationError",
    "ProviderError",
    "ProviderDependencyError",
    "QuotaExceededError",
    "InvokerError",
    "AllKeysExhausted",
    "RequestFailed",
    "SearchError",
    "SearchStrategyError",
    "SearchUnavailable",
    "InvalidOutline",
    "ContentGenerationFailed",
    "PipelineCancelled",
]


class TutorialError(RuntimeError):
    """Base error for every failure raised by tutorgen."""


class ConfigurationError(TutorialError):
    """Raised at startup when required settings are missing or invalid."""


class ProviderError(TutorialError):
    """Raised when a chat provider call fails."""


class ProviderDependencyError(ProviderError):
    """Raised when required dependencies are unavailable."""


class QuotaExceededError(ProviderError):
    """The provider rejected the active credential for quota reasons."""


class InvokerError(TutorialError):
    """Base error for the rate-limit-aware invoker."""


class AllKeysExhausted(InvokerError):
    """Every credential in the pool hit its quota within one invocation."""

    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class RequestFailed(InvokerError):
    """The model call failed for a reason other than quota."""


class SearchError(TutorialError):
    """Base error for the search resolver."""


class SearchStrategyError(SearchError):
    """A single search strategy could not produce results."""


class SearchUnavailable(SearchError):
    """No configured search strategy could answer the query."""


class InvalidOutline(TutorialError, ValueError):
    """The outline response was not a non-empty list of headings."""


class ContentGenerationFailed(TutorialError):
    """Section content could not be generated."""

    def __init__(self, message: str, *, heading: str) -> None:
        super().__init__(message)
        self.heading = heading


class PipelineCancelled(TutorialError):
    """The caller requested cancellation of a running pipeline."""
