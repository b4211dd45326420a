"""Rate-limit-aware invocation with per-credential rotation.

Every model call made by the tutorial agents goes through
:class:`RateLimitAwareInvoker`. The policy is a bounded, immediate retry:

* one attempt per credential in the pool, starting from the pool's cursor;
* a quota rejection advances the cursor and moves on to the next key;
* any other failure aborts at once without touching the cursor;
* after ``len(pool)`` quota rejections the call fails with
  :class:`~tutorgen.errors.AllKeysExhausted`.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, TypeVar

from ..errors import AllKeysExhausted, RequestFailed
from .keys import KeyPool
from .providers import ChatProvider, GenerationResult, ProviderFactory, is_quota_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = ["RateLimitAwareInvoker"]


class RateLimitAwareInvoker:
    """Run model requests against a shared :class:`KeyPool`."""

    def __init__(self, pool: KeyPool, provider_factory: ProviderFactory) -> None:
        self.pool = pool
        self._provider_factory = provider_factory
        self._providers: dict[str, ChatProvider] = {}
        self._providers_lock = threading.Lock()

    def invoke(self, request: Callable[[ChatProvider], T]) -> T:
        """Execute ``request`` with the active credential, rotating on quota errors."""

        attempts = len(self.pool)
        last_error: BaseException | None = None
        for attempt in range(attempts):
            index = self.pool.current_index
            provider = self._provider_for(self.pool.current())
            try:
                return request(provider)
            except Exception as exc:
                if not is_quota_error(exc):
                    raise RequestFailed(f"Model request failed: {exc}") from exc
                last_error = exc
                logger.warning(
                    "Quota exceeded for API key #%s (attempt %s/%s); rotating.",
                    index + 1,
                    attempt + 1,
                    attempts,
                )
                self.pool.advance()
        raise AllKeysExhausted(
            f"All {attempts} API key(s) exceeded their quota: {last_error}",
            attempts=attempts,
        ) from last_error

    def generate(
        self,
        prompt: str,
        *,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> str:
        """Convenience wrapper returning the stripped text of one generation."""

        result: GenerationResult = self.invoke(
            lambda provider: provider.generate(prompt, json_mode=json_mode, temperature=temperature)
        )
        return result.text.strip()

    def _provider_for(self, credential: str) -> ChatProvider:
        with self._providers_lock:
            provider = self._providers.get(credential)
            if provider is None:
                provider = self._provider_factory(credential)
                self._providers[credential] = provider
            return provider
