"""Audience-aware rewriting of individual passages."""

from __future__ import annotations

from ..llm.invoker import RateLimitAwareInvoker
from ..prompts import AUTO_LANGUAGE, simplify_prompt

MIN_SIMPLIFY_WORDS = 10

__all__ = ["MIN_SIMPLIFY_WORDS", "SimplifyAgent", "can_simplify"]


def can_simplify(text: str) -> bool:
    """Only passages longer than a short sentence are worth rewriting."""

    return len(text.split()) > MIN_SIMPLIFY_WORDS


class SimplifyAgent:
    def __init__(self, invoker: RateLimitAwareInvoker, *, temperature: float = 0.5) -> None:
        self.invoker = invoker
        self.temperature = temperature

    def simplify(self, text: str, audience: str, *, language: str = AUTO_LANGUAGE) -> str:
        if not text.strip():
            raise ValueError("Nothing to simplify: text is empty.")
        return self.invoker.generate(simplify_prompt(text.strip(), audience, language), temperature=self.temperature)
