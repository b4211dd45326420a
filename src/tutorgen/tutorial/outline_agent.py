"""Outline generation and topic analysis agents.

The topic analysis stage decides whether a topic is time-sensitive; the
outline stage asks for ``num_sections`` headings, some of which may carry the
``(requires_search)`` marker. Parsing is strict: anything other than a
non-empty list of non-empty strings fails the run with
:class:`~tutorgen.errors.InvalidOutline`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Mapping

from ..config import SEARCH_POLICIES
from ..errors import InvalidOutline
from ..llm.invoker import RateLimitAwareInvoker
from ..prompts import AUTO_LANGUAGE, SEARCH_MARKER, outline_prompt, topic_analysis_prompt
from .state import OutlineEntry

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)

__all__ = [
    "OutlineAgent",
    "TopicAnalysisAgent",
    "apply_search_policy",
    "parse_outline_entries",
    "parse_outline_response",
    "parse_topic_analysis",
    "strip_code_fence",
]


def strip_code_fence(payload: str) -> str:
    stripped = payload.strip()
    match = CODE_FENCE_PATTERN.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def _load_json(text: str) -> Any:
    return json.loads(strip_code_fence(text))


def parse_outline_response(text: str) -> list[str]:
    """Parse a model response into raw headings.

    Accepts a bare JSON array or an object wrapping one array (JSON mode
    forces an object). Raises :class:`InvalidOutline` on anything else.
    """

    if not text or not text.strip():
        raise InvalidOutline("Outline response was empty")
    try:
        payload = _load_json(text)
    except json.JSONDecodeError as exc:
        raise InvalidOutline(f"Could not parse the outline response as valid JSON: {exc}") from exc

    if isinstance(payload, Mapping):
        if isinstance(payload.get("headings"), list):
            payload = payload["headings"]
        else:
            lists = [value for value in payload.values() if isinstance(value, list)]
            if len(lists) != 1:
                raise InvalidOutline("Expected a JSON array of headings")
            payload = lists[0]

    if not isinstance(payload, list) or not payload:
        raise InvalidOutline("Expected a non-empty JSON array of headings")
    if not all(isinstance(item, str) and item.strip() for item in payload):
        raise InvalidOutline("Every outline heading must be a non-empty string")
    return [item.strip() for item in payload]


def parse_outline_entries(raw_headings: Iterable[str]) -> list[OutlineEntry]:
    """Strip the search marker from each heading and record whether it was present."""

    entries: list[OutlineEntry] = []
    for position, raw in enumerate(raw_headings, start=1):
        requires_search = SEARCH_MARKER in raw
        heading = " ".join(raw.replace(SEARCH_MARKER, " ").split())
        if not heading:
            raise InvalidOutline(f"Outline heading {position} is empty after removing the search marker")
        entries.append(OutlineEntry(heading=heading, requires_search=requires_search))
    if not entries:
        raise InvalidOutline("Generated an empty outline")
    return entries


def apply_search_policy(entries: list[OutlineEntry], policy: str, *, time_sensitive: bool) -> list[OutlineEntry]:
    """Resolve per-heading search flags against the topic-level classification.

    ``advisory`` keeps the outline's markers, ``force`` makes every heading of a
    time-sensitive topic search, ``off`` disables search for all headings.
    """

    if policy not in SEARCH_POLICIES:
        raise ValueError(f"Unknown search policy '{policy}'")
    if policy == "off":
        return [OutlineEntry(entry.heading, False) for entry in entries]
    if policy == "force" and time_sensitive:
        return [OutlineEntry(entry.heading, True) for entry in entries]
    return list(entries)


def parse_topic_analysis(text: str) -> bool | None:
    """Return the ``requires_search`` flag, or ``None`` when it cannot be read."""

    try:
        payload = _load_json(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, Mapping):
        return None
    value = payload.get("requires_search")
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    return None


class TopicAnalysisAgent:
    """Classify whether a topic depends on recent information."""

    def __init__(self, invoker: RateLimitAwareInvoker, *, temperature: float = 0.0) -> None:
        self.invoker = invoker
        self.temperature = temperature

    def is_time_sensitive(self, topic: str) -> bool:
        response = self.invoker.generate(topic_analysis_prompt(topic), json_mode=True, temperature=self.temperature)
        verdict = parse_topic_analysis(response)
        if verdict is None:
            logger.warning("Topic analysis returned an unreadable verdict; treating %r as evergreen.", topic)
            return False
        return verdict


class OutlineAgent:
    """Generate and parse the ordered tutorial outline."""

    def __init__(self, invoker: RateLimitAwareInvoker, *, temperature: float = 0.4) -> None:
        self.invoker = invoker
        self.temperature = temperature

    def generate(
        self,
        topic: str,
        num_sections: int,
        *,
        language: str = AUTO_LANGUAGE,
        time_sensitive: bool = False,
    ) -> list[OutlineEntry]:
        prompt = outline_prompt(topic, num_sections, language, time_sensitive=time_sensitive)
        response = self.invoker.generate(prompt, json_mode=True, temperature=self.temperature)
        entries = parse_outline_entries(parse_outline_response(response))
        if len(entries) != num_sections:
            logger.warning("Requested %s sections but the outline has %s.", num_sections, len(entries))
        return entries[:num_sections]
