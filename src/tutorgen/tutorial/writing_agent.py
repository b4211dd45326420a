"""Section content generation.

The writing agent expands one outline entry at a time. Each prompt receives
the full heading list, a short derived summary of the previous section and,
when available, the summarised search evidence for the current heading. The
model occasionally echoes the section title back; :func:`strip_leading_heading`
removes such echoes so the artefact body never repeats its heading.
"""

from __future__ import annotations

import logging

from ..errors import ContentGenerationFailed, InvokerError
from ..llm.invoker import RateLimitAwareInvoker
from ..prompts import content_prompt
from .state import PipelineContext

logger = logging.getLogger(__name__)

PREVIOUS_EXCERPT_CHARS = 100

__all__ = ["WritingAgent", "strip_leading_heading", "summarise_previous_section"]


def _normalise_heading(text: str) -> str:
    cleaned = text.strip().strip("*_").strip()
    cleaned = cleaned.rstrip(":").strip()
    return " ".join(cleaned.split()).casefold()


def _is_heading_echo(line: str, heading: str) -> bool:
    target = _normalise_heading(heading)
    candidate = line.strip().lstrip("#").strip()
    return target in {_normalise_heading(candidate), _normalise_heading(candidate.rstrip("#"))}


def strip_leading_heading(body: str, heading: str) -> str:
    """Remove echoed copies of ``heading`` from the top of ``body``.

    Markdown headings (``## Heading``), bold lines and bare lines equal to the
    heading are all treated as echoes. Stripping repeats until the first line
    is something else, so applying the function twice changes nothing.
    """

    text = body.strip()
    if not heading.strip():
        return text
    while text:
        first_line, _, rest = text.partition("\n")
        if not _is_heading_echo(first_line, heading):
            break
        text = rest.strip()
    return text


def summarise_previous_section(heading: str, body: str) -> str:
    excerpt = body[:PREVIOUS_EXCERPT_CHARS]
    ellipsis = "..." if len(body) > PREVIOUS_EXCERPT_CHARS else ""
    return (
        f'The previous section was "{heading}" with content starting: "{excerpt}{ellipsis}". '
        "The next section should logically follow."
    )


class WritingAgent:
    """Generate the markdown body for one outline entry."""

    def __init__(self, invoker: RateLimitAwareInvoker, *, temperature: float = 0.65) -> None:
        self.invoker = invoker
        self.temperature = temperature

    def write_section(
        self,
        context: PipelineContext,
        index: int,
        *,
        search_context: str | None = None,
    ) -> str:
        heading = context.outline[index].heading
        prompt = content_prompt(
            topic=context.topic,
            heading=heading,
            headings=context.headings,
            previous_summary=context.previous_summary,
            audience=context.audience,
            language=context.language,
            search_context=search_context,
            next_heading=context.next_heading(index),
        )
        try:
            raw = self.invoker.generate(prompt, temperature=self.temperature)
        except InvokerError as exc:
            raise ContentGenerationFailed(
                f'Failed to generate content for "{heading}". {exc}', heading=heading
            ) from exc

        body = strip_leading_heading(raw, heading)
        if not body:
            raise ContentGenerationFailed(f'Model returned no content for "{heading}".', heading=heading)
        logger.debug("Generated %s characters for %r", len(body), heading)
        return body
