"""Append-only store of finished sections, observed by display layers."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Sequence

from .state import SectionArtifact

logger = logging.getLogger(__name__)

SectionObserver = Callable[[SectionArtifact, int], None]

__all__ = ["ProgressiveOutputStore", "SectionObserver", "render_markdown"]


class ProgressiveOutputStore:
    """Ordered list of :class:`SectionArtifact` with append notifications."""

    def __init__(self) -> None:
        self._sections: list[SectionArtifact] = []
        self._observers: list[SectionObserver] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sections)

    @property
    def sections(self) -> Sequence[SectionArtifact]:
        with self._lock:
            return tuple(self._sections)

    def subscribe(self, observer: SectionObserver) -> Callable[[], None]:
        """Register ``observer``; the returned callable unsubscribes it."""

        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def append(self, artifact: SectionArtifact) -> int:
        with self._lock:
            self._sections.append(artifact)
            index = len(self._sections) - 1
        for observer in list(self._observers):
            observer(artifact, index)
        logger.debug("Recorded section %s: %s", index + 1, artifact.heading)
        return index

    def reset(self) -> None:
        with self._lock:
            self._sections.clear()

    def to_markdown(self, *, title: str | None = None, include_sources: bool = True) -> str:
        return render_markdown(self.sections, title=title, include_sources=include_sources)


def render_markdown(
    sections: Iterable[SectionArtifact],
    *,
    title: str | None = None,
    include_sources: bool = True,
) -> str:
    """Join artifacts into one markdown document, optionally listing sources."""

    lines: list[str] = []
    if title:
        lines.extend([f"# {title}", ""])
    for artifact in sections:
        lines.append(artifact.full_markdown.rstrip())
        lines.append("")
        if include_sources and artifact.sources:
            lines.append("**Sources**")
            lines.append("")
            lines.extend(f"- [{source.title}]({source.uri})" for source in artifact.sources)
            lines.append("")
    return "\n".join(lines).strip() + "\n"
