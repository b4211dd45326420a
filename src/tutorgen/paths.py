"""Path helpers for tutorial exports."""

from __future__ import annotations

import re
from pathlib import Path

__all__ = [
    "ensure_directory",
    "resolve_output_path",
    "slugify",
]

VALID_FILENAME_PATTERN = re.compile(r"[^\w\-\s]", re.UNICODE)
WHITESPACE_PATTERN = re.compile(r"[\s\-]+")


def _normalise(path: Path | str) -> Path:
    return Path(path).expanduser()


def ensure_directory(path: Path | str) -> Path:
    resolved = _normalise(path)
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def resolve_output_path(path: Path | str, *, create: bool = True) -> Path:
    candidate = _normalise(path)
    if create:
        candidate.mkdir(parents=True, exist_ok=True)
    return candidate


def slugify(title: str, *, fallback: str = "tutorial", max_len: int = 80) -> str:
    """Turn a topic into a lower-case, hyphenated directory name.

    Invalid characters are removed and whitespace collapses to single
    hyphens. When nothing usable is left ``fallback`` is returned.
    """

    cleaned = VALID_FILENAME_PATTERN.sub("", title).strip()
    cleaned = WHITESPACE_PATTERN.sub("-", cleaned.lower())
    cleaned = cleaned.strip("-_")[:max_len].strip("-_")
    return cleaned or fallback
