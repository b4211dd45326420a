"""Filesystem helpers for reading passages and exporting tutorial runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .paths import ensure_directory, slugify
from .tutorial.state import TutorialRun
from .tutorial.store import render_markdown

__all__ = ["TutorialIO"]

MARKDOWN_FILENAME = "tutorial.md"
RUN_FILENAME = "run.json"


class TutorialIO:
    """Simple filesystem-backed helper for tutorial artefacts."""

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def read_text(self, path: Path | str) -> str:
        source = Path(path).expanduser()
        if not source.exists():
            raise FileNotFoundError(f"Input file does not exist: {source}")
        return source.read_text(encoding=self.encoding)

    def write_markdown(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding=self.encoding)

    def write_json(self, path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding=self.encoding)

    def run_directory(self, root: Path | str, topic: str) -> Path:
        return ensure_directory(Path(root) / slugify(topic))

    def export_run(self, run: TutorialRun, output_dir: Path | str) -> dict[str, Path]:
        """Write ``tutorial.md`` and ``run.json`` for ``run`` into ``output_dir``.

        The markdown holds whatever sections were recorded, so failed and
        cancelled runs still export their partial tutorial.
        """

        directory = ensure_directory(output_dir)
        markdown_path = directory / MARKDOWN_FILENAME
        run_path = directory / RUN_FILENAME
        self.write_markdown(markdown_path, render_markdown(run.sections, title=run.request.topic))
        self.write_json(run_path, run.to_dict())
        return {"markdown": markdown_path, "run": run_path}
