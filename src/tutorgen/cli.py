"""Command line interface for the tutorial generator."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Sequence

from .config import SEARCH_POLICIES, TutorGenConfig
from .io import TutorialIO
from .prompts import AUDIENCE_PRESETS, AUTO_LANGUAGE
from .runtime import build_runtime
from .tutorial.simplify_agent import can_simplify
from .tutorial.state import SectionArtifact, TutorialRequest

__all__ = ["main"]

DEFAULT_AUDIENCE = AUDIENCE_PRESETS[1]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutorgen",
        description="Generate step-by-step markdown tutorials with a chain of LLM agents.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command")

    generate = subparsers.add_parser(
        "generate",
        help="Run topic analysis → outline → search → content for one topic.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    generate.add_argument("--topic", required=True, help="Tutorial topic.")
    generate.add_argument(
        "--sections",
        type=_positive_int,
        default=5,
        help="Number of outline sections to request.",
    )
    generate.add_argument(
        "--output",
        default=None,
        help="Directory for tutorial.md and run.json (defaults to TUTORGEN_OUTPUT_ROOT/<topic>).",
    )
    generate.add_argument(
        "--search-policy",
        dest="search_policy",
        choices=SEARCH_POLICIES,
        default=None,
        help="How outline search markers are applied (defaults to TUTORGEN_SEARCH_POLICY).",
    )
    generate.add_argument(
        "--no-topic-analysis",
        dest="analyze_topic",
        action="store_false",
        default=None,
        help="Skip the time-sensitivity check before outlining.",
    )
    _register_shared_arguments(generate)
    _register_model_arguments(generate)

    simplify = subparsers.add_parser(
        "simplify",
        help="Rewrite a passage for a different audience.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    source = simplify.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Passage to simplify.")
    source.add_argument("--input", help="Path to a text or markdown file to simplify.")
    _register_shared_arguments(simplify)
    _register_model_arguments(simplify)

    serve = subparsers.add_parser(
        "serve",
        help="Run the HTTP API with uvicorn.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    serve.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve.add_argument("--port", type=_positive_int, default=8000, help="Port to listen on.")

    return parser


def _register_shared_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--audience",
        default=DEFAULT_AUDIENCE,
        help=f"Target audience; presets: {', '.join(AUDIENCE_PRESETS)}.",
    )
    parser.add_argument(
        "--language",
        default=AUTO_LANGUAGE,
        help="Output language, or 'auto' to match the input.",
    )


def _register_model_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--model", default=None, help="Model name (defaults to TUTORGEN_MODEL).")
    parser.add_argument(
        "--base-url",
        dest="base_url",
        default=None,
        help="Base URL of an OpenAI-compatible endpoint (defaults to TUTORGEN_BASE_URL).",
    )


def _positive_int(token: str) -> int:
    try:
        value = int(token)
    except ValueError as exc:  # pragma: no cover - argparse formatting
        raise argparse.ArgumentTypeError(f"Invalid integer value: {token}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError("Values must be positive integers")
    return value


def _load_config(args: argparse.Namespace) -> TutorGenConfig:
    return TutorGenConfig.from_env().with_overrides(
        model=getattr(args, "model", None),
        base_url=getattr(args, "base_url", None),
        search_policy=getattr(args, "search_policy", None),
        analyze_topic=getattr(args, "analyze_topic", None),
    )


def _print_section(artifact: SectionArtifact, index: int) -> None:
    print(f"[{index + 1}] {artifact.heading}", file=sys.stderr)


def run_generate(args: argparse.Namespace) -> int:
    request = TutorialRequest(
        topic=args.topic,
        audience=args.audience,
        num_sections=args.sections,
        language=args.language,
    )
    runtime = build_runtime(_load_config(args))
    pipeline = runtime.pipeline()
    pipeline.store.subscribe(_print_section)

    run = pipeline.run(request)

    io = TutorialIO()
    output_dir = Path(args.output) if args.output else io.run_directory(runtime.config.output_path, request.topic)
    written = io.export_run(run, output_dir)
    print(f"Tutorial written to {written['markdown']}")

    if not run.succeeded:
        stage = f" during {run.failed_stage}" if run.failed_stage else ""
        print(f"Error: run {run.status.value}{stage}: {run.message}", file=sys.stderr)
        return 1
    return 0


def run_simplify(args: argparse.Namespace) -> int:
    text = args.text if args.text is not None else TutorialIO().read_text(args.input)
    if not can_simplify(text):
        raise ValueError("Text is too short to simplify; provide more than 10 words.")
    runtime = build_runtime(_load_config(args))
    print(runtime.simplify_text(text, args.audience, args.language))
    return 0


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    command_map: dict[str, Callable[[argparse.Namespace], int]] = {
        "generate": run_generate,
        "simplify": run_simplify,
        "serve": run_serve,
    }
    runner = command_map.get(args.command)
    if runner is None:
        parser.print_help()
        return 0

    try:
        return runner(args)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
