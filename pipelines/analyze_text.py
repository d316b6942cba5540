"""Neutrality, sentiment, tags and summary for raw text."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pipelines.cli_support import configure_logging, write_json
from thnk.models.research import ContentAnalysis
from thnk.services.research.errors import ResearchError
from thnk.services.research.pipeline import ResearchPipeline

logger = logging.getLogger("pipelines.analyze_text")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze a block of text.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Text to analyze.")
    source.add_argument("--input", type=Path, help="Read the text to analyze from this file.")
    parser.add_argument("--output", type=Path, help="Write the JSON result here instead of stdout.")
    return parser.parse_args(argv)


def load_text(args: argparse.Namespace) -> str:
    if args.input is None:
        return args.text
    if not args.input.exists():
        raise ResearchError(f"Input file not found: {args.input}", code="404_INPUT_NOT_FOUND")
    return args.input.read_text(encoding="utf-8")


def _build_pipeline() -> ResearchPipeline:
    return ResearchPipeline.from_settings()


async def _run_async(text: str) -> ContentAnalysis:
    async with _build_pipeline() as pipeline:
        return await pipeline.analyze_text(text)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    configure_logging()
    try:
        text = load_text(args)
        analysis = asyncio.run(_run_async(text))
    except ResearchError as exc:
        logger.error("analyze_text.failed: %s (code=%s)", exc, exc.code)
        return 1
    except ValueError as exc:
        logger.error("analyze_text.failed: %s", exc)
        return 1
    write_json(analysis.model_dump(mode="json"), args.output)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
