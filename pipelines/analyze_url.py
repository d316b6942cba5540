"""Fetch and analyze a single URL, emitting the validated source as JSON."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pipelines.cli_support import configure_logging, write_json
from thnk.models.sources import ValidatedSource
from thnk.services.research.errors import ResearchError
from thnk.services.research.pipeline import ResearchPipeline

logger = logging.getLogger("pipelines.analyze_url")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deep-analyze one web page.")
    parser.add_argument("--url", required=True, help="Absolute http(s) URL to analyze.")
    parser.add_argument("--source-type", default="general", help="Declared source type used for credibility.")
    parser.add_argument("--output", type=Path, help="Write the JSON result here instead of stdout.")
    return parser.parse_args(argv)


def _build_pipeline() -> ResearchPipeline:
    return ResearchPipeline.from_settings()


async def _run_async(url: str, source_type: str) -> ValidatedSource:
    async with _build_pipeline() as pipeline:
        return await pipeline.analyze_url(url, source_type)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    configure_logging()
    try:
        source = asyncio.run(_run_async(args.url, args.source_type))
    except ResearchError as exc:
        logger.error("analyze_url.failed: %s (code=%s)", exc, exc.code)
        write_json({"url": args.url, "error_code": exc.code, "message": str(exc)}, args.output)
        return 1
    except ValueError as exc:
        logger.error("analyze_url.failed: %s", exc)
        return 1
    write_json(source.model_dump(mode="json"), args.output)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
