"""Run the full research pipeline for one prompt and emit the result as JSON."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pipelines.cli_support import configure_logging, write_json
from thnk.models.research import ResearchResult
from thnk.services.research.errors import ResearchError
from thnk.services.research.pipeline import ResearchPipeline

logger = logging.getLogger("pipelines.research_prompt")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Answer a research prompt with validated sources.")
    parser.add_argument("--prompt", required=True, help="Question or topic to research.")
    parser.add_argument("--output", type=Path, help="Write the JSON result here instead of stdout.")
    return parser.parse_args(argv)


def _build_pipeline() -> ResearchPipeline:
    return ResearchPipeline.from_settings()


async def _run_async(prompt: str) -> ResearchResult:
    async with _build_pipeline() as pipeline:
        return await pipeline.run(prompt)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    configure_logging()
    try:
        result = asyncio.run(_run_async(args.prompt))
    except (ResearchError, ValueError) as exc:
        logger.error("research_prompt.failed: %s (code=%s)", exc, getattr(exc, "code", "CONFIG_ERROR"))
        return 1
    write_json(result.model_dump(mode="json"), args.output)
    logger.info(
        "research_prompt.completed",
        extra={
            "sources": len(result.sources),
            "fallback_used": result.fallback_used,
            "error_code": result.error_code,
        },
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
