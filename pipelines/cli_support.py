"""Shared helpers for the research command-line entrypoints."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from thnk.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    level = getattr(logging, (settings.log_level or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def write_json(payload: Any, output: Path | None) -> None:
    """Write ``payload`` to ``output``, or to stdout when no path is given."""
    if output is None:
        json.dump(payload, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as outfile:
        json.dump(payload, outfile, indent=2, ensure_ascii=False)
