"""Schema-validating decode layer for untrusted generative output."""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from thnk.services.research.errors import AnalysisMalformedError

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_MAX_PAYLOAD_CHARS = 100_000
_JSON_DELIMITERS = (("{", "}"), ("[", "]"))


def _strip_code_fences(text: str) -> str:
    if not text.startswith("```"):
        return text
    return "\n".join(line for line in text.splitlines() if not line.strip().startswith("```")).strip()


def parse_json_payload(raw_text: str | None, *, max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS) -> Any:
    """Decode a JSON object or array, refusing anything that is not delimited JSON."""
    if not isinstance(raw_text, str):
        raise AnalysisMalformedError("Response was empty.", code="422_NOT_JSON")
    if len(raw_text) > max_chars:
        raise AnalysisMalformedError(
            f"Response of {len(raw_text)} characters exceeds {max_chars}.",
            code="413_PAYLOAD_TOO_LARGE",
        )
    candidate = _strip_code_fences(raw_text.strip())
    if not any(candidate.startswith(open_) and candidate.endswith(close) for open_, close in _JSON_DELIMITERS):
        raise AnalysisMalformedError("Response did not contain a JSON payload.", code="422_NOT_JSON")
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise AnalysisMalformedError(f"Response was not valid JSON: {exc.msg}", code="422_NOT_JSON") from exc


def decode_payload(
    raw_text: str | None,
    model: type[ModelT],
    *,
    max_chars: int = DEFAULT_MAX_PAYLOAD_CHARS,
) -> ModelT:
    """Parse and validate generative output into a fully-defaulted model."""
    payload = parse_json_payload(raw_text, max_chars=max_chars)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise AnalysisMalformedError(
            f"Response did not match {model.__name__}: {exc.error_count()} error(s)",
            code="422_SCHEMA_MISMATCH",
        ) from exc
