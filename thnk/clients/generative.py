"""Generative backend contract and OpenAI Responses API implementation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from openai import APIStatusError, APITimeoutError, AsyncOpenAI, OpenAIError

from thnk.services.research.errors import GenerativeCallError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerativeRequest:
    """Single prompt sent to the generative backend."""

    model: str
    prompt: str
    system_instruction: str
    output_schema: dict[str, Any] | None = None
    schema_name: str | None = None
    temperature: float = 0.2


class GenerativeClient(Protocol):
    """Minimal contract for a text-generation backend."""

    async def generate(self, request: GenerativeRequest) -> str:
        ...


class OpenAIGenerativeClient(GenerativeClient):
    """Thin wrapper around the official OpenAI Responses API."""

    def __init__(
        self,
        api_key: str | None,
        *,
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if client is None and not api_key:
            raise ValueError("OPENAI_API_KEY is required to call the generative backend.")
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def generate(self, request: GenerativeRequest) -> str:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "temperature": request.temperature,
            "input": [
                {"role": "system", "content": request.system_instruction},
                {"role": "user", "content": request.prompt},
            ],
        }
        if request.output_schema is not None:
            kwargs["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": request.schema_name or "payload",
                    "schema": request.output_schema,
                    "strict": False,
                }
            }
        try:
            response = await self._client.responses.create(**kwargs)
        except APITimeoutError as exc:
            raise GenerativeCallError("OpenAI request timed out.", code="504_GENERATIVE_TIMEOUT") from exc
        except APIStatusError as exc:
            code = "429_RATE_LIMIT" if exc.status_code == 429 else "502_GENERATIVE_UPSTREAM"
            raise GenerativeCallError(f"OpenAI request failed: {exc.message}", code=code) from exc
        except OpenAIError as exc:
            raise GenerativeCallError(f"OpenAI request failed: {exc}") from exc
        return extract_response_text(response)


def extract_response_text(response: Any) -> str:
    """Return the text of a Responses API result, raising when there is none.

    Prefers the SDK's aggregated ``output_text`` and falls back to walking the
    ``output`` message parts. A refusal part is reported as a failed call.
    """
    aggregated = getattr(response, "output_text", None)
    if isinstance(aggregated, str) and aggregated.strip():
        return aggregated.strip()

    chunks: list[str] = []
    refusal: str | None = None
    for item in getattr(response, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            part_type = getattr(part, "type", None)
            if part_type == "output_text":
                chunks.append(getattr(part, "text", "") or "")
            elif part_type == "refusal":
                refusal = getattr(part, "refusal", "") or "refused"
    text = "".join(chunks).strip()
    if text:
        return text

    logger.warning(
        "generative.empty_response",
        extra={
            "response_id": getattr(response, "id", None),
            "status": getattr(response, "status", None),
            "refusal": refusal,
        },
    )
    if refusal is not None:
        raise GenerativeCallError(f"Generative backend refused the request: {refusal}")
    raise GenerativeCallError("Generative response did not include text output.")


async def generate_with_timeout(
    client: GenerativeClient,
    request: GenerativeRequest,
    *,
    timeout: float,
) -> str:
    """Run one generative call under an explicit deadline.

    Any failure, including the deadline, surfaces as ``GenerativeCallError``.
    """
    try:
        return await asyncio.wait_for(client.generate(request), timeout=timeout)
    except GenerativeCallError:
        raise
    except asyncio.TimeoutError as exc:
        raise GenerativeCallError(
            f"Generative call exceeded {timeout:.1f}s.",
            code="504_GENERATIVE_TIMEOUT",
        ) from exc
    except Exception as exc:
        raise GenerativeCallError(f"Unexpected generative failure: {exc}") from exc
