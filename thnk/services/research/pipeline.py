"""Research pipeline orchestrator."""

from __future__ import annotations

import logging
import time
from enum import Enum
from types import TracebackType

import httpx

from thnk.clients.generative import (
    GenerativeClient,
    GenerativeRequest,
    OpenAIGenerativeClient,
    generate_with_timeout,
)
from thnk.config import Settings, settings as default_settings
from thnk.models.research import ContentAnalysis, CorpusMetrics, ResearchResult
from thnk.models.sources import NEUTRAL_SCORE, ValidatedSource
from thnk.observability.metrics import metrics
from thnk.services.research import prompts
from thnk.services.research.aggregation import aggregate_metrics
from thnk.services.research.analyzer import ContentAnalyzer
from thnk.services.research.bias_insight import BiasInsightGenerator, default_bias_insight
from thnk.services.research.candidates import SourceCandidateExtractor
from thnk.services.research.context import ResearchContext, build_research_context
from thnk.services.research.enricher import SourceEnricher
from thnk.services.research.errors import GenerativeCallError, PipelineError
from thnk.services.research.fallback_sources import (
    DEFAULT_BUCKETS,
    FallbackSourceProvider,
    load_catalog,
)
from thnk.services.research.fetcher import ContentFetcher
from thnk.services.research.liveness import LivenessProber
from thnk.services.research.quality import assess_quality

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = (
    "THNK could not complete research for this question right now. "
    "Please try again later."
)
EMPTY_PROMPT_MESSAGE = "Please provide a question or topic to research."


class PipelineStage(str, Enum):
    INIT = "init"
    GET_ANSWER = "get_answer"
    EXTRACT_CANDIDATES = "extract_candidates"
    VALIDATE_ENRICH = "validate_enrich"
    FALLBACK_SOURCES = "fallback_sources"
    AGGREGATE = "aggregate"
    BIAS_INSIGHT = "bias_insight"
    DONE = "done"
    FAILED = "failed"


class _StageTracker:
    def __init__(self, prompt_chars: int) -> None:
        self.stage = PipelineStage.INIT
        self._prompt_chars = prompt_chars
        self._entered = time.perf_counter()

    def advance(self, stage: PipelineStage) -> None:
        now = time.perf_counter()
        if self.stage is not PipelineStage.INIT:
            elapsed_ms = (now - self._entered) * 1000
            metrics.timing("research.pipeline.stage_ms", elapsed_ms, tags={"stage": self.stage.value})
        logger.debug(
            "research.pipeline.stage",
            extra={"from": self.stage.value, "to": stage.value, "prompt_chars": self._prompt_chars},
        )
        self.stage = stage
        self._entered = now


class ResearchPipeline:
    """Answers a prompt and backs it with validated, scored sources.

    ``run`` never raises: any stage failure yields a terminal fallback result
    with ``fallback_used`` and ``error_code`` set.
    """

    def __init__(
        self,
        *,
        client: GenerativeClient,
        http_client: httpx.AsyncClient,
        context: ResearchContext | None = None,
        owns_http_client: bool = False,
    ) -> None:
        self._client = client
        self._http = http_client
        self._owns_http = owns_http_client
        self._context = context or ResearchContext()

        prober = LivenessProber(http_client=http_client, timeout_seconds=self._context.probe_timeout_seconds)
        fetcher = ContentFetcher(
            http_client=http_client,
            timeout_seconds=self._context.fetch_timeout_seconds,
            retries_on_403=self._context.fetch_403_retries,
            retry_delay_seconds=self._context.fetch_retry_delay_seconds,
            max_chars=self._context.fetch_max_chars,
            min_fragment_chars=self._context.min_fragment_chars,
            min_content_chars=self._context.min_content_chars,
        )
        self.analyzer = ContentAnalyzer(client=client, context=self._context)
        self.extractor = SourceCandidateExtractor(client=client, context=self._context)
        self.enricher = SourceEnricher(
            prober=prober,
            fetcher=fetcher,
            analyzer=self.analyzer,
            context=self._context,
        )
        buckets = (
            load_catalog(self._context.fallback_sources_path)
            if self._context.fallback_sources_path
            else DEFAULT_BUCKETS
        )
        self.fallback = FallbackSourceProvider(
            prober=prober,
            buckets=buckets,
            credibility_score=self._context.fallback_credibility,
        )
        self.bias_insight = BiasInsightGenerator(client=client, context=self._context)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> ResearchPipeline:
        config = source or default_settings
        context = build_research_context(config)
        client = OpenAIGenerativeClient(
            config.openai_api_key,
            timeout=context.generative_timeout_seconds,
        )
        return cls(
            client=client,
            http_client=httpx.AsyncClient(),
            context=context,
            owns_http_client=True,
        )

    async def __aenter__(self) -> ResearchPipeline:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def run(self, prompt: str) -> ResearchResult:
        cleaned = (prompt or "").strip()
        if not cleaned:
            metrics.increment("research.pipeline.runs", tags={"outcome": "empty_prompt"})
            logger.info("research.pipeline.empty_prompt")
            return self._terminal_result(prompt or "", EMPTY_PROMPT_MESSAGE, "422_EMPTY_PROMPT")

        tracker = _StageTracker(len(cleaned))
        start = time.perf_counter()
        try:
            result = await self._run_stages(cleaned, tracker)
        except Exception as exc:
            failed_stage = tracker.stage
            tracker.advance(PipelineStage.FAILED)
            error_code = getattr(exc, "code", None) or "500_PIPELINE_ERROR"
            logger.exception(
                "research.pipeline.failed",
                extra={"stage": failed_stage.value, "code": error_code},
            )
            metrics.increment("research.pipeline.runs", tags={"outcome": "failed", "stage": failed_stage.value})
            summary = await self._direct_answer(cleaned)
            result = self._terminal_result(cleaned, summary, error_code)
        else:
            metrics.increment(
                "research.pipeline.runs",
                tags={"outcome": "fallback" if result.fallback_used else "ok"},
            )
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.timing("research.pipeline.duration_ms", duration_ms)
        logger.info(
            "research.pipeline.completed",
            extra={
                "sources": len(result.sources),
                "fallback_used": result.fallback_used,
                "error_code": result.error_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return result

    async def _run_stages(self, prompt: str, tracker: _StageTracker) -> ResearchResult:
        tracker.advance(PipelineStage.GET_ANSWER)
        summary = await self._answer(prompt)

        tracker.advance(PipelineStage.EXTRACT_CANDIDATES)
        extraction = await self.extractor.extract(prompt)

        tracker.advance(PipelineStage.VALIDATE_ENRICH)
        sources = await self.enricher.enrich_all(extraction.candidates)

        if not sources:
            tracker.advance(PipelineStage.FALLBACK_SOURCES)
            fallback_sources = await self.fallback.provide(prompt)
            tracker.advance(PipelineStage.AGGREGATE)
            result = self._assemble(
                prompt,
                summary,
                extraction.neutrality_score,
                extraction.persuasion_score,
                fallback_sources,
                fallback_used=True,
            )
            tracker.advance(PipelineStage.DONE)
            return result

        tracker.advance(PipelineStage.AGGREGATE)
        result = self._assemble(
            prompt,
            summary,
            extraction.neutrality_score,
            extraction.persuasion_score,
            sources,
            fallback_used=False,
        )

        tracker.advance(PipelineStage.BIAS_INSIGHT)
        result.bias_insight = await self.bias_insight.generate(
            prompt=prompt,
            summary=summary,
            neutrality=result.neutrality_score,
            persuasion=result.persuasion_score,
            sources=sources,
        )
        tracker.advance(PipelineStage.DONE)
        return result

    def _assemble(
        self,
        prompt: str,
        summary: str,
        neutrality: float,
        persuasion: float,
        sources: list[ValidatedSource],
        *,
        fallback_used: bool,
    ) -> ResearchResult:
        corpus = aggregate_metrics(sources)
        quality = assess_quality(corpus, overall_neutrality=neutrality, weights=self._context.quality)
        metrics.gauge("research.pipeline.quality_score", quality.quality_score)
        return ResearchResult(
            prompt=prompt,
            summary=summary,
            neutrality_score=neutrality,
            persuasion_score=persuasion,
            sources=sources,
            corpus_metrics=corpus,
            quality_assessment=quality,
            bias_insight=default_bias_insight(),
            fallback_used=fallback_used,
        )

    async def _answer(self, prompt: str) -> str:
        text = await self._generate_text(prompts.ANSWER_PROMPT.format(prompt=prompt), schema_name="answer")
        if not text:
            raise PipelineError("Generative backend returned an empty answer.", code="502_EMPTY_ANSWER")
        return text

    async def _direct_answer(self, prompt: str) -> str:
        try:
            text = await self._generate_text(
                prompts.DIRECT_ANSWER_PROMPT.format(prompt=prompt),
                schema_name="direct_answer",
            )
        except GenerativeCallError as exc:
            logger.warning("research.pipeline.direct_answer_failed", extra={"code": exc.code})
            return UNAVAILABLE_MESSAGE
        return text or UNAVAILABLE_MESSAGE

    async def _generate_text(self, prompt_text: str, *, schema_name: str) -> str:
        request = GenerativeRequest(
            model=self._context.model,
            prompt=prompt_text,
            system_instruction=prompts.SYSTEM_INSTRUCTION,
            schema_name=schema_name,
            temperature=self._context.temperature,
        )
        raw = await generate_with_timeout(
            self._client,
            request,
            timeout=self._context.generative_timeout_seconds,
        )
        return (raw or "").strip()

    def _terminal_result(self, prompt: str, summary: str, error_code: str) -> ResearchResult:
        return ResearchResult(
            prompt=prompt,
            summary=summary,
            neutrality_score=NEUTRAL_SCORE,
            persuasion_score=NEUTRAL_SCORE,
            sources=[],
            corpus_metrics=CorpusMetrics(),
            quality_assessment=assess_quality(
                CorpusMetrics(),
                overall_neutrality=NEUTRAL_SCORE,
                weights=self._context.quality,
            ),
            bias_insight=default_bias_insight(),
            fallback_used=True,
            error_code=error_code,
        )

    async def analyze_url(self, url: str, source_type: str = "general") -> ValidatedSource:
        """Deep-analyze one user-supplied URL; raises coded research errors."""
        return await self.enricher.analyze_url(url, source_type)

    async def analyze_text(self, text: str) -> ContentAnalysis:
        if not (text or "").strip():
            raise PipelineError("Text to analyze must not be empty.", code="422_EMPTY_TEXT")
        return await self.analyzer.analyze(text)
