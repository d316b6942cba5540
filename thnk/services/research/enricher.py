"""Turns candidate sources into validated sources."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from thnk.models.research import ContentAnalysis
from thnk.models.sources import CandidateSource, ContentOrigin, ValidatedSource
from thnk.observability.metrics import metrics
from thnk.services.research.analyzer import ContentAnalyzer, truncate_summary
from thnk.services.research.context import ResearchContext
from thnk.services.research.credibility import penalize_unverified, score_credibility
from thnk.services.research.errors import FetchFailureError, InvalidUrlError, UnreachableError
from thnk.services.research.fetcher import ContentFetcher, FetchedPage, SleepFn
from thnk.services.research.liveness import LivenessProber
from thnk.services.research.urls import canonicalize_url, extract_domain

logger = logging.getLogger(__name__)


class SourceEnricher:
    """Canonicalizes, probes, fetches and analyzes each candidate.

    Candidates whose page cannot be reached or read are kept as unverified
    ``ai_description`` sources with a credibility penalty.
    """

    def __init__(
        self,
        *,
        prober: LivenessProber,
        fetcher: ContentFetcher,
        analyzer: ContentAnalyzer,
        context: ResearchContext,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._prober = prober
        self._fetcher = fetcher
        self._analyzer = analyzer
        self._context = context
        self._sleep = sleep

    async def enrich_all(self, candidates: Sequence[CandidateSource]) -> list[ValidatedSource]:
        ordered = list(candidates)
        if not ordered:
            return []
        semaphore = asyncio.Semaphore(self._context.enrichment_concurrency)
        pause = self._context.enrichment_pause_seconds
        waiting = len(ordered)

        async def run_slot(candidate: CandidateSource) -> ValidatedSource | None:
            nonlocal waiting
            async with semaphore:
                waiting -= 1
                try:
                    with metrics.timer("research.enrich.candidate_ms"):
                        return await self.enrich(candidate)
                finally:
                    # the slot stays held through the pause; skipped once the queue is drained
                    if pause > 0 and waiting > 0:
                        await self._sleep(pause)

        outcomes = await asyncio.gather(*(run_slot(candidate) for candidate in ordered), return_exceptions=True)

        validated: list[ValidatedSource] = []
        for candidate, outcome in zip(ordered, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(
                    "research.enrich.unhandled_exception",
                    extra={"url": candidate.url},
                    exc_info=outcome,
                )
                metrics.increment("research.enrich.dropped", tags={"reason": "exception"})
                continue
            if outcome is not None:
                validated.append(outcome)
        metrics.gauge("research.enrich.validated", len(validated))
        return validated

    async def enrich(self, candidate: CandidateSource) -> ValidatedSource | None:
        try:
            url = canonicalize_url(candidate.url)
        except InvalidUrlError as exc:
            metrics.increment("research.enrich.dropped", tags={"reason": exc.code})
            logger.info("research.enrich.invalid_url", extra={"url": candidate.url, "code": exc.code})
            return None

        domain = extract_domain(url) or candidate.domain
        try:
            page = await self._fetch_live(url)
        except (UnreachableError, FetchFailureError) as exc:
            return await self._degraded(candidate, url=url, domain=domain, code=exc.code)

        analysis = await self._analyzer.analyze(page.text)
        metrics.increment("research.enrich.verified")
        return self._direct_source(
            page,
            analysis,
            domain=domain,
            source_type=candidate.source_type,
            fallback_title=candidate.title,
        )

    async def analyze_url(self, url: str, source_type: str = "general") -> ValidatedSource:
        """Run the direct path for one URL, raising instead of degrading."""
        canonical = canonicalize_url(url)
        page = await self._fetch_live(canonical)
        analysis = await self._analyzer.analyze(page.text)
        return self._direct_source(
            page,
            analysis,
            domain=extract_domain(canonical),
            source_type=source_type,
            fallback_title="",
        )

    async def _fetch_live(self, url: str) -> FetchedPage:
        probe = await self._prober.probe(url)
        if not probe.live:
            raise UnreachableError(f"Probe failed for {url}: {probe.error_code}")
        return await self._fetcher.fetch(url)

    def _direct_source(
        self,
        page: FetchedPage,
        analysis: ContentAnalysis,
        *,
        domain: str,
        source_type: str,
        fallback_title: str,
    ) -> ValidatedSource:
        return ValidatedSource(
            url=page.url,
            title=page.title or fallback_title or domain,
            excerpt=analysis.summary or truncate_summary(page.text),
            tags=analysis.tags,
            neutrality_score=analysis.neutrality_score,
            sentiment_score=analysis.sentiment_score,
            domain=domain,
            source_type=source_type,
            credibility_score=score_credibility(domain, source_type, weights=self._context.credibility),
            verified=True,
            content_origin=ContentOrigin.DIRECT_FETCH,
        )

    async def _degraded(
        self,
        candidate: CandidateSource,
        *,
        url: str,
        domain: str,
        code: str,
    ) -> ValidatedSource:
        snippet = candidate.snippet.strip()
        analysis = await self._analyzer.analyze(snippet) if snippet else ContentAnalysis()
        credibility = penalize_unverified(
            score_credibility(domain, candidate.source_type, weights=self._context.credibility),
            weights=self._context.credibility,
        )
        metrics.increment("research.enrich.degraded", tags={"code": code})
        logger.info("research.enrich.degraded", extra={"url": url, "code": code})
        return ValidatedSource(
            url=url,
            title=candidate.title or domain,
            excerpt=snippet,
            tags=analysis.tags,
            neutrality_score=analysis.neutrality_score,
            sentiment_score=analysis.sentiment_score,
            domain=domain,
            source_type=candidate.source_type,
            credibility_score=credibility,
            verified=False,
            content_origin=ContentOrigin.AI_DESCRIPTION,
        )
