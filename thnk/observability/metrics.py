"""Counters, gauges and timings for the research pipeline."""

from __future__ import annotations

import logging
import re
import secrets
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from statsd import StatsClient

from thnk.config import Settings, settings as default_settings

logger = logging.getLogger("thnk.metrics")

_UNSAFE_SEGMENT = re.compile(r"[^a-z0-9_]+")


def _segment(value: Any) -> str:
    return _UNSAFE_SEGMENT.sub("_", str(value).lower()).strip("_") or "none"


class MetricsReporter:
    """Emits metrics as structured log events and, optionally, to StatsD.

    StatsD has no native tags, so tag values are folded into the metric name
    in sorted key order (``thnk.research.probe.code_ok.live_true``).
    """

    def __init__(self, config: Settings | None = None, *, statsd_client: StatsClient | None = None) -> None:
        source = config or default_settings
        self._disabled = source.metrics_disable
        self._namespace = source.metrics_namespace or "thnk"
        self._backend = (source.metrics_backend or "stdout").lower()
        self._sample_rate = max(0.0, min(source.metrics_sample_rate, 1.0))
        self._statsd = statsd_client
        if self._statsd is None and self._backend == "statsd" and not self._disabled:
            try:
                self._statsd = StatsClient(
                    host=source.metrics_statsd_host,
                    port=source.metrics_statsd_port,
                    prefix="",
                )
            except OSError as exc:
                self._log_backend_error("statsd.init", exc)

    def timing(self, metric: str, value_ms: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("timing", metric, value_ms, tags=tags)

    def gauge(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("gauge", metric, value, tags=tags)

    def increment(
        self, metric: str, value: float = 1.0, *, tags: dict[str, Any] | None = None
    ) -> None:
        self._emit("counter", metric, value, tags=tags)

    @contextmanager
    def timer(self, metric: str, *, tags: dict[str, Any] | None = None) -> Iterator[None]:
        """Record the wall-clock duration of the wrapped block in milliseconds."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.timing(metric, (time.perf_counter() - start) * 1000, tags=tags)

    def _emit(
        self, metric_type: str, metric: str, value: float, *, tags: dict[str, Any] | None
    ) -> None:
        if self._disabled or value is None:
            return
        sample_rate = 1.0 if metric_type == "gauge" else self._sample_rate
        if sample_rate < 1.0 and not self._should_sample(sample_rate):
            return
        name = self._qualify(metric)
        payload: dict[str, Any] = {
            "metric": name,
            "value": round(float(value), 4),
            "type": metric_type,
            "tags": tags or {},
        }
        if sample_rate < 1.0:
            payload["sample_rate"] = round(sample_rate, 4)
        logger.debug("thnk.metric", extra={"metrics": payload})
        if self._statsd is None:
            return
        statsd_name = self._statsd_name(name, tags)
        try:
            if metric_type == "timing":
                self._statsd.timing(statsd_name, value, rate=sample_rate)
            elif metric_type == "gauge":
                self._statsd.gauge(statsd_name, value)
            else:
                self._statsd.incr(statsd_name, value, rate=sample_rate)
        except OSError as exc:
            self._log_backend_error(statsd_name, exc)

    @staticmethod
    def _should_sample(rate: float) -> bool:
        return secrets.randbelow(1_000_000) / 1_000_000 <= rate

    def _qualify(self, metric: str) -> str:
        trimmed = (metric or "").strip()
        if not trimmed:
            return self._namespace
        if trimmed.startswith(f"{self._namespace}."):
            return trimmed
        return f"{self._namespace}.{trimmed}"

    @staticmethod
    def _statsd_name(name: str, tags: dict[str, Any] | None) -> str:
        if not tags:
            return name
        folded = ".".join(f"{_segment(key)}_{_segment(tags[key])}" for key in sorted(tags))
        return f"{name}.{folded}"

    def _log_backend_error(self, metric: str, exc: Exception) -> None:
        logger.warning(
            "metrics.backend_error",
            extra={"metric": metric, "backend": self._backend, "error": type(exc).__name__},
        )


metrics = MetricsReporter()
