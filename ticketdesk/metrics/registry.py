"""In-process metrics registry."""
from __future__ import annotations

from threading import Lock
from typing import Callable, Dict, Iterable, Tuple, TypeVar

from .base import DEFAULT_LATENCY_BUCKETS, CounterMetric, HistogramMetric, Metric

M = TypeVar("M", bound=Metric)


class MetricsRegistry:
    """Metrics keyed by name; asking twice for the same name returns the same instance."""

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}
        self._lock = Lock()

    def _register(self, name: str, metric_type: type[M], build: Callable[[], M]) -> M:
        with self._lock:
            existing = self._metrics.get(name)
            if existing is None:
                existing = self._metrics[name] = build()
        if not isinstance(existing, metric_type):
            raise TypeError(f"Metric '{name}' is already registered as {existing.kind}")
        return existing

    def counter(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> CounterMetric:
        return self._register(
            name,
            CounterMetric,
            lambda: CounterMetric(name, description=description, label_names=label_names),
        )

    def histogram(
        self,
        name: str,
        *,
        description: str = "",
        label_names: Iterable[str] | None = None,
        buckets: Iterable[float] = DEFAULT_LATENCY_BUCKETS,
    ) -> HistogramMetric:
        return self._register(
            name,
            HistogramMetric,
            lambda: HistogramMetric(
                name, description=description, label_names=label_names, buckets=buckets
            ),
        )

    def metrics(self) -> Tuple[Metric, ...]:
        with self._lock:
            return tuple(sorted(self._metrics.values(), key=lambda metric: metric.name))
