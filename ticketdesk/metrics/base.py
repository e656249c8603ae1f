"""Counter and histogram primitives backing the metrics registry."""
from __future__ import annotations

from abc import ABC, abstractmethod
from bisect import bisect_left
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from time import perf_counter
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple

LabelValues = Tuple[str, ...]
# (name suffix, extra labels, value) as rendered in the text exposition format.
Sample = Tuple[str, Tuple[Tuple[str, str], ...], float]

DEFAULT_LATENCY_BUCKETS: Tuple[float, ...] = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)


class Metric(ABC):
    kind = "untyped"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        self.name = name
        self.description = description
        self.label_names: Tuple[str, ...] = tuple(label_names or ())
        self._lock = Lock()

    def _label_key(self, labels: Mapping[str, str] | None) -> LabelValues:
        supplied = dict(labels or {})
        if set(supplied) != set(self.label_names):
            raise ValueError(
                f"Metric '{self.name}' expects labels {self.label_names}, got {tuple(sorted(supplied))}"
            )
        return tuple(str(supplied[label]) for label in self.label_names)

    @abstractmethod
    def samples(self) -> Mapping[LabelValues, List[Sample]]:
        """Current samples grouped by label values."""


class CounterMetric(Metric):
    """Monotonic counter."""

    kind = "counter"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._counts: Dict[LabelValues, float] = defaultdict(float)

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError("Counters can only be incremented")
        key = self._label_key(labels)
        with self._lock:
            self._counts[key] += amount

    def value(self, *, labels: Mapping[str, str] | None = None) -> float:
        key = self._label_key(labels)
        with self._lock:
            return self._counts.get(key, 0.0)

    def samples(self) -> Mapping[LabelValues, List[Sample]]:
        with self._lock:
            return {key: [("", (), count)] for key, count in self._counts.items()}


@dataclass(slots=True)
class HistogramSeries:
    """Cumulative bucket counts for one label combination."""

    bounds: Tuple[float, ...]
    bucket_counts: List[int] = field(default_factory=list)
    count: int = 0
    total: float = 0.0

    def __post_init__(self) -> None:
        if not self.bucket_counts:
            self.bucket_counts = [0] * len(self.bounds)

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        for index in range(bisect_left(self.bounds, value), len(self.bounds)):
            self.bucket_counts[index] += 1


class HistogramMetric(Metric):
    """Latency histogram with fixed upper bounds."""

    kind = "histogram"

    def __init__(
        self,
        name: str,
        *,
        description: str = "",
        label_names: Iterable[str] | None = None,
        buckets: Iterable[float] = DEFAULT_LATENCY_BUCKETS,
    ) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self.buckets: Tuple[float, ...] = tuple(sorted(buckets))
        self._series: Dict[LabelValues, HistogramSeries] = {}

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        key = self._label_key(labels)
        with self._lock:
            series = self._series.get(key)
            if series is None:
                series = self._series[key] = HistogramSeries(self.buckets)
            series.observe(value)

    def series(self, *, labels: Mapping[str, str] | None = None) -> HistogramSeries | None:
        key = self._label_key(labels)
        with self._lock:
            return self._series.get(key)

    def samples(self) -> Mapping[LabelValues, List[Sample]]:
        rendered: Dict[LabelValues, List[Sample]] = {}
        with self._lock:
            for key, series in self._series.items():
                rows: List[Sample] = [
                    ("_bucket", (("le", repr(bound)),), float(hits))
                    for bound, hits in zip(series.bounds, series.bucket_counts)
                ]
                rows.append(("_bucket", (("le", "+Inf"),), float(series.count)))
                rows.append(("_count", (), float(series.count)))
                rows.append(("_sum", (), series.total))
                rendered[key] = rows
        return rendered


@contextmanager
def timed(histogram: HistogramMetric, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
    started = perf_counter()
    try:
        yield
    finally:
        histogram.observe(perf_counter() - started, labels=labels)
