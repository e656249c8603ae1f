"""Metrics emitted by the transition orchestrator."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

ACCESS_DECISIONS = "access_decisions_total"
TRANSITION_RESULTS = "transition_results_total"
TRANSITION_DURATION = "transition_duration_seconds"


@dataclass(frozen=True)
class MetricDefinition:
    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        ACCESS_DECISIONS,
        "counter",
        "Policy decisions taken, by action and outcome.",
        ("action", "outcome"),
    ),
    MetricDefinition(
        TRANSITION_RESULTS,
        "counter",
        "Orchestrated operations, by action and result kind.",
        ("action", "result"),
    ),
    MetricDefinition(
        TRANSITION_DURATION,
        "histogram",
        "Wall time of authorize-then-apply operations in seconds.",
        ("action",),
    ),
)
