"""Prometheus text exposition for the in-process registry."""
from __future__ import annotations

import logging
from typing import Iterable, Tuple

from .registry import MetricsRegistry

logger = logging.getLogger(__name__)


def _format_labels(pairs: Iterable[Tuple[str, str]]) -> str:
    rendered = ",".join(f'{name}="{value}"' for name, value in pairs)
    return "{" + rendered + "}" if rendered else ""


class PrometheusExporter:
    def __init__(self, registry: MetricsRegistry) -> None:
        self.registry = registry

    def build_payload(self) -> str:
        lines: list[str] = []
        for metric in self.registry.metrics():
            lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            for label_values, samples in sorted(metric.samples().items()):
                base = tuple(zip(metric.label_names, label_values))
                for suffix, extra, value in samples:
                    lines.append(f"{metric.name}{suffix}{_format_labels(base + extra)} {value}")
        logger.debug("Rendered %d metric lines", len(lines))
        return "\n".join(lines) + "\n" if lines else ""
