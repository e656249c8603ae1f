"""Process-wide metrics for access decisions and orchestrated transitions."""
from .definitions import DEFAULT_METRIC_DEFINITIONS, MetricDefinition
from .exporters import PrometheusExporter
from .registry import MetricsRegistry

metrics_registry = MetricsRegistry()

_FACTORIES = {
    "counter": MetricsRegistry.counter,
    "histogram": MetricsRegistry.histogram,
}


def register_default_metrics(registry: MetricsRegistry | None = None) -> MetricsRegistry:
    """Create every default metric up front so /metrics lists them before first use."""
    target = registry or metrics_registry
    for definition in DEFAULT_METRIC_DEFINITIONS:
        factory = _FACTORIES.get(definition.metric_type)
        if factory is None:  # pragma: no cover - definitions are static
            raise ValueError(f"Unsupported metric type: {definition.metric_type}")
        factory(target, definition.name, description=definition.description, label_names=definition.label_names)
    return target


register_default_metrics()

__all__ = [
    "MetricDefinition",
    "MetricsRegistry",
    "PrometheusExporter",
    "metrics_registry",
    "register_default_metrics",
]
