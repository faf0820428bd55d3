"""Application wide metrics utilities."""
from .definitions import ComplaintMetrics
from .exporters import render_prometheus
from .registry import MetricsRegistry

metrics_registry = MetricsRegistry()

__all__ = [
    "ComplaintMetrics",
    "MetricsRegistry",
    "metrics_registry",
    "render_prometheus",
]
