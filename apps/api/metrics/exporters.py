"""Prometheus text exposition of the registry."""
from __future__ import annotations

from .registry import MetricsRegistry


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def render_prometheus(registry: MetricsRegistry) -> str:
    lines: list[str] = []
    for metric in registry.metrics():
        lines.append(f"# HELP {metric.name} {metric.description}")
        lines.append(f"# TYPE {metric.name} {metric.kind}")
        for label_values, values in sorted(metric.samples().items()):
            label_text = ""
            if label_values:
                pairs = [f'{name}="{_escape(value)}"' for name, value in zip(metric.label_names, label_values)]
                label_text = "{" + ",".join(pairs) + "}"
            if "value" in values:
                lines.append(f"{metric.name}{label_text} {values['value']}")
            else:
                lines.append(f"{metric.name}_count{label_text} {values['count']}")
                lines.append(f"{metric.name}_sum{label_text} {values['sum']}")
    return "\n".join(lines) + ("\n" if lines else "")
