"""Metrics recorded by the complaint lifecycle."""
from __future__ import annotations

from dataclasses import dataclass

from .base import Counter, Distribution
from .registry import MetricsRegistry


@dataclass(frozen=True)
class ComplaintMetrics:
    transitions: Counter
    reassignments: Counter
    department_transfers: Counter
    comments: Counter
    rejections: Counter
    notification_failures: Counter
    operation_duration: Distribution

    @classmethod
    def register(cls, registry: MetricsRegistry) -> "ComplaintMetrics":
        return cls(
            transitions=registry.counter(
                "complaint_transitions_total",
                description="Successful complaint status transitions.",
                label_names=("status",),
            ),
            reassignments=registry.counter(
                "complaint_reassignments_total",
                description="Successful complaint reassignments.",
            ),
            department_transfers=registry.counter(
                "complaint_department_transfers_total",
                description="Complaints moved to another department.",
            ),
            comments=registry.counter(
                "complaint_comments_total",
                description="Comments posted on complaints.",
                label_names=("visibility",),
            ),
            rejections=registry.counter(
                "complaint_rejections_total",
                description="Lifecycle requests rejected before persistence.",
                label_names=("reason",),
            ),
            notification_failures=registry.counter(
                "complaint_notification_failures_total",
                description="Notification dispatches that raised.",
            ),
            operation_duration=registry.distribution(
                "complaint_operation_duration_seconds",
                description="Duration of lifecycle operations in seconds.",
                label_names=("operation",),
            ),
        )
