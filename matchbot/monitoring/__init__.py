"""
Monitoring package.

This package contains Prometheus metrics for the reconciliation engine.
"""

from matchbot.monitoring.metrics_rich import RichMetrics

__all__ = [
    "RichMetrics",
]
