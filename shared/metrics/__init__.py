"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    PlatformMetrics,
    get_platform_metrics,
    get_metrics_handler,
)

__all__ = [
    "PlatformMetrics",
    "get_platform_metrics",
    "get_metrics_handler",
]
