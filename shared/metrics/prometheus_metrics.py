"""Prometheus metrics definitions and helpers.

Provides metric definitions for the platform's community and moderation flows.
"""

from functools import lru_cache
from typing import Callable

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class PlatformMetrics:
    """Community, moderation and delivery metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize platform metrics.

        Args:
            registry: Prometheus registry to use
        """
        # Submissions entering the moderation queue
        self.submissions = Counter(
            "platform_submissions_total",
            "Assets submitted or resubmitted for moderation",
            ["asset_type", "kind"],
            registry=registry,
        )

        # Moderation decisions
        self.moderation_actions = Counter(
            "platform_moderation_actions_total",
            "Admin moderation actions applied",
            ["action", "target_type"],
            registry=registry,
        )

        # Notifications
        self.notifications_sent = Counter(
            "platform_notifications_sent_total",
            "In-app notifications created",
            ["type"],
            registry=registry,
        )

        # Community engagement
        self.engagement = Counter(
            "platform_engagement_total",
            "Votes, saves and reviews",
            ["action"],
            registry=registry,
        )

        # Uploads
        self.uploads = Counter(
            "platform_uploads_total",
            "Image uploads by outcome",
            ["outcome"],
            registry=registry,
        )
        self.upload_size = Histogram(
            "platform_upload_size_bytes",
            "Size of accepted uploads",
            buckets=[16_384, 65_536, 262_144, 1_048_576, 2_097_152, 5_242_880],
            registry=registry,
        )

        # Storage cleanup
        self.storage_purged = Counter(
            "platform_storage_purged_total",
            "Objects processed by the storage purge",
            ["outcome"],
            registry=registry,
        )

        # Contact relay
        self.contact_relay = Counter(
            "platform_contact_relay_total",
            "Contact form relay attempts",
            ["outcome"],
            registry=registry,
        )

        # Realtime subscribers
        self.realtime_subscribers = Gauge(
            "platform_realtime_subscribers",
            "Open server-sent event streams",
            ["stream"],
            registry=registry,
        )


@lru_cache()
def get_platform_metrics() -> PlatformMetrics:
    """Process-wide metrics bound to the default registry.

    Returns:
        Shared PlatformMetrics instance
    """
    return PlatformMetrics()


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
