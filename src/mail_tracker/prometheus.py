# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for monitoring the mail tracker.

All metrics use the ``mt_`` prefix.

Metrics exposed:
    - ``mt_tracked_total``: Counter of messages sent with tracking injected.
    - ``mt_untracked_total``: Counter of messages sent untracked after an
      injection failure.
    - ``mt_bounces_total``: Counter of bounced recipients per bounce type.
    - ``mt_complaints_total``: Counter of complaining recipients.
    - ``mt_unresolved_total``: Counter of feedback notifications that matched
      no send record.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class TrackerMetrics:
    """Prometheus metrics collector for the mail tracker.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. If not provided,
                a new registry is created.
        """
        self.registry = registry or CollectorRegistry()
        self.tracked = Counter(
            "mt_tracked_total",
            "Total messages sent with tracking",
            registry=self.registry,
        )
        self.untracked = Counter(
            "mt_untracked_total",
            "Total messages sent untracked after an injection failure",
            registry=self.registry,
        )
        self.bounces = Counter(
            "mt_bounces_total",
            "Total bounced recipients",
            ["bounce_type"],
            registry=self.registry,
        )
        self.complaints = Counter(
            "mt_complaints_total",
            "Total complaining recipients",
            registry=self.registry,
        )
        self.unresolved = Counter(
            "mt_unresolved_total",
            "Total feedback notifications without a matching send record",
            registry=self.registry,
        )

    def inc_tracked(self) -> None:
        self.tracked.inc()

    def inc_untracked(self) -> None:
        self.untracked.inc()

    def inc_bounce(self, bounce_type: str) -> None:
        """Increment the bounce counter.

        Args:
            bounce_type: Provider bounce type. Falls back to "unknown" if empty.
        """
        self.bounces.labels(bounce_type=bounce_type or "unknown").inc()

    def inc_complaint(self) -> None:
        self.complaints.inc()

    def inc_unresolved(self) -> None:
        self.unresolved.inc()

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
