"""Prometheus metrics for the repository bot.

Metrics Defined:
- repobot_events_total: Counter of webhook events by event name and result
- repobot_commands_total: Counter of classified comment commands by kind
- repobot_requests_parsed_total: Counter of parsed requests by completeness
- repobot_approvals_total: Counter of approval workflow outcomes
- repobot_event_duration_seconds: Histogram of event processing time

Metrics are exposed at the `/metrics` endpoint in Prometheus format.
"""

import logging
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


logger = logging.getLogger(__name__)


# From one second to half an hour; a full clone makes dozens of API calls
DEFAULT_DURATION_BUCKETS = (0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0)

APPROVAL_OUTCOMES = ("denied", "incomplete", "succeeded", "failed")


class BotMetrics:
    """Container for all bot Prometheus metrics.

    Each instance owns its registry so tests and multiple app instances do
    not collide on metric names.

    Attributes:
        registry: The Prometheus registry for these metrics.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.events_total = Counter(
            "repobot_events_total",
            "Total number of webhook events handled",
            labelnames=["event", "result"],
            registry=self.registry,
        )

        self.commands_total = Counter(
            "repobot_commands_total",
            "Total number of comments classified, by command kind",
            labelnames=["kind"],
            registry=self.registry,
        )

        self.requests_parsed_total = Counter(
            "repobot_requests_parsed_total",
            "Total number of repository requests parsed",
            labelnames=["complete", "can_approve"],
            registry=self.registry,
        )

        self.approvals_total = Counter(
            "repobot_approvals_total",
            "Total number of approval workflow runs, by outcome",
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.event_duration_seconds = Histogram(
            "repobot_event_duration_seconds",
            "Time spent processing a webhook event in seconds",
            labelnames=["event"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

        for outcome in APPROVAL_OUTCOMES:
            self.approvals_total.labels(outcome=outcome)

    def record_event(self, event: str, result: str, duration_seconds: float) -> None:
        """Record a processed event.

        Args:
            event: The webhook event name ("issues", "issue_comment").
            result: "success", "ignored" or "failure".
            duration_seconds: Processing time.
        """
        self.events_total.labels(event=event, result=result).inc()
        self.event_duration_seconds.labels(event=event).observe(duration_seconds)

    def record_command(self, kind: str) -> None:
        self.commands_total.labels(kind=kind).inc()

    def record_request(self, complete: bool, can_approve: bool) -> None:
        self.requests_parsed_total.labels(
            complete=str(complete).lower(),
            can_approve=str(can_approve).lower(),
        ).inc()

    def record_approval(self, outcome: str) -> None:
        if outcome not in APPROVAL_OUTCOMES:
            logger.warning("Unknown approval outcome: %s", outcome)
        self.approvals_total.labels(outcome=outcome).inc()

    def render(self) -> bytes:
        """Render all metrics in the Prometheus text format."""
        return generate_latest(self.registry)
