"""Metrics tracking for the content gateway.

Counts provider calls, classified failures, failovers, repaired responses and
degraded balancing runs so that operators (and test suites) can see how often
the resilience paths are taken.
"""

import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .error_classifier import ErrorClassification

logger = logging.getLogger(__name__)


class GatewayMetrics:
    """Tracks counters for gateway, normalizer and balancer activity.

    Counters are guarded by a lock because one instance is shared by every
    request the process serves.
    """

    def __init__(self):
        """Initialize metrics tracker."""
        self._lock = threading.Lock()
        self.reset()
        logger.debug("GatewayMetrics initialized")

    def reset(self) -> None:
        """Reset all metrics to initial state."""
        with self._lock:
            self.started_at = datetime.now(timezone.utc)
            self.api_calls_by_provider: Dict[str, int] = defaultdict(int)
            self.successes_by_provider: Dict[str, int] = defaultdict(int)
            self.failures_by_classification: Dict[str, int] = defaultdict(int)
            self.failovers = 0
            self.terminal_failures = 0
            self.responses_repaired = 0
            self.balancer_runs = 0
            self.balancer_cap_hits = 0

    def record_api_call(self, provider: str) -> None:
        with self._lock:
            self.api_calls_by_provider[provider] += 1

    def record_success(self, provider: str) -> None:
        with self._lock:
            self.successes_by_provider[provider] += 1

    def record_failure(
        self, provider: str, classification: ErrorClassification
    ) -> None:
        """Record a classified provider failure.

        Args:
            provider: Provider that failed
            classification: Failure classification
        """
        with self._lock:
            self.failures_by_classification[classification.value] += 1
        logger.debug(f"Recorded {classification.value} failure for {provider}")

    def record_failover(self, from_provider: str, to_provider: str) -> None:
        with self._lock:
            self.failovers += 1
        logger.debug(f"Recorded failover {from_provider} -> {to_provider}")

    def record_terminal_failure(self) -> None:
        with self._lock:
            self.terminal_failures += 1

    def record_repair(self) -> None:
        with self._lock:
            self.responses_repaired += 1

    def record_balancer_run(self, cap_hit: bool) -> None:
        with self._lock:
            self.balancer_runs += 1
            if cap_hit:
                self.balancer_cap_hits += 1

    def get_summary(self) -> Dict[str, Any]:
        """Get a serializable snapshot of all counters.

        Returns:
            Dictionary of metric values
        """
        with self._lock:
            return {
                "started_at": self.started_at.isoformat(),
                "api_calls": {
                    "total": sum(self.api_calls_by_provider.values()),
                    "by_provider": dict(self.api_calls_by_provider),
                    "successes_by_provider": dict(self.successes_by_provider),
                },
                "failures": {
                    "by_classification": dict(self.failures_by_classification),
                    "failovers": self.failovers,
                    "terminal": self.terminal_failures,
                },
                "normalizer": {"responses_repaired": self.responses_repaired},
                "balancer": {
                    "runs": self.balancer_runs,
                    "cap_hits": self.balancer_cap_hits,
                },
            }


# Global metrics tracker instance
_metrics: Optional[GatewayMetrics] = None


def get_metrics() -> GatewayMetrics:
    """Get or create the process-wide metrics tracker."""
    global _metrics
    if _metrics is None:
        _metrics = GatewayMetrics()
    return _metrics


def reset_metrics() -> None:
    """Reset the process-wide metrics tracker."""
    get_metrics().reset()
