"""
Calculator Request Monitor

In-process counters for the dosing and PGx endpoints: request totals,
failures, rolling mean latency and the last error seen.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, Any, Optional

logger = logging.getLogger(__name__)

LATENCY_WINDOW = 100
HEALTHY_SUCCESS_RATE = 0.95
HEALTHY_LATENCY_MS = 1000.0


@dataclass
class ServiceMetrics:
    """Metrics for one calculator endpoint group."""
    service_name: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    error_counts: Counter = field(default_factory=Counter)
    last_error: Optional[str] = None
    last_error_time: Optional[str] = None
    last_success_time: Optional[str] = None

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 1.0
        return self.successful_requests / self.total_requests

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_name": self.service_name,
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "success_rate": round(self.success_rate, 4),
            "average_response_time_ms": round(self.average_response_time_ms, 3),
            "error_counts": dict(self.error_counts),
            "last_error": self.last_error,
            "last_error_time": self.last_error_time,
            "last_success_time": self.last_success_time,
        }


class ServiceMonitor:
    """Track request outcomes per service name."""

    def __init__(self):
        self.metrics: Dict[str, ServiceMetrics] = {}
        self._response_times: Dict[str, Deque[float]] = {}

    def record_request(
        self,
        service_name: str,
        success: bool,
        response_time_ms: float,
        error: Optional[str] = None
    ):
        """
        Record one request.

        Args:
            service_name: e.g. "dose_calculation", "pgx_phenotype"
            success: Whether the request succeeded
            response_time_ms: Handler latency in milliseconds
            error: Error message if failed
        """
        metrics = self.metrics.setdefault(service_name, ServiceMetrics(service_name=service_name))
        times = self._response_times.setdefault(service_name, deque(maxlen=LATENCY_WINDOW))

        metrics.total_requests += 1
        now = datetime.now().isoformat()
        if success:
            metrics.successful_requests += 1
            metrics.last_success_time = now
        else:
            metrics.failed_requests += 1
            metrics.last_error = error
            metrics.last_error_time = now
            if error:
                metrics.error_counts[error] += 1

        times.append(response_time_ms)
        metrics.average_response_time_ms = sum(times) / len(times)

    def get_health_status(self) -> Dict[str, Any]:
        """Per-service health verdicts."""
        health = {}
        for service_name, metrics in self.metrics.items():
            health[service_name] = {
                "healthy": (
                    metrics.success_rate >= HEALTHY_SUCCESS_RATE
                    and metrics.average_response_time_ms < HEALTHY_LATENCY_MS
                ),
                "success_rate": metrics.success_rate,
                "total_requests": metrics.total_requests,
                "failed_requests": metrics.failed_requests,
                "average_response_time_ms": metrics.average_response_time_ms,
                "last_error": metrics.last_error,
            }
        return health

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        return {name: metrics.to_dict() for name, metrics in self.metrics.items()}

    def reset_metrics(self, service_name: Optional[str] = None):
        """Reset metrics for a service or all services."""
        if service_name:
            self.metrics.pop(service_name, None)
            self._response_times.pop(service_name, None)
        else:
            self.metrics.clear()
            self._response_times.clear()


# Singleton instance
_monitor_instance: Optional[ServiceMonitor] = None


def get_service_monitor() -> ServiceMonitor:
    """Get singleton request monitor."""
    global _monitor_instance
    if _monitor_instance is None:
        _monitor_instance = ServiceMonitor()
    return _monitor_instance
