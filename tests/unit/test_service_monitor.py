"""
Unit tests for the request monitor.
"""

import pytest

from oncodose.services.service_monitor import ServiceMetrics, ServiceMonitor, get_service_monitor


class TestServiceMetrics:

    def test_success_rate_without_requests(self):
        assert ServiceMetrics(service_name="x").success_rate == 1.0

    def test_to_dict(self):
        metrics = ServiceMetrics(service_name="x", total_requests=4, successful_requests=3, failed_requests=1)
        data = metrics.to_dict()
        assert data["success_rate"] == 0.75
        assert data["error_counts"] == {}


class TestServiceMonitor:
    """Test request recording and health verdicts."""

    def test_records_success_and_failure(self):
        monitor = ServiceMonitor()
        monitor.record_request("dose_calculation", True, 10.0)
        monitor.record_request("dose_calculation", False, 30.0, "ValueError")

        metrics = monitor.metrics["dose_calculation"]
        assert metrics.total_requests == 2
        assert metrics.failed_requests == 1
        assert metrics.average_response_time_ms == pytest.approx(20.0)
        assert metrics.last_error == "ValueError"
        assert metrics.error_counts["ValueError"] == 1

    def test_health_verdict(self):
        monitor = ServiceMonitor()
        monitor.record_request("pgx_phenotype", True, 5.0)
        assert monitor.get_health_status()["pgx_phenotype"]["healthy"] is True

        monitor.record_request("pgx_phenotype", False, 5.0, "KeyError")
        assert monitor.get_health_status()["pgx_phenotype"]["healthy"] is False

    def test_slow_service_unhealthy(self):
        monitor = ServiceMonitor()
        monitor.record_request("dose_calculation", True, 2500.0)
        assert monitor.get_health_status()["dose_calculation"]["healthy"] is False

    def test_latency_window(self):
        monitor = ServiceMonitor()
        monitor.record_request("dose_calculation", True, 10000.0)
        for _ in range(100):
            monitor.record_request("dose_calculation", True, 1.0)
        assert monitor.metrics["dose_calculation"].average_response_time_ms == pytest.approx(1.0)

    def test_reset(self):
        monitor = ServiceMonitor()
        monitor.record_request("a", True, 1.0)
        monitor.record_request("b", True, 1.0)
        monitor.reset_metrics("a")
        assert list(monitor.get_metrics()) == ["b"]
        monitor.reset_metrics()
        assert monitor.get_metrics() == {}

    def test_singleton(self):
        assert get_service_monitor() is get_service_monitor()
