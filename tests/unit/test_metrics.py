"""Tests for Prometheus metrics."""

from __future__ import annotations

from prometheus_client import REGISTRY

from project_operator.metrics import (
    api_call_duration_seconds,
    api_call_total,
    drift_corrected_total,
    error_total,
    phase_failures_total,
    rate_limit_hits_total,
    reconcile_duration_seconds,
    reconcile_total,
)


class TestMetricsExist:
    """Test that all expected metrics are defined."""

    def test_reconcile_total_exists(self):
        # Prometheus counters don't include "_total" in their _name attribute
        assert reconcile_total._name == "project_operator_reconcile"

    def test_reconcile_duration_exists(self):
        assert reconcile_duration_seconds._name == "project_operator_reconcile_duration_seconds"

    def test_phase_failures_total_exists(self):
        assert phase_failures_total._name == "project_operator_phase_failures"

    def test_drift_corrected_total_exists(self):
        assert drift_corrected_total._name == "project_operator_drift_corrected"

    def test_error_total_exists(self):
        assert error_total._name == "project_operator_error"

    def test_api_metrics_exist(self):
        assert api_call_total._name == "project_operator_api_call"
        assert api_call_duration_seconds._name == "project_operator_api_call_duration_seconds"
        assert rate_limit_hits_total._name == "project_operator_rate_limit_hits"


class TestMetricsRecording:
    """Test that metrics record values under their labels."""

    def test_reconcile_total_increments(self):
        labels = {"kind": "Project", "result": "success"}
        before = REGISTRY.get_sample_value("project_operator_reconcile_total", labels) or 0.0

        reconcile_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("project_operator_reconcile_total", labels) == before + 1

    def test_drift_corrected_labels(self):
        labels = {"phase": "node-labels", "resource_type": "Node", "operation": "join"}
        before = REGISTRY.get_sample_value("project_operator_drift_corrected_total", labels) or 0.0

        drift_corrected_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("project_operator_drift_corrected_total", labels) == before + 1

    def test_reconcile_duration_observes(self):
        before = REGISTRY.get_sample_value(
            "project_operator_reconcile_duration_seconds_count", {"kind": "Project"}
        ) or 0.0

        reconcile_duration_seconds.labels(kind="Project").observe(0.2)

        after = REGISTRY.get_sample_value("project_operator_reconcile_duration_seconds_count", {"kind": "Project"})
        assert after == before + 1
