"""Tests for base handler functionality."""

from __future__ import annotations

import json
import logging
from unittest.mock import Mock, patch

import kopf
import pytest

from project_operator.exceptions import (
    Cancelled,
    ConflictError,
    TransientStoreError,
    ValidationError,
)
from project_operator.handlers.base import BaseHandler


class TestBaseHandler:
    """Test cases for BaseHandler class."""

    def test_init(self):
        """Test handler initialization."""
        handler = BaseHandler(kind="TestKind")
        assert handler.kind == "TestKind"
        assert handler.max_retry_delay == 60.0
        assert handler.logger is not None

    def test_log_error_sanitizes(self, caplog):
        """Test that error details are sanitized before logging."""
        handler = BaseHandler(kind="Project")
        error = TransientStoreError("request failed: Authorization: Bearer abc.def.ghi")

        with caplog.at_level(logging.ERROR):
            handler.log_error({"name": "demo", "uid": "u1"}, "Reconciliation failed", error=error)

        record = json.loads(caplog.records[-1].getMessage())
        assert record["name"] == "demo"
        assert record["uid"] == "u1"
        assert record["error_type"] == "TransientStoreError"
        assert "abc.def.ghi" not in record["error"]
        assert caplog.records[-1].levelno == logging.ERROR

    def test_log_warning_level(self, caplog):
        handler = BaseHandler(kind="Node")

        with caplog.at_level(logging.WARNING):
            handler.log_warning({"name": "n1"}, "careful")

        assert caplog.records[-1].levelno == logging.WARNING
        assert json.loads(caplog.records[-1].getMessage())["resource"] == "Node"

    @patch("project_operator.handlers.base.emit_reconcile_started")
    @patch("project_operator.handlers.base.metrics")
    def test_reconcile_with_metrics_success(self, mock_metrics, mock_emit_started):
        """Test successful reconciliation with metrics."""
        handler = BaseHandler(kind="Project")
        meta = {"name": "demo"}
        body = {"metadata": meta}
        reconcile_fn = Mock(return_value="done")

        assert handler.reconcile_with_metrics(meta, reconcile_fn, body=body) == "done"

        reconcile_fn.assert_called_once()
        mock_emit_started.assert_called_once_with(body)
        mock_metrics.reconcile_total.labels.assert_any_call(kind="Project", result="started")
        mock_metrics.reconcile_total.labels.assert_any_call(kind="Project", result="success")
        assert mock_metrics.reconcile_duration_seconds.labels.called

    @patch("project_operator.handlers.base.emit_reconcile_failed")
    @patch("project_operator.handlers.base.emit_reconcile_started")
    @patch("project_operator.handlers.base.metrics")
    def test_reconcile_with_metrics_failure(self, mock_metrics, mock_emit_started, mock_emit_failed):
        """Test failed reconciliation re-raises and records the error."""
        handler = BaseHandler(kind="Project")
        meta = {"name": "demo"}
        body = {"metadata": meta}

        with pytest.raises(ConflictError):
            handler.reconcile_with_metrics(meta, Mock(side_effect=ConflictError("Project", "demo")), body=body)

        mock_emit_failed.assert_called_once()
        assert mock_emit_failed.call_args[0][0] is body
        mock_metrics.error_total.labels.assert_called_once_with(kind="Project", error_type="ConflictError")
        mock_metrics.reconcile_total.labels.assert_any_call(kind="Project", result="error")

    @patch("project_operator.handlers.base.emit_reconcile_failed")
    @patch("project_operator.handlers.base.emit_reconcile_started")
    def test_no_events_without_body(self, mock_emit_started, mock_emit_failed):
        handler = BaseHandler(kind="Project")

        with pytest.raises(TransientStoreError):
            handler.reconcile_with_metrics({"name": "demo"}, Mock(side_effect=TransientStoreError("x")))

        mock_emit_started.assert_not_called()
        mock_emit_failed.assert_not_called()


class TestKopfErrorMapping:
    """Test cases for translating operator errors to kopf errors."""

    def test_validation_error_is_permanent(self):
        handler = BaseHandler(kind="Project")

        error = handler.to_kopf_error(ValidationError("bad selector"))

        assert isinstance(error, kopf.PermanentError)

    @pytest.mark.parametrize("exc", [
        TransientStoreError("connection reset"),
        ConflictError("Project", "demo"),
        Cancelled("deadline exceeded"),
    ])
    def test_retryable_errors_are_temporary(self, exc):
        handler = BaseHandler(kind="Project")

        error = handler.to_kopf_error(exc, retry=2)

        assert isinstance(error, kopf.TemporaryError)
        assert error.delay == 4.0

    def test_delay_capped(self):
        handler = BaseHandler(kind="Project", max_retry_delay=15.0)

        error = handler.to_kopf_error(TransientStoreError("x"), retry=8)

        assert error.delay == 15.0
