"""Tests for operator startup wiring."""

from __future__ import annotations

from unittest.mock import patch

import kopf

from project_operator import main
from project_operator.controller import ProjectController
from project_operator.handlers.project import get_controller, set_controller
from project_operator.store.memory import InMemoryStore


class TestConfigure:
    """Test cases for the kopf startup handler."""

    @patch("project_operator.main.structured_logging.setup_structured_logging")
    @patch("project_operator.main.health.start_metrics_server")
    @patch("project_operator.main.initialize_tracing")
    @patch("project_operator.main.KubernetesStore", return_value=InMemoryStore())
    def test_configure(self, mock_store, mock_tracing, mock_server, mock_logging, monkeypatch):
        monkeypatch.setenv("METRICS_PORT", "9100")
        monkeypatch.setenv("RECONCILE_TIMEOUT_SECONDS", "12")
        settings = kopf.OperatorSettings()

        try:
            main.configure(settings=settings)

            assert settings.execution.max_workers == 1
            assert settings.networking.request_timeout == 12.0
            assert isinstance(settings.persistence.progress_storage, kopf.AnnotationsProgressStorage)
            mock_server.assert_called_once_with(9100)
            mock_tracing.assert_called_once()
            controller = get_controller()
            assert isinstance(controller, ProjectController)
            assert controller.timeout == 12.0
        finally:
            set_controller(None)

    def test_shutdown_detaches_controller(self):
        set_controller(main.build_controller(main.OperatorConfig(), store=InMemoryStore()))

        main.shutdown()

        assert get_controller() is None
