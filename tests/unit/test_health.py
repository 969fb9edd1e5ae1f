"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from project_operator.health import create_combined_wsgi_app, start_metrics_server


def make_environ(path: str) -> dict:
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "wsgi.url_scheme": "http",
    }


class TestCombinedWsgiApp:
    """Test cases for combined WSGI application."""

    def test_combined_app_healthz(self):
        """Test combined app handles /healthz."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        result = app(make_environ("/healthz"), start_response)

        assert b'"status":"ok"' in b"".join(result)
        assert "200" in start_response.call_args[0][0]

    def test_combined_app_readyz(self):
        """Test combined app handles /readyz."""
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        result = app(make_environ("/readyz"), start_response)

        assert b'"status":"ready"' in b"".join(result)

    def test_content_type_is_json(self):
        app = create_combined_wsgi_app()
        start_response = MagicMock()

        app(make_environ("/healthz"), start_response)

        headers = start_response.call_args[0][1]
        content_type = [h for h in headers if h[0].lower() == "content-type"]
        assert "application/json" in content_type[0][1]

    @patch("project_operator.health.make_wsgi_app")
    def test_combined_app_delegates_to_metrics(self, mock_make_wsgi):
        """Test combined app delegates /metrics to prometheus."""
        mock_metrics_app = MagicMock(return_value=[b"metrics data"])
        mock_make_wsgi.return_value = mock_metrics_app
        app = create_combined_wsgi_app()

        result = app(make_environ("/metrics"), MagicMock())

        assert mock_metrics_app.called
        assert result == [b"metrics data"]


class TestStartMetricsServer:
    """Test cases for the metrics server thread."""

    @patch("project_operator.health.threading.Thread")
    @patch("project_operator.health.make_server")
    def test_serves_in_daemon_thread(self, mock_make_server, mock_thread):
        server = start_metrics_server(9100)

        assert server is mock_make_server.return_value
        assert mock_make_server.call_args[0][:2] == ("", 9100)
        assert mock_thread.call_args.kwargs["daemon"] is True
        mock_thread.return_value.start.assert_called_once()
