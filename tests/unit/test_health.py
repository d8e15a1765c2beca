"""Tests for health check endpoints."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from gke_operator import health
from gke_operator.health import create_combined_wsgi_app


def _environ(path: str) -> dict:
    return {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": path,
        "SCRIPT_NAME": "",
        "SERVER_NAME": "localhost",
        "SERVER_PORT": "8080",
        "wsgi.url_scheme": "http",
    }


class TestCombinedApp:
    """Test cases for the combined metrics and health app."""

    def test_healthz(self):
        """Test /healthz always answers ok."""
        start_response = MagicMock()
        body = b"".join(create_combined_wsgi_app()(_environ("/healthz"), start_response))

        assert b'"status":"ok"' in body
        assert "200" in start_response.call_args[0][0]

    def test_readyz_ready(self):
        """Test /readyz answers 200 once ready."""
        start_response = MagicMock()
        body = b"".join(create_combined_wsgi_app(lambda: True)(_environ("/readyz"), start_response))

        assert b'"status":"ready"' in body
        assert "200" in start_response.call_args[0][0]

    def test_readyz_not_ready(self):
        """Test /readyz answers 503 before startup completes."""
        start_response = MagicMock()
        create_combined_wsgi_app(lambda: False)(_environ("/readyz"), start_response)

        assert "503" in start_response.call_args[0][0]

    @patch("gke_operator.health.make_wsgi_app")
    def test_metrics_delegated(self, mock_make_wsgi_app):
        """Test that other paths are served by the prometheus app."""
        metrics_app = MagicMock(return_value=[b"metrics"])
        mock_make_wsgi_app.return_value = metrics_app

        result = create_combined_wsgi_app()(_environ("/metrics"), MagicMock())

        assert result == [b"metrics"]
        metrics_app.assert_called_once()


class TestReadiness:
    """Test cases for the readiness flag."""

    def test_mark_ready_and_not_ready(self):
        """Test that readiness can be toggled."""
        health.mark_ready()
        assert health.is_ready() is True
        health.mark_not_ready()
        assert health.is_ready() is False
