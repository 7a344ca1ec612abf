"""API tests for the assembled application.

Builds the app with ``create_app`` from an explicit rule mapping and
drives it over ASGI, covering redirects, the health endpoint, and
startup failure on invalid configuration.
"""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from core.config import clear_settings_cache
from services.redirect_rules import MissingTargetError, RedirectIndex


@pytest.mark.unit
class TestRedirectEndpoints:
    async def test_example_configuration_end_to_end(self, make_app, example_config):
        app = make_app(example_config)

        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            for path in ("/hi", "/test", "/"):
                response = await client.get(path)
                assert response.status_code == 307
                assert response.headers["location"] == "https://g.co"

            response = await client.get("/hi?a=1&b=2")
            assert response.headers["location"] == "https://g.co?a=1&b=2"

            response = await client.get("/other")
            assert response.status_code == 404

    def test_script_redirect(self, make_client):
        client = make_client(
            {
                "SR_REDIR_js": "/js",
                "SR_REDIR_js__TARGET": "https://g.co",
                "SR_REDIR_js__JS_ONLY": "true",
                "SR_REDIR_js__CODE": "308",
            }
        )

        resp = client.get("/js")

        assert resp.status_code == 200
        assert '"https://g.co"' in resp.text

    def test_index_is_published_on_app_state(self, make_app, example_config):
        app = make_app(example_config)

        assert isinstance(app.state.redirect_index, RedirectIndex)
        assert "/hi" in app.state.redirect_index


@pytest.mark.unit
class TestHealthEndpoint:
    def test_health_reports_rule_counts(self, make_client, example_config):
        client = make_client(example_config)

        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json() == {
            "status": "healthy",
            "service": "static-redirector",
            "rules": 1,
            "paths": 3,
        }

    def test_rule_can_claim_health_path(self, make_client):
        client = make_client(
            {"SR_REDIR_h": "/health", "SR_REDIR_h__TARGET": "https://status.example"}
        )

        resp = client.get("/health")

        assert resp.status_code == 307
        assert resp.headers["location"] == "https://status.example"

    def test_health_with_no_rules(self, make_client):
        resp = make_client({}).get("/health")

        assert resp.json()["rules"] == 0


@pytest.mark.unit
class TestStartup:
    def test_invalid_configuration_aborts_app_creation(self, make_app):
        with pytest.raises(MissingTargetError):
            make_app({"SR_REDIR_a": "/a"})

    def test_invalid_configuration_is_logged(self, make_app):
        with patch("main.logger") as mock_logger:
            with pytest.raises(MissingTargetError):
                make_app({"SR_REDIR_a": "/a"})

        mock_logger.error.assert_called_once()
        args, kwargs = mock_logger.error.call_args
        assert args[0] == "config.invalid"
        assert kwargs["extra"]["rule"] == "a"
        assert kwargs["extra"]["key"] == "SR_REDIR_a__TARGET"

    def test_docs_disabled_by_default(self, make_client):
        assert make_client({}).get("/docs").status_code == 404

    def test_docs_enabled_by_setting(self, make_client, monkeypatch):
        monkeypatch.setenv("SR_REDIR__ENABLE_DOCS", "true")
        clear_settings_cache()

        assert make_client({}).get("/docs").status_code == 200

    def test_defaults_to_process_environment(self, monkeypatch):
        from main import create_app

        monkeypatch.setenv("SR_REDIR_envrule", "/from-env")
        monkeypatch.setenv("SR_REDIR_envrule__TARGET", "https://env.example")

        app = create_app()

        assert "/from-env" in app.state.redirect_index
