"""Tests for the HTTP surface: /api/verify, /health, middleware and lifespan."""

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from resigner.api.app import app, lifespan
from resigner.config import Settings, settings
from resigner.core.credential import parse_credential
from resigner.core.resigner import CredentialResigner
from resigner.core.signing import sign_credential, verify_credential
from resigner.exceptions import MisconfiguredServerError

requires_metrics = pytest.mark.skipif(
    not settings.metrics_enabled, reason="metrics disabled by RS_METRICS_ENABLED"
)

# ---------------------------------------------------------------------------
# POST /api/verify
# ---------------------------------------------------------------------------


class TestVerifyEndpoint:
    async def test_valid_init_data_is_reissued(self, client, secrets, signed_init_data):
        resp = await client.post("/api/verify", json={"initData": signed_init_data})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert verify_credential(body["initData"], secrets.downstream_secret)
        assert ("client_id", secrets.downstream_client_id) in parse_credential(body["initData"])

    async def test_trailing_slash_route(self, client, signed_init_data):
        resp = await client.post("/api/verify/", json={"initData": signed_init_data})
        assert resp.status_code == 200

    async def test_invalid_signature_returns_401(self, client, launch_pairs):
        forged = sign_credential(launch_pairs, "not-the-bot-token")

        resp = await client.post("/api/verify", json={"initData": forged})

        assert resp.status_code == 401
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "invalid_signature"
        assert body["message"] == "Invalid InitData"
        assert "initData" not in body
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_malformed_returns_400(self, client):
        resp = await client.post("/api/verify", json={"initData": "user=%ZZ&hash=00"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "malformed_input"

    async def test_missing_field_returns_422(self, client):
        resp = await client.post("/api/verify", json={})
        assert resp.status_code == 422

    async def test_non_string_returns_422(self, client):
        resp = await client.post("/api/verify", json={"initData": 42})
        assert resp.status_code == 422

    async def test_oversized_returns_422(self, client):
        resp = await client.post("/api/verify", json={"initData": "a=" + "x" * 70000})
        assert resp.status_code == 422

    async def test_unconfigured_server_returns_503(self, client, signed_init_data):
        del app.state.resigner
        try:
            resp = await client.post("/api/verify", json={"initData": signed_init_data})
        finally:
            app.state.resigner = None
        assert resp.status_code == 503
        assert resp.json()["error"] == "misconfigured_server"

    async def test_rejection_is_audited(self, client, caplog):
        with caplog.at_level(logging.WARNING, logger="resigner.audit"):
            await client.post("/api/verify", json={"initData": "a=1&hash=00"})

        records = [r for r in caplog.records if r.name == "resigner.audit"]
        assert len(records) == 1
        assert records[0].action == "resign_rejected"
        assert records[0].reason == "invalid_signature"

    async def test_secrets_never_logged(self, client, secrets, signed_init_data, caplog):
        with caplog.at_level(logging.DEBUG):
            await client.post("/api/verify", json={"initData": signed_init_data})
            await client.post("/api/verify", json={"initData": "a=1&hash=00"})

        assert secrets.upstream_secret not in caplog.text
        assert secrets.downstream_secret not in caplog.text


# ---------------------------------------------------------------------------
# Health and middleware
# ---------------------------------------------------------------------------


class TestHealth:
    async def test_health_reports_configured(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["secrets_configured"] is True
        assert "version" in body

    async def test_security_headers(self, client):
        resp = await client.get("/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert resp.headers["Cache-Control"] == "no-store"
        assert len(resp.headers["X-Request-ID"]) == 8

    async def test_security_headers_on_error(self, client):
        resp = await client.post("/api/verify", json={"initData": "a=1"})
        assert resp.status_code == 401
        assert resp.headers["X-Content-Type-Options"] == "nosniff"

    async def test_cors_preflight(self, client):
        resp = await client.options(
            "/api/verify",
            headers={
                "Origin": "https://example.org",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code == 200
        assert "access-control-allow-origin" in resp.headers


@requires_metrics
class TestMetrics:
    async def test_metrics_exposes_prometheus_text(self, client):
        await client.get("/health")

        resp = await client.get("/metrics")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "http_requests_total" in resp.text
        assert 'handler="/health"' in resp.text

    async def test_metrics_endpoint_not_self_instrumented(self, client):
        await client.get("/metrics")
        resp = await client.get("/metrics")
        assert 'handler="/metrics"' not in resp.text


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


class TestLifespan:
    async def test_refuses_to_start_without_secrets(self, monkeypatch):
        monkeypatch.setattr(
            "resigner.api.app.settings",
            Settings(_env_file=None, bot_token="", client_id="cid", client_secret=""),
        )
        with pytest.raises(MisconfiguredServerError):
            async with lifespan(FastAPI()):
                pass

    async def test_installs_resigner(self, monkeypatch, secrets):
        monkeypatch.setattr(
            "resigner.api.app.settings",
            Settings(
                _env_file=None,
                bot_token=secrets.upstream_secret,
                client_id=secrets.downstream_client_id,
                client_secret=secrets.downstream_secret,
            ),
        )
        target = FastAPI()
        async with lifespan(target):
            assert isinstance(target.state.resigner, CredentialResigner)
            assert target.state.resigner.client_id == secrets.downstream_client_id

    async def test_health_without_resigner(self):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/health")
        assert resp.json()["secrets_configured"] is False
