"""Tests for the generation and counter API router."""
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from artgen.services.counter import GenerationCounter
from artgen.services.errors import ParameterInvariantError
from artgen.services.gatekeeper import Gatekeeper, RateLimiter
from artgen.services.generation import GenerationService
from conftest import FakeClock

PROMPT = "serene portrait in blue tones"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def service(tmp_path: Path, fake_clock: FakeClock) -> GenerationService:
    return GenerationService(
        gatekeeper=Gatekeeper(rate_limiter=RateLimiter(limit=10, window_seconds=3600, clock=fake_clock)),
        counter=GenerationCounter(),
        artworks_dir=tmp_path / "artworks",
    )


def _install(service: object) -> Iterator[TestClient]:
    from artgen.main import app

    app.state.generation_service = service
    # no lifespan: it would replace the injected service
    yield TestClient(app)
    # cleanup
    if hasattr(app.state, "generation_service"):
        del app.state.generation_service


@pytest.fixture
def client(service: GenerationService) -> Iterator[TestClient]:
    yield from _install(service)


@pytest.fixture
def failing_client() -> Iterator[TestClient]:
    svc = MagicMock()
    svc.generate.side_effect = ParameterInvariantError("head.top", 99, 12, 16)
    yield from _install(svc)


def _generate(client: TestClient, caller: str = "203.0.113.7", **body: object) -> httpx.Response:
    return client.post(
        "/api/generate",
        json={"prompt": PROMPT, **body},
        headers={"X-Forwarded-For": caller},
    )


# ---------------------------------------------------------------------------
# POST /api/generate
# ---------------------------------------------------------------------------


class TestGenerateEndpoint:
    def test_returns_200_on_success(self, client: TestClient) -> None:
        assert _generate(client).status_code == 200

    def test_response_fields(self, client: TestClient) -> None:
        data = _generate(client).json()
        assert data["generation_number"] == 1
        assert data["display_number"] == "#000001"
        assert data["mood"] == "serene"
        assert data["document"].lstrip().startswith("<!DOCTYPE html>")
        assert data["document_url"] == "/artworks/artwork_000001.html"
        assert data["provenance"]["fingerprint"] in data["certificate"]

    def test_preset_mood_alias(self, client: TestClient) -> None:
        data = _generate(client, presetMood="dramatic").json()
        assert data["mood"] == "dramatic"
        assert data["provenance"]["parameters"]["style"]["contrast"] == "dramatic"

    def test_creator_recorded(self, client: TestClient) -> None:
        data = _generate(client, creator="Ada").json()
        assert data["provenance"]["creator"] == "Ada"
        assert "Creator:          Ada" in data["certificate"]

    def test_invalid_prompt_returns_400(self, client: TestClient) -> None:
        resp = client.post("/api/generate", json={"prompt": "ab"})
        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["error"] == "Invalid prompt"
        assert "too short" in detail["message"]

    def test_suspicious_prompt_returns_400(self, client: TestClient) -> None:
        resp = client.post("/api/generate", json={"prompt": "portrait <script>alert(1)</script>"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["message"] == "Prompt contains suspicious content"

    def test_missing_prompt_returns_422(self, client: TestClient) -> None:
        assert client.post("/api/generate", json={"creator": "Ada"}).status_code == 422

    def test_unknown_mood_returns_422(self, client: TestClient) -> None:
        assert _generate(client, presetMood="furious").status_code == 422

    def test_eleventh_request_returns_429(self, client: TestClient) -> None:
        for _ in range(10):
            assert _generate(client).status_code == 200
        resp = _generate(client)
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "3600"
        detail = resp.json()["detail"]
        assert detail["error"] == "Rate limit exceeded"
        assert detail["retry_after"] == 3600

    def test_quota_slides_with_window(self, client: TestClient, fake_clock: FakeClock) -> None:
        for _ in range(10):
            _generate(client)
        assert _generate(client).status_code == 429
        fake_clock.advance(3600)
        assert _generate(client).status_code == 200

    def test_quota_is_per_caller(self, client: TestClient) -> None:
        for _ in range(10):
            _generate(client, caller="203.0.113.7")
        assert _generate(client, caller="203.0.113.7").status_code == 429
        assert _generate(client, caller="198.51.100.2").status_code == 200

    def test_first_forwarded_hop_identifies_caller(self, client: TestClient) -> None:
        for _ in range(10):
            _generate(client, caller="203.0.113.7, 10.0.0.1")
        assert _generate(client, caller="203.0.113.7, 10.0.0.2").status_code == 429

    def test_rejected_prompts_do_not_use_quota(self, client: TestClient) -> None:
        for _ in range(15):
            client.post("/api/generate", json={"prompt": ""}, headers={"X-Forwarded-For": "203.0.113.7"})
        assert _generate(client).status_code == 200

    def test_parameter_failure_returns_500(self, failing_client: TestClient) -> None:
        resp = _generate(failing_client)
        assert resp.status_code == 500
        assert resp.json()["detail"]["error"] == "Generation failed"

    def test_returns_503_when_service_missing(self) -> None:
        from artgen.main import app

        if hasattr(app.state, "generation_service"):
            del app.state.generation_service
        resp = TestClient(app).post("/api/generate", json={"prompt": PROMPT})
        assert resp.status_code == 503


# ---------------------------------------------------------------------------
# Counter endpoints
# ---------------------------------------------------------------------------


class TestCounterEndpoints:
    def test_counter_starts_at_zero(self, client: TestClient) -> None:
        data = client.get("/api/counter").json()
        assert data["total_generated"] == 0
        assert "started_at" in data

    def test_counter_tracks_accepted_generations(self, client: TestClient) -> None:
        _generate(client)
        _generate(client)
        client.post("/api/generate", json={"prompt": "ab"})
        assert client.get("/api/counter").json()["total_generated"] == 2

    def test_stats(self, client: TestClient) -> None:
        _generate(client)
        data = client.get("/api/counter/stats").json()
        assert data["total_generated"] == 1
        assert data["last_24_hours"] == 1
        assert data["average_per_day"] == 1

    def test_verify(self, client: TestClient) -> None:
        fingerprint = _generate(client).json()["provenance"]["fingerprint"]
        ok = client.get(
            "/api/counter/verify", params={"generation_number": 1, "fingerprint": fingerprint}
        ).json()
        assert ok["verified"] is True
        bad = client.get(
            "/api/counter/verify", params={"generation_number": 1, "fingerprint": "0" * 16}
        ).json()
        assert bad["verified"] is False


# ---------------------------------------------------------------------------
# Certificate export
# ---------------------------------------------------------------------------


class TestCertificateEndpoint:
    def test_text_certificate(self, client: TestClient) -> None:
        certificate = _generate(client).json()["certificate"]
        resp = client.get("/api/artworks/1/certificate")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text == certificate

    def test_json_certificate(self, client: TestClient) -> None:
        provenance = _generate(client).json()["provenance"]
        resp = client.get("/api/artworks/1/certificate", params={"format": "json"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.json()["fingerprint"] == provenance["fingerprint"]

    def test_unknown_generation_returns_404(self, client: TestClient) -> None:
        assert client.get("/api/artworks/42/certificate").status_code == 404

    def test_unknown_format_returns_422(self, client: TestClient) -> None:
        _generate(client)
        resp = client.get("/api/artworks/1/certificate", params={"format": "pdf"})
        assert resp.status_code == 422
