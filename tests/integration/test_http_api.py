"""Integration tests for the HTTP surface."""

import pytest
from conftest import make_config
from fastapi.testclient import TestClient

from llm_dispatcher.providers.base import ProviderCompletion, ProviderError, TokenUsage
from llm_dispatcher.providers.mock_provider import MockAdapter
from llm_dispatcher.server.main import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
def primary():
    return MockAdapter(
        outcomes=[ProviderCompletion(content="4", tokens_used=TokenUsage(prompt=9, completion=3, total=12))]
    )


@pytest.fixture
def client(settings, dispatcher, primary):
    dispatcher.register_provider(make_config("groq"), primary)
    app = create_app(settings=settings, dispatcher=dispatcher)
    with TestClient(app) as test_client:
        yield test_client


class TestInvoke:
    def test_invoke_success(self, client, primary):
        response = client.post(
            "/llm/invoke",
            json={"prompt": "What is 2+2?", "options": {"system_prompt": "Be terse", "temperature": 0.7}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["response"] == "4"
        assert body["data"]["provider"] == "groq"
        assert body["data"]["attempt_count"] == 1
        assert body["data"]["tokens_used"]["total"] == 12
        assert primary.calls[0][2].system_message == "Be terse"

    def test_camel_case_options(self, client, primary):
        response = client.post(
            "/llm/invoke",
            json={"prompt": "hi", "options": {"systemPrompt": "S", "maxTokens": 64, "modelKey": "custom"}},
        )

        assert response.status_code == 200
        _, model, request = primary.calls[0]
        assert model == "custom"
        assert request.max_tokens == 64
        assert request.system_message == "S"

    def test_second_call_is_cached(self, client, primary):
        client.post("/llm/invoke", json={"prompt": "again"})
        response = client.post("/llm/invoke", json={"prompt": "again"})

        assert response.json()["data"]["cached"] is True
        assert primary.call_count == 1

    @pytest.mark.parametrize(
        "payload",
        [
            {"prompt": ""},
            {"prompt": "   "},
            {},
            {"prompt": "hi", "options": {"temperature": 3}},
            {"prompt": "hi", "options": {"maxTokens": 5000}},
        ],
    )
    def test_validation_errors(self, client, primary, payload):
        response = client.post("/llm/invoke", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        assert primary.call_count == 0

    def test_exhaustion_is_reported_in_payload(self, client, dispatcher):
        dispatcher.registry.get_adapter("groq").outcomes = [ProviderError("down", provider="groq")]

        response = client.post("/llm/invoke", json={"prompt": "anyone?"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["success"] is False
        assert data["provider"] == "fallback"
        assert data["model_used"] == "emergency-mode"
        assert data["attempt_count"] == 1


class TestAdministration:
    def test_list_providers(self, client):
        response = client.get("/llm/providers")

        assert response.status_code == 200
        providers = response.json()["data"]["providers"]
        assert [p["name"] for p in providers] == ["groq"]
        assert providers[0]["is_active"] is True

    def test_stats(self, client):
        client.post("/llm/invoke", json={"prompt": "count me"})

        response = client.get("/llm/stats")

        data = response.json()["data"]
        assert data["providers"][0]["total_requests"] == 1
        assert data["providers"][0]["success_rate"] == 100
        assert data["cache"]["entries"] == 1

    def test_toggle_provider(self, client, dispatcher):
        response = client.put("/llm/providers/groq/active", json={"is_active": False})

        assert response.status_code == 200
        assert response.json()["data"] == {"name": "groq", "is_active": False}
        assert dispatcher.registry.get("groq").is_active is False

    def test_toggle_unknown_provider(self, client):
        response = client.put("/llm/providers/nope/active", json={"isActive": True})

        assert response.status_code == 404
        assert response.json()["code"] == "PROVIDER_NOT_FOUND"

    def test_refresh(self, client, dispatcher):
        dispatcher.set_provider_active("groq", False)

        response = client.post("/llm/providers/refresh")

        assert response.status_code == 200
        assert response.json()["data"]["results"] == {"groq": True}
        assert dispatcher.registry.get("groq").is_active is True


class TestOperational:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["providers"] == {"registered": 1, "active": 1}

    def test_health_degraded_without_active_providers(self, client, dispatcher):
        dispatcher.set_provider_active("groq", False)

        assert client.get("/health").json()["status"] == "degraded"

    def test_metrics(self, client):
        client.post("/llm/invoke", json={"prompt": "metric"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "llm_dispatcher_dispatch_requests_total" in response.text
        assert "llm_dispatcher_provider_attempts_total" in response.text

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
