"""Tests for the HTTP endpoints."""

import json
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from storechat.api.app import REQUEST_ID_HEADER, create_app, get_orchestrator
from storechat.config import AppConfig, BackendConfig, CalendarConfig, ModelConfig
from storechat.pipeline.classifier import IntentClassifier
from storechat.pipeline.orchestrator import ChatOrchestrator
from storechat.pipeline.responder import ResponseSynthesizer
from conftest import (
    NOW,
    FakeSheets,
    FakeStores,
    ScriptedLLM,
    booking_config,
    default_calendar,
    make_store,
)


class BrokenOrchestrator:
    async def handle_chat(self, request):
        raise RuntimeError("database exploded")


def _client(orchestrator) -> TestClient:
    app = create_app(replace(AppConfig(), service_name="storechat-test"))
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    return TestClient(app)


def _orchestrator(*replies) -> ChatOrchestrator:
    config = replace(AppConfig(), booking=booking_config())
    llm = ScriptedLLM(*replies)
    return ChatOrchestrator(
        config=config,
        stores=FakeStores(make_store()),
        sheets=FakeSheets(),
        calendar=default_calendar(),
        classifier=IntentClassifier(llm, config.model),
        responder=ResponseSynthesizer(llm, config.model),
        clock=lambda: NOW,
    )


CHAT_BODY = {"messages": [{"role": "user", "content": "hello"}], "storeId": "store-1"}


class TestHealth:
    def test_health(self):
        response = _client(_orchestrator()).get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True, "service": "storechat-test"}
        assert response.headers[REQUEST_ID_HEADER].startswith("req-")


class TestLifespan:
    def test_startup_uses_app_config(self):
        config = replace(
            AppConfig(),
            service_name="storechat-lifespan",
            external_timeout_sec=3.0,
            model=replace(ModelConfig(), api_key="sk-test"),
            backend=replace(BackendConfig(), supabase_url="https://db.test", service_role_key="key"),
            calendar=replace(CalendarConfig(), access_token="ya29.test"),
        )
        app = create_app(config)
        with TestClient(app) as client:
            assert client.get("/health").json()["service"] == "storechat-lifespan"
            assert app.state.orchestrator._config is config

    def test_startup_requires_credentials(self):
        config = replace(
            AppConfig(),
            model=replace(ModelConfig(), api_key=""),
            backend=replace(BackendConfig(), supabase_url="", service_role_key=""),
            calendar=replace(CalendarConfig(), access_token=""),
        )
        with pytest.raises(ValueError, match="LLM_API_KEY"):
            with TestClient(create_app(config)):
                pass


class TestChatEndpoint:
    def test_chat_turn(self):
        client = _client(_orchestrator(
            json.dumps({"intent": "GREETING", "confidence": 95, "function_to_call": None}),
            json.dumps({"response": "Hi! How can I help?", "suggestions": ["Show services"]}),
        ))
        response = client.post("/chat", json=CHAT_BODY, headers={REQUEST_ID_HEADER: "req-abc"})
        assert response.status_code == 200
        data = response.json()
        assert data["text"] == "Hi! How can I help?"
        assert data["suggestions"] == ["Show services"]
        assert data["debug"]["requestId"] == "req-abc"
        assert response.headers[REQUEST_ID_HEADER] == "req-abc"

    def test_unknown_store(self):
        response = _client(_orchestrator()).post("/chat", json={**CHAT_BODY, "storeId": "nope"})
        assert response.status_code == 404
        assert response.json() == {"error": "store_not_found"}

    def test_malformed_body(self):
        client = _client(_orchestrator())
        assert client.post("/chat", json={"storeId": "store-1"}).status_code == 422
        assert client.post("/chat", json={**CHAT_BODY, "messages": []}).status_code == 422

    def test_unexpected_error_hides_details(self):
        response = _client(BrokenOrchestrator()).post("/chat", json=CHAT_BODY)
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_error"
        assert body["requestId"] == response.headers[REQUEST_ID_HEADER]
        assert "exploded" not in response.text


class TestFunctionEndpoint:
    def test_direct_slots(self):
        response = _client(_orchestrator()).post("/functions/get_booking_slots", json={
            "storeId": "store-1",
            "params": {"service_name": "Hair Color", "start_date": "2025-11-28", "end_date": "2025-11-28"},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["richContent"]["type"] == "BookingCalendar"
        assert data["result"]["slots"] == [
            {"date": "2025-11-28", "time": "09:00", "endTime": "11:00", "spotsLeft": 1}
        ]
        assert "rich_content" not in data["result"]

    def test_direct_booking(self):
        client = _client(_orchestrator())
        params = {
            "service_name": "Hair Color", "date": "2025-11-28", "time": "09:00",
            "customer_name": "Ana Lopez", "customer_email": "ana@example.com",
        }
        first = client.post("/functions/create_booking", json={"storeId": "store-1", "params": params})
        second = client.post("/functions/create_booking", json={"storeId": "store-1", "params": params})
        assert first.json()["success"] is True
        assert "Booking confirmed" in first.json()["text"]
        assert second.json()["result"]["error"] == "fully_booked"

    def test_missing_fields(self):
        response = _client(_orchestrator()).post(
            "/functions/check_availability",
            json={"storeId": "store-1", "params": {"service_name": "Haircut"}},
        )
        data = response.json()
        assert data["success"] is False
        assert data["result"]["missing_fields"] == ["date", "time"]

    def test_direct_lead_form(self):
        response = _client(_orchestrator()).post(
            "/functions/submit_lead",
            json={"storeId": "store-1", "params": {"customer_name": "Ana Lopez"}},
        )
        data = response.json()
        assert data["success"] is False
        assert data["richContent"]["type"] == "LeadForm"
        assert data["result"]["missing_fields"] == ["customer_email"]

    def test_not_allow_listed(self):
        response = _client(_orchestrator()).post(
            "/functions/get_misc_data", json={"storeId": "store-1", "params": {"tab_name": "faq"}}
        )
        assert response.status_code == 404
        assert response.json() == {"error": "unknown_function"}

    def test_unknown_store(self):
        response = _client(_orchestrator()).post(
            "/functions/get_services", json={"storeId": "nope", "params": {}}
        )
        assert response.status_code == 404
