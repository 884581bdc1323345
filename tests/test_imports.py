"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_store_schema(self):
        from storechat.schemas.store_schema import Service, StoreConfig
        assert StoreConfig(id="s1").calendar_mappings == {}
        assert Service is not None

    def test_import_booking_schema(self):
        from storechat.schemas.booking_schema import CalendarEvent, NewBookingEvent, Slot
        assert CalendarEvent().status == "confirmed"
        assert NewBookingEvent is not None and Slot is not None

    def test_import_conversation_schema(self):
        from storechat.schemas.conversation_schema import Intent, Confidence
        assert Intent.GREETING == "GREETING"
        assert Confidence.LOW == "LOW"


class TestIntegrationImports:
    def test_package_reexports(self):
        from storechat.integrations import (
            ExternalServiceError, GoogleCalendarClient, LLMClient,
            SheetTabLoader, StoreRepository, create_http_client,
        )
        assert issubclass(ExternalServiceError, Exception)
        assert all([GoogleCalendarClient, LLMClient, SheetTabLoader, StoreRepository, create_http_client])


class TestToolImports:
    def test_registry_populated_on_import(self):
        from storechat.tools.registry import get_registered_tools
        assert len(get_registered_tools()) >= 7

    def test_tool_modules(self):
        from storechat.tools.availability import check_availability, get_booking_slots
        from storechat.tools.booking import create_booking
        from storechat.tools.catalog import get_services
        assert callable(check_availability) and callable(get_booking_slots)
        assert callable(create_booking) and callable(get_services)


class TestPipelineImports:
    def test_package_reexports(self):
        from storechat.pipeline import (
            ChatOrchestrator, IntentClassifier, ResponseGuardrailPipeline,
            ResponseSynthesizer, StoreNotFoundError,
        )
        assert ResponseGuardrailPipeline().check_response("Hello!") == []
        assert issubclass(StoreNotFoundError, LookupError)
        assert all([ChatOrchestrator, IntentClassifier, ResponseSynthesizer])

    def test_prompts(self):
        from storechat.prompts.system_prompts import CLASSIFIER_SYSTEM_PROMPT, RESPONDER_SYSTEM_PROMPT
        assert "JSON" in CLASSIFIER_SYSTEM_PROMPT
        assert "suggestions" in RESPONDER_SYSTEM_PROMPT


class TestEntryPointImports:
    def test_api_app(self):
        from storechat.api.app import app
        paths = {route.path for route in app.routes}
        assert {"/chat", "/functions/{name}", "/health"} <= paths

    def test_console_demo(self):
        from console_demo import ConsoleSession
        assert ConsoleSession is not None
