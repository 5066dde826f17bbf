"""Unit tests for the HTTP API."""
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from dayplanner.api import routes
from dayplanner.core.exceptions import (
    CompletionTimeoutError,
    InvalidResponseError,
    NotConnectedError,
    RequestFailedError,
)
from dayplanner.main import app
from dayplanner.models.domain import Chain, TimeBlock
from dayplanner.models.mind import GoalReference, MindCommandResponse, PinNodeCommand
from dayplanner.models.schemas import AIActionType, AIResponse, ConnectionStatus, ResponseOutcome, Suggestion

CONTEXT = {"date": "2026-03-10", "current_time": "2026-03-10T10:05:00"}


@pytest.fixture
def client():
    # No context manager: startup hooks (and the polling task) stay off
    return TestClient(app)


@pytest.fixture
def connected():
    with patch.object(routes.connection_monitor, "_status", ConnectionStatus(connected=True, provider="local")):
        yield


@pytest.fixture
def no_api_key():
    with patch.object(routes.settings.auth, "api_key", None):
        yield


class TestHealth:

    def test_health_reports_connection(self, client, connected):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "running"
        assert body["connected"] is True
        assert body["thresholds"]["create_pillar"] == routes.ai_service.thresholds.for_action(AIActionType.CREATE_PILLAR)


class TestAuth:

    def test_rejects_wrong_key(self, client, connected):
        with patch.object(routes.settings.auth, "api_key", "secret"):
            response = client.post("/chat", json={"message": "hi", "context": CONTEXT}, headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    def test_accepts_right_key(self, client, connected):
        reply = AIResponse(text="Hi!", confidence=0.3, action_type=AIActionType.GENERAL_CHAT)
        with patch.object(routes.settings.auth, "api_key", "secret"), \
                patch.object(routes.ai_service, "process_message", AsyncMock(return_value=reply)):
            response = client.post("/chat", json={"message": "hi", "context": CONTEXT}, headers={"X-API-Key": "secret"})
        assert response.status_code == 200


class TestChat:

    def test_chat_returns_response(self, client, connected, no_api_key):
        reply = AIResponse(
            text="Scheduled!",
            action_type=AIActionType.CREATE_EVENT,
            confidence=0.9,
            outcome=ResponseOutcome.COMPLETED,
        )
        with patch.object(routes.ai_service, "process_message", AsyncMock(return_value=reply)) as mock_process:
            response = client.post(
                "/chat",
                json={"message": "Workout at 7am", "context": CONTEXT, "insights": ["Morning person"]},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["text"] == "Scheduled!"
        assert body["action_type"] == "create_event"
        kwargs = mock_process.call_args.kwargs
        assert kwargs["status"].connected is True
        assert kwargs["insights"] == ["Morning person"]
        assert kwargs["context"].current_time == datetime(2026, 3, 10, 10, 5)

    @pytest.mark.parametrize("error, status_code", [
        (NotConnectedError(), 503),
        (CompletionTimeoutError(), 503),
        (RequestFailedError("HTTP 500", status_code=500), 502),
        (InvalidResponseError(), 502),
    ])
    def test_errors_mapped(self, client, connected, no_api_key, error, status_code):
        with patch.object(routes.ai_service, "process_message", AsyncMock(side_effect=error)):
            response = client.post("/chat", json={"message": "hi", "context": CONTEXT})

        assert response.status_code == status_code
        assert response.json()["detail"] == error.message

    def test_empty_message_rejected(self, client, no_api_key):
        response = client.post("/chat", json={"message": "", "context": CONTEXT})
        assert response.status_code == 422


class TestSuggestions:

    def test_with_message(self, client, connected, no_api_key):
        suggestion = Suggestion(
            title="Walk", duration=1800, suggested_time=datetime(2026, 3, 10, 10, 15), confidence=0.7
        )
        with patch.object(routes.ai_service, "get_suggestions", AsyncMock(return_value=[suggestion])) as mock_get:
            response = client.post("/suggestions", json={"message": "ideas?", "context": CONTEXT})

        assert response.status_code == 200
        assert response.json()[0]["title"] == "Walk"
        assert mock_get.call_args[0][0] == "ideas?"

    def test_without_message(self, client, connected, no_api_key):
        with patch.object(routes.ai_service, "generate_suggestions", AsyncMock(return_value=[])) as mock_generate:
            response = client.post("/suggestions", json={"context": CONTEXT})

        assert response.status_code == 200
        assert response.json() == []
        mock_generate.assert_awaited_once()

    def test_mock_suggestions(self, client, no_api_key):
        response = client.get("/suggestions/mock")
        assert [s["title"] for s in response.json()] == ["Morning Coffee & Planning", "Deep Work Session"]


class TestChains:

    def test_chains(self, client, connected, no_api_key):
        chain = Chain(
            name="Focus Sprint",
            blocks=[TimeBlock(title="Prep", start_time=datetime(2026, 3, 10, 10, 15), duration=900)],
        )
        with patch.object(routes.ai_service, "generate_chains", AsyncMock(return_value=[chain])):
            response = client.post("/chains", json={"prompt": "after my meeting"})

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Focus Sprint"

    def test_invalid_chain_output(self, client, connected, no_api_key):
        with patch.object(routes.ai_service, "generate_chains", AsyncMock(side_effect=InvalidResponseError())):
            response = client.post("/chains", json={"prompt": "after my meeting"})
        assert response.status_code == 502


class TestMind:

    def test_mind_commands(self, client, connected, no_api_key):
        result = MindCommandResponse(
            summary="Pinned it",
            commands=[PinNodeCommand(reference=GoalReference(title="Marathon"), node_title="Long run")],
        )
        with patch.object(routes.ai_service, "process_mind_commands", AsyncMock(return_value=result)) as mock_mind:
            response = client.post("/mind", json={
                "message": "pin the long run",
                "context": {"goals": [{"title": "Marathon"}]},
            })

        assert response.status_code == 200
        body = response.json()
        assert body["summary"] == "Pinned it"
        assert body["commands"][0]["type"] == "pin_node"
        assert body["commands"][0]["node_title"] == "Long run"
        assert mock_mind.call_args.kwargs["context"].goals[0].title == "Marathon"

    def test_context_optional(self, client, connected, no_api_key):
        with patch.object(routes.ai_service, "process_mind_commands",
                          AsyncMock(return_value=MindCommandResponse())) as mock_mind:
            response = client.post("/mind", json={"message": "add a reading goal"})

        assert response.status_code == 200
        assert mock_mind.call_args.kwargs["context"].goals == []

    def test_not_connected(self, client, no_api_key):
        with patch.object(routes.ai_service, "process_mind_commands", AsyncMock(side_effect=NotConnectedError())):
            response = client.post("/mind", json={"message": "add a reading goal"})
        assert response.status_code == 503


class TestDiagnostics:

    def test_report(self, client, no_api_key):
        with patch.object(routes.ai_service, "run_diagnostics", AsyncMock(return_value="AI Service Diagnostics:\n")):
            response = client.get("/diagnostics")

        assert response.status_code == 200
        assert response.json()["report"].startswith("AI Service Diagnostics:")


class TestLifecycle:

    def test_monitor_started_and_stopped(self):
        with patch.object(routes.connection_monitor, "start") as mock_start, \
                patch.object(routes.connection_monitor, "stop", AsyncMock()) as mock_stop:
            with TestClient(app):
                mock_start.assert_called_once()
            mock_stop.assert_awaited_once()
