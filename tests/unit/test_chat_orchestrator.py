"""Unit tests for AIService and the handler registry."""
import json
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from conftest import classifier_reply
from dayplanner.core.exceptions import InvalidResponseError, NotConnectedError, RequestFailedError
from dayplanner.models.domain import EnergyType
from dayplanner.models.mind import CreateGoalCommand, GoalSummary, MindEditorContext
from dayplanner.models.schemas import AIActionType, ConnectionStatus, ResponseOutcome
from dayplanner.services.chat.handlers import EventHandler, IntentHandler, SuggestionHandler
from dayplanner.services.chat.orchestrator import AIService, HandlerRegistry


@pytest.fixture
def service(mock_completion_client, thresholds):
    return AIService(client=mock_completion_client, thresholds=thresholds)


class TestHandlerRegistry:
    """Tests for the HandlerRegistry class."""

    def test_register_handler(self, mock_completion_client):
        registry = HandlerRegistry()
        registry.register(EventHandler, mock_completion_client)

        assert registry.list_handlers() == {"create_event": "EventHandler"}
        assert isinstance(registry.get_handler(AIActionType.CREATE_EVENT), EventHandler)

    def test_register_multiple_actions(self, mock_completion_client):
        registry = HandlerRegistry()
        registry.register(SuggestionHandler, mock_completion_client)

        # Both actions share one instance
        chat = registry.get_handler(AIActionType.GENERAL_CHAT)
        suggest = registry.get_handler(AIActionType.SUGGEST_ACTIVITIES)
        assert chat is suggest

    def test_instance_reused(self, mock_completion_client):
        registry = HandlerRegistry()
        registry.register(EventHandler, mock_completion_client)
        first = registry.get_handler(AIActionType.CREATE_EVENT)
        registry.register(EventHandler, mock_completion_client)
        assert registry.get_handler(AIActionType.CREATE_EVENT) is first

    def test_get_nonexistent_handler(self):
        assert HandlerRegistry().get_handler(AIActionType.CREATE_GOAL) is None

    def test_clear(self, mock_completion_client):
        registry = HandlerRegistry()
        registry.register(EventHandler, mock_completion_client)
        registry.clear()
        assert registry.list_handlers() == {}

    def test_service_registers_every_action(self, service):
        handlers = service.registry.list_handlers()
        assert set(handlers) == {action.value for action in AIActionType}
        for action in AIActionType:
            assert isinstance(service.registry.get_handler(action), IntentHandler)


@pytest.mark.asyncio
class TestProcessMessage:

    async def test_not_connected_makes_no_model_call(
        self, service, mock_completion_client, day_context, disconnected_status
    ):
        with pytest.raises(NotConnectedError):
            await service.process_message("Workout at 7am", day_context, disconnected_status)

        mock_completion_client.complete.assert_not_called()
        assert service.is_processing is False

    async def test_event_dispatch(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.side_effect = [
            classifier_reply("create_event", 0.9, {"activity": "workout"}),
            json.dumps({"response": "Scheduled!", "event": {"title": "Workout", "duration": 1800}}),
        ]

        response = await service.process_message("Workout at 7am for 45 min", day_context, connected_status)

        assert mock_completion_client.complete.await_count == 2
        assert response.action_type == AIActionType.CREATE_EVENT
        assert response.outcome == ResponseOutcome.COMPLETED
        assert response.text == "Scheduled!"
        block = response.created_items[0].payload
        assert block.duration == 2700
        assert block.energy == EnergyType.SUNRISE
        assert service.is_processing is False
        assert service.last_response_time >= 0

    async def test_insights_reach_classifier_prompt(
        self, service, mock_completion_client, day_context, connected_status
    ):
        mock_completion_client.complete.side_effect = [
            classifier_reply("general_chat", 0.4),
            json.dumps({"response": "Hi!", "suggestions": []}),
        ]

        await service.process_message("hi", day_context, connected_status, insights=["Likes evening runs"])

        classifier_prompt = mock_completion_client.complete.call_args_list[0][0][0]
        assert "- Likes evening runs" in classifier_prompt

    async def test_unreadable_classification_becomes_chat(
        self, service, mock_completion_client, day_context, connected_status
    ):
        mock_completion_client.complete.side_effect = [
            "I'm not sure what you mean",
            json.dumps({"response": "Tell me more!", "suggestions": []}),
        ]

        response = await service.process_message("asdf", day_context, connected_status)

        assert response.action_type == AIActionType.GENERAL_CHAT
        assert response.confidence == 0.3
        assert response.text == "Tell me more!"

    async def test_below_threshold_goal(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.side_effect = [
            classifier_reply("create_goal", 0.6),
            json.dumps({"response": "ok", "goal": {"title": "Run a marathon"}}),
        ]

        response = await service.process_message("marathon someday?", day_context, connected_status)

        assert response.action_type == AIActionType.CREATE_GOAL
        assert response.created_items is None
        assert response.outcome == ResponseOutcome.NEEDS_DETAIL

    async def test_malformed_pillar_reply(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.side_effect = [
            classifier_reply("create_pillar", 0.9),
            "```json\n{\"pillar\": \n```",
        ]

        response = await service.process_message("I never work weekends", day_context, connected_status)

        assert response.action_type == AIActionType.CREATE_PILLAR
        assert response.confidence == 0.9
        assert response.outcome == ResponseOutcome.DEGRADED
        assert response.created_items[0].payload.name == "New Pillar"

    async def test_client_errors_propagate(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.side_effect = [
            classifier_reply("create_event", 0.9),
            RequestFailedError("HTTP 500", status_code=500),
        ]

        with pytest.raises(RequestFailedError):
            await service.process_message("Workout at 7am", day_context, connected_status)
        assert service.is_processing is False

    async def test_generate_suggestions(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.side_effect = [
            classifier_reply("suggest_activities", 0.8),
            json.dumps({"response": "Ideas", "suggestions": [{"title": "Walk", "duration": 30}]}),
        ]

        suggestions = await service.generate_suggestions(day_context, connected_status)

        assert [s.title for s in suggestions] == ["Walk"]
        assert '"Suggest some activities for my day"' in mock_completion_client.complete.call_args_list[0][0][0]

    async def test_get_suggestions(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.side_effect = [
            classifier_reply("suggest_activities", 0.8),
            json.dumps({"response": "Ideas", "suggestions": [{"title": "Stretch", "duration": 15}]}),
        ]

        suggestions = await service.get_suggestions("I'm tired", day_context, connected_status)

        assert suggestions[0].duration == 900


@pytest.mark.asyncio
class TestGenerateChains:

    async def test_parses_array(self, service, mock_completion_client, connected_status):
        mock_completion_client.complete.return_value = json.dumps([
            {"name": "Focus Sprint", "emoji": "🎯", "blocks": [
                {"title": "Prep", "duration": 900, "energyLevel": 9, "emoji": "📝"},
                {"title": "Build", "duration": 3600, "energyLevel": 6, "emoji": "💻"},
                {"title": "Cooldown", "duration": 600, "energyLevel": 2, "emoji": "🌙"},
            ]},
            {"name": "No blocks", "emoji": "❌", "blocks": []},
            {"emoji": "❓", "blocks": [{"title": "Orphan", "duration": 900}]},
        ])

        chains = await service.generate_chains("after my meeting", connected_status)

        [chain] = chains
        assert chain.name == "Focus Sprint"
        assert [b.energy for b in chain.blocks] == [EnergyType.SUNRISE, EnergyType.DAYLIGHT, EnergyType.MOONLIGHT]
        assert chain.blocks[2].duration == 900
        assert chain.blocks[1].start_time == chain.blocks[0].end_time

    async def test_not_an_array(self, service, mock_completion_client, connected_status):
        mock_completion_client.complete.return_value = '{"name": "single chain"}'
        with pytest.raises(InvalidResponseError):
            await service.generate_chains("after my meeting", connected_status)

    async def test_not_connected(self, service, mock_completion_client, disconnected_status):
        with pytest.raises(NotConnectedError):
            await service.generate_chains("after my meeting", disconnected_status)
        mock_completion_client.complete.assert_not_called()


@pytest.mark.asyncio
class TestProcessMindCommands:

    async def test_not_connected(self, service, mock_completion_client, disconnected_status):
        with pytest.raises(NotConnectedError):
            await service.process_mind_commands("Add a reading goal", MindEditorContext(), disconnected_status)
        mock_completion_client.complete.assert_not_called()
        assert service.is_processing is False

    async def test_returns_typed_commands(self, service, mock_completion_client, connected_status):
        mock_completion_client.complete.return_value = json.dumps({
            "summary": "Added a reading goal",
            "commands": [
                {"type": "create_goal", "title": "Read 12 books", "importance": 4},
                {"type": "noop"},
            ],
        })
        context = MindEditorContext(goals=[GoalSummary(title="Run a marathon")])

        result = await service.process_mind_commands(
            "Add a reading goal", context, connected_status, insights=["Reads best at night"]
        )

        assert result.summary == "Added a reading goal"
        [command] = result.commands
        assert isinstance(command, CreateGoalCommand)
        assert command.importance == 4
        prompt = mock_completion_client.complete.call_args[0][0]
        assert "Run a marathon" in prompt
        assert "• Reads best at night" in prompt
        assert service.is_processing is False

    async def test_unreadable_reply(self, service, mock_completion_client, connected_status):
        mock_completion_client.complete.return_value = "Sure, I added it!"
        with pytest.raises(InvalidResponseError):
            await service.process_mind_commands("Add a reading goal", MindEditorContext(), connected_status)


@pytest.mark.asyncio
class TestPlainSuggestions:

    async def test_success(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.return_value = json.dumps({
            "response": "Two ideas",
            "suggestions": [{"title": "Walk", "duration": 20}, {"title": "Read", "duration": 40}],
        })

        response = await service.plain_suggestions("plan my afternoon", day_context, connected_status)

        assert response.action_type is None
        assert response.confidence == 0.7
        assert response.outcome == ResponseOutcome.COMPLETED
        assert [s.title for s in response.suggestions] == ["Walk", "Read"]
        mock_completion_client.complete.assert_awaited_once()

    async def test_failure(self, service, mock_completion_client, day_context, connected_status):
        mock_completion_client.complete.return_value = "Maybe go for a walk?"

        response = await service.plain_suggestions("plan my afternoon", day_context, connected_status)

        assert response.action_type is None
        assert response.confidence == 0.3
        assert response.outcome == ResponseOutcome.DEGRADED
        assert response.text == "Maybe go for a walk?"
        assert response.suggestions == []


@pytest.mark.asyncio
class TestDiagnostics:

    async def test_connected(self, service, mock_completion_client):
        mock_completion_client.probe.return_value = ConnectionStatus(connected=True)
        mock_completion_client.complete.side_effect = [
            classifier_reply("general_chat", 0.3),
            json.dumps({"response": "Hello!", "suggestions": []}),
        ]

        report = await service.run_diagnostics()

        assert report.startswith("AI Service Diagnostics:")
        assert "Connection: ✅ Connected" in report
        assert "AI Response: ✅ Working" in report
        assert "Response Time:" in report

    async def test_disconnected(self, service, mock_completion_client):
        mock_completion_client.probe = AsyncMock(
            return_value=ConnectionStatus(connected=False, last_error="HTTP 500")
        )

        report = await service.run_diagnostics()

        assert "Connection: ❌ Not Connected" in report
        assert "AI Response" not in report
        mock_completion_client.complete.assert_not_called()

    async def test_round_trip_failure(self, service, mock_completion_client):
        mock_completion_client.complete.side_effect = RequestFailedError("HTTP 500", status_code=500)

        report = await service.run_diagnostics()

        assert "AI Response: ❌" in report


class TestStaticHelpers:

    def test_mock_suggestions(self):
        suggestions = AIService.mock_suggestions(datetime(2026, 3, 10, 14, 22))

        assert [s.title for s in suggestions] == ["Morning Coffee & Planning", "Deep Work Session"]
        assert [s.duration for s in suggestions] == [1800, 5400]
        assert suggestions[0].suggested_time == datetime(2026, 3, 10, 8, 0)
        assert suggestions[1].suggested_time == datetime(2026, 3, 10, 9, 0)
        assert all(s.energy == EnergyType.SUNRISE for s in suggestions)

    @pytest.mark.parametrize("title, expected", [
        ("Breakfast with Ana", "🥐 Breakfast with Ana"),
        ("Team lunch", "🥪 Team lunch"),
        ("Dinner", "🍽️ Dinner"),
        ("Weekly meeting", "📋 Weekly meeting"),
        ("Workout", "💪 Workout"),
        ("Deep focus", "🎯 Deep focus"),
        ("Groceries", "Groceries"),
    ])
    def test_enhance_event_title(self, title, expected):
        assert AIService.enhance_event_title(title) == expected
