"""Assistant Orchestrator - Coordinates intent classification and handler dispatch.

This is the main entry point for the assistant pipeline. It:
1. Refuses to run when the provider is not connected
2. Classifies the message through the IntentClassifier
3. Dispatches to the registered IntentHandler for the recommended action
4. Returns the handler's AIResponse unchanged
"""
import time
from datetime import datetime
from typing import Dict, List, Optional, Type

from dayplanner.core.config import settings
from dayplanner.core.exceptions import InvalidResponseError, NotConnectedError
from dayplanner.core.logging import logger
from dayplanner.models.domain import Chain, EnergyType, FlowPattern
from dayplanner.models.mind import MindCommandResponse, MindEditorContext
from dayplanner.models.schemas import (
    AIActionType,
    AIResponse,
    ConnectionStatus,
    DayContext,
    ResponseOutcome,
    Suggestion,
)
from dayplanner.services.chat.handlers.base import HandlerContext, IntentHandler
from dayplanner.services.chat.handlers.chain import build_blocks
from dayplanner.services.chat.handlers.suggestion import (
    CHAT_FALLBACK_TEXT,
    build_plain_prompt,
    parse_suggestions,
    plain_text_reply,
)
from dayplanner.services.chat.mind_editor import mind_command_parser
from dayplanner.services.intent.classifier import IntentClassifier
from dayplanner.services.intent.thresholds import ThresholdTable
from dayplanner.services.json_utils import as_text, clean_json_response, parse_json_array, parse_json_object
from dayplanner.services.llm import CompletionClient
from dayplanner.services.time_parsing import next_available_slot


SUGGEST_FOR_DAY_MESSAGE = "Suggest some activities for my day"
DIAGNOSTICS_MESSAGE = "Hello"

PLAIN_SUCCESS_CONFIDENCE = 0.7
PLAIN_FAILURE_CONFIDENCE = 0.3

# Keyword -> emoji prefix, first match wins
_TITLE_EMOJIS = [
    (("breakfast",), "🥐"),
    (("lunch",), "🥪"),
    (("dinner",), "🍽️"),
    (("meeting",), "📋"),
    (("exercise", "workout"), "💪"),
    (("work", "deep"), "🎯"),
]


class HandlerRegistry:
    """Registry for action handlers.

    Handlers register themselves with the actions they can handle.
    The service looks up handlers by action.
    """

    def __init__(self):
        self._handlers: Dict[AIActionType, IntentHandler] = {}
        self._handler_instances: Dict[Type[IntentHandler], IntentHandler] = {}

    def register(self, handler_class: Type[IntentHandler], *args, **kwargs) -> None:
        """Register a handler class for its declared actions."""
        # Create single instance per handler class
        if handler_class not in self._handler_instances:
            self._handler_instances[handler_class] = handler_class(*args, **kwargs)

        handler = self._handler_instances[handler_class]

        for action in handler.actions:
            if action in self._handlers:
                logger.warning(
                    f"Action '{action.value}' already registered to {self._handlers[action].__class__.__name__}, "
                    f"overwriting with {handler_class.__name__}"
                )
            self._handlers[action] = handler
            logger.debug(f"Registered handler {handler_class.__name__} for action '{action.value}'")

    def get_handler(self, action: AIActionType) -> Optional[IntentHandler]:
        """Get the handler for a given action."""
        return self._handlers.get(action)

    def list_handlers(self) -> Dict[str, str]:
        """List all registered handlers and their actions."""
        return {action.value: handler.__class__.__name__ for action, handler in self._handlers.items()}

    def clear(self) -> None:
        """Clear all registered handlers (useful for testing)."""
        self._handlers.clear()
        self._handler_instances.clear()


class AIService:
    """Runs one assistant turn: status check -> classify -> dispatch -> response.

    The service holds no connectivity state of its own. Callers pass the latest
    ConnectionStatus (normally ``ConnectionMonitor.status``) into every call.
    """

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        thresholds: Optional[ThresholdTable] = None,
    ):
        self.client = client or CompletionClient()
        self.thresholds = thresholds or ThresholdTable()
        self.classifier = IntentClassifier(self.client, self.thresholds)
        self.registry = HandlerRegistry()
        self.last_response_time: float = 0.0
        self._in_flight = 0

        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register all available action handlers."""
        from dayplanner.services.chat.handlers import (
            ChainHandler,
            EventHandler,
            GoalHandler,
            PillarHandler,
            SuggestionHandler,
        )
        for handler_class in (EventHandler, GoalHandler, PillarHandler, ChainHandler, SuggestionHandler):
            self.registry.register(handler_class, self.client, self.thresholds)

        logger.info(f"Registered {len(self.registry.list_handlers())} handlers")

    @property
    def is_processing(self) -> bool:
        return self._in_flight > 0

    def _require_connection(self, status: ConnectionStatus) -> None:
        if not status.connected:
            logger.warning(f"[AIService] Refusing request, provider not connected ({status.last_error or 'no probe yet'})")
            raise NotConnectedError(status.last_error)

    async def process_message(
        self,
        message: str,
        context: DayContext,
        status: ConnectionStatus,
        insights: Optional[List[str]] = None,
    ) -> AIResponse:
        """
        Process a user message end to end.

        Args:
            message: Free-text user message
            context: Day snapshot for this request
            status: Latest connectivity status
            insights: Optional pattern-learning insight strings

        Returns:
            AIResponse with ``action_type`` set to the dispatched action

        Raises:
            NotConnectedError: ``status`` is not connected (no model call is made)
            AIError: Any completion-client failure during the turn
        """
        self._require_connection(status)

        self._in_flight += 1
        start = time.monotonic()
        try:
            analysis = await self.classifier.analyze(message, context, insights)

            handler = self.registry.get_handler(analysis.recommended_action)
            if handler is None:
                logger.warning(f"No handler for action: {analysis.recommended_action.value}, using general chat")
                handler = self.registry.get_handler(AIActionType.GENERAL_CHAT)

            handler_context = HandlerContext(
                message=message,
                context=context,
                analysis=analysis,
                insights=list(insights or []),
            )
            response = await handler.handle(handler_context)

            logger.info(
                f"[AIService] {analysis.recommended_action.value} -> {response.outcome.value} "
                f"(confidence={response.confidence:.2f}, items={len(response.created_items or [])}, "
                f"suggestions={len(response.suggestions)})"
            )
            return response
        finally:
            self._in_flight -= 1
            self.last_response_time = time.monotonic() - start

    async def generate_suggestions(self, context: DayContext, status: ConnectionStatus) -> List[Suggestion]:
        """Suggestions for the day as a whole."""
        response = await self.process_message(SUGGEST_FOR_DAY_MESSAGE, context, status)
        return response.suggestions

    async def get_suggestions(self, message: str, context: DayContext, status: ConnectionStatus) -> List[Suggestion]:
        """Run the pipeline for ``message`` and keep only its suggestions."""
        response = await self.process_message(message, context, status)
        return response.suggestions

    async def generate_chains(self, prompt: str, status: ConnectionStatus) -> List[Chain]:
        """
        Ask the model for candidate chains.

        The completion must be a JSON array of chain objects. Blocks carry an
        ``energyLevel`` score (1-10); each chain is laid out from the next
        free slot. Chains without a name or usable blocks are skipped.

        Raises:
            InvalidResponseError: The completion is not a JSON array
        """
        self._require_connection(status)

        self._in_flight += 1
        try:
            raw = await self.client.complete(prompt)
        finally:
            self._in_flight -= 1

        items = parse_json_array(raw)
        if items is None:
            logger.error(f"[AIService] Chain response is not a JSON array: {raw[:200] if raw else 'empty'}")
            raise InvalidResponseError("chain response is not a JSON array")

        start = next_available_slot(datetime.now(settings.user_timezone))
        chains = []
        for item in items:
            if not isinstance(item, dict):
                continue
            name = as_text(item.get("name"))
            blocks = build_blocks(item.get("blocks"), start, max_blocks=None)
            if not name or not blocks:
                continue
            chains.append(Chain(
                name=name,
                blocks=blocks,
                flow_pattern=FlowPattern.WATERFALL,
                emoji=as_text(item.get("emoji")) or "🔗",
            ))

        logger.info(f"[AIService] Generated {len(chains)} chains")
        return chains

    async def process_mind_commands(
        self,
        message: str,
        context: MindEditorContext,
        status: ConnectionStatus,
        insights: Optional[List[str]] = None,
    ) -> MindCommandResponse:
        """
        Turn a goal/pillar editing request into typed mind commands.

        Args:
            message: Free-text editing request
            context: Current goals and pillars
            status: Latest connectivity status
            insights: Optional pattern-learning insight strings

        Raises:
            NotConnectedError: ``status`` is not connected (no model call is made)
            InvalidResponseError: The completion has no ``commands`` list
        """
        self._require_connection(status)

        self._in_flight += 1
        start = time.monotonic()
        try:
            raw = await self.client.complete(mind_command_parser.build_prompt(message, context, insights))
        finally:
            self._in_flight -= 1
            self.last_response_time = time.monotonic() - start

        result = mind_command_parser.parse(raw)
        logger.info(
            f"[AIService] Mind editor -> {len(result.commands)} commands "
            f"({', '.join(command.type for command in result.commands) or 'none'})"
        )
        return result

    async def plain_suggestions(self, message: str, context: DayContext, status: ConnectionStatus) -> AIResponse:
        """Single-call suggestion path without intent classification."""
        self._require_connection(status)

        self._in_flight += 1
        try:
            raw = await self.client.complete(build_plain_prompt(message, context))
        finally:
            self._in_flight -= 1

        parsed = parse_json_object(raw)
        text = as_text(parsed.get("response")) if parsed else None
        if text is None:
            logger.warning(f"[AIService] Plain suggestions unreadable: {raw[:200] if raw else 'empty'}")
            return AIResponse(
                text=plain_text_reply(raw) or clean_json_response(raw or "") or CHAT_FALLBACK_TEXT,
                suggestions=[],
                action_type=None,
                created_items=None,
                confidence=PLAIN_FAILURE_CONFIDENCE,
                outcome=ResponseOutcome.DEGRADED,
            )

        return AIResponse(
            text=text,
            suggestions=parse_suggestions(
                parsed.get("suggestions"),
                next_available_slot(context.current_time),
                PLAIN_SUCCESS_CONFIDENCE,
            ),
            action_type=None,
            created_items=None,
            confidence=PLAIN_SUCCESS_CONFIDENCE,
            outcome=ResponseOutcome.COMPLETED,
        )

    async def run_diagnostics(self) -> str:
        """Probe the provider and, when reachable, time a "Hello" round trip."""
        lines = ["AI Service Diagnostics:"]

        status = await self.client.probe()
        lines.append(f"Connection: {'✅ Connected' if status.connected else '❌ Not Connected'}")
        if not status.connected and status.last_error:
            lines.append(f"Error: {status.last_error}")

        if status.connected:
            now = datetime.now(settings.user_timezone)
            test_context = DayContext(
                date=now.date(),
                current_time=now,
                current_energy=EnergyType.DAYLIGHT,
                preferred_emojis=["🌊"],
                available_time=3600,
            )
            try:
                await self.process_message(DIAGNOSTICS_MESSAGE, test_context, status)
                lines.append("AI Response: ✅ Working")
                lines.append(f"Response Time: {self.last_response_time:.2f}s")
            except Exception as e:
                logger.error(f"[AIService] Diagnostics round trip failed: {e}")
                lines.append(f"AI Response: ❌ {e}")

        return "\n".join(lines) + "\n"

    @staticmethod
    def mock_suggestions(now: Optional[datetime] = None) -> List[Suggestion]:
        """Fixed suggestions for callers that fall back while offline."""
        now = now or datetime.now(settings.user_timezone)
        day = now.replace(minute=0, second=0, microsecond=0)
        return [
            Suggestion(
                title="Morning Coffee & Planning",
                duration=1800,
                suggested_time=day.replace(hour=8),
                energy=EnergyType.SUNRISE,
                emoji="☕",
                explanation="Start your day mindfully",
                confidence=0.9,
                weight=0.9,
                reason="Center yourself before deep work",
            ),
            Suggestion(
                title="Deep Work Session",
                duration=5400,
                suggested_time=day.replace(hour=9),
                energy=EnergyType.SUNRISE,
                emoji="💼",
                explanation="Take advantage of morning focus",
                confidence=0.8,
                weight=0.8,
                reason="Morning focus window",
            ),
        ]

    @staticmethod
    def enhance_event_title(title: str) -> str:
        """Prefix a title with an emoji matching its first keyword."""
        lowered = title.lower()
        for keywords, emoji in _TITLE_EMOJIS:
            if any(keyword in lowered for keyword in keywords):
                return f"{emoji} {title}"
        return title


# Singleton instance - use this for all assistant turns
ai_service = AIService()
