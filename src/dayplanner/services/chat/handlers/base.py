"""Base classes for action handlers."""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dayplanner.core.logging import logger
from dayplanner.models.schemas import (
    AIActionType,
    AIResponse,
    DayContext,
    MessageActionAnalysis,
    ResponseOutcome,
    Suggestion,
)
from dayplanner.services.intent.thresholds import ThresholdTable
from dayplanner.services.llm import CompletionClient


@dataclass
class HandlerContext:
    """Context passed to action handlers."""
    message: str
    context: DayContext
    analysis: MessageActionAnalysis
    insights: List[str] = field(default_factory=list)

    @property
    def action(self) -> AIActionType:
        return self.analysis.recommended_action

    @property
    def confidence(self) -> float:
        return self.analysis.confidence

    @property
    def entities(self) -> Dict[str, str]:
        return self.analysis.extracted_entities

    @property
    def now(self):
        return self.context.current_time

    def entity(self, *keys: str) -> Optional[str]:
        """First non-empty extracted entity among ``keys``."""
        for key in keys:
            value = self.entities.get(key)
            if value and value.strip() and value.strip().lower() not in ("null", "none"):
                return value.strip()
        return None


def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    """UUID from a model string; anything else (including "uuid-or-null") is None."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


def parse_link_hints(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    hints = [hint.strip() for hint in value if isinstance(hint, str) and hint.strip()]
    return hints or None


class IntentHandler(ABC):
    """Abstract base class for action handlers.

    Each handler builds one prompt for its action, makes a single completion
    round-trip and turns the reply into an AIResponse. Parsing never raises:
    unreadable output becomes a degraded response. Completion errors propagate.
    """

    # Actions this handler can process
    actions: List[AIActionType] = []

    # Noun used in guidance text ("event", "goal", ...)
    item_label: str = "item"

    # What to ask for when confidence is too low to act
    detail_hint: str = "a bit more detail"

    # Acknowledgement used when the model output cannot be read
    fallback_text: str = "I'll help you with that"

    def __init__(self, client: CompletionClient, thresholds: Optional[ThresholdTable] = None):
        self.client = client
        self.thresholds = thresholds or ThresholdTable()

    async def handle(self, context: HandlerContext) -> AIResponse:
        """
        Handle the action and return a response.

        Args:
            context: HandlerContext with message, day snapshot and analysis

        Returns:
            AIResponse tagged with the dispatched action
        """
        prompt = self.build_prompt(context)
        raw = await self.client.complete(prompt)
        return self.parse(raw, context)

    @abstractmethod
    def build_prompt(self, context: HandlerContext) -> str:
        """Prompt sent to the completion client."""

    @abstractmethod
    def parse(self, raw: str, context: HandlerContext) -> AIResponse:
        """Turn the completion into a response. Must not raise."""

    def can_handle(self, action: AIActionType) -> bool:
        """Check if this handler can process the given action."""
        return action in self.actions

    def is_confident(self, context: HandlerContext) -> bool:
        """Whether the analysis clears the threshold for the dispatched action."""
        return self.thresholds.allows(context.action, context.confidence)

    def guidance_text(self, context: HandlerContext) -> str:
        threshold = self.thresholds.for_action(context.action)
        return (
            f"I'm not confident enough to create this {self.item_label} yet "
            f"({context.confidence:.0%} vs {threshold:.0%} needed). "
            f"Could you add {self.detail_hint}?"
        )

    def _degraded_response(
        self,
        context: HandlerContext,
        raw: str,
        created_items: Optional[list] = None,
        text: Optional[str] = None,
    ) -> AIResponse:
        """Create the response used when the model output is unreadable."""
        logger.warning(
            f"[{self.__class__.__name__}] Could not parse completion, degrading: "
            f"{raw[:200] if raw else 'empty'}"
        )
        return AIResponse(
            text=text or self.fallback_text,
            suggestions=[],
            action_type=context.action,
            created_items=created_items if created_items and self.is_confident(context) else None,
            confidence=context.confidence,
            outcome=ResponseOutcome.DEGRADED,
        )

    def _success_response(
        self,
        context: HandlerContext,
        text: str,
        suggestions: Optional[List[Suggestion]] = None,
        created_items: Optional[list] = None,
    ) -> AIResponse:
        """Create the response for a parsed completion, gated on confidence."""
        if self.is_confident(context):
            return AIResponse(
                text=text,
                suggestions=suggestions or [],
                action_type=context.action,
                created_items=created_items or None,
                confidence=context.confidence,
                outcome=ResponseOutcome.COMPLETED,
            )

        logger.info(
            f"[{self.__class__.__name__}] Confidence {context.confidence:.2f} below "
            f"{self.thresholds.for_action(context.action):.2f} for {context.action.value}, withholding items"
        )
        return AIResponse(
            text=self.guidance_text(context),
            suggestions=suggestions or [],
            action_type=context.action,
            created_items=None,
            confidence=context.confidence,
            outcome=ResponseOutcome.NEEDS_DETAIL,
        )
