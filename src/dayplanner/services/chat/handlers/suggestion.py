"""Suggestion handler - activity ideas and general conversation."""
from datetime import datetime, timedelta
from typing import Any, List, Optional

from dayplanner.models.domain import EnergyType
from dayplanner.models.schemas import AIActionType, AIResponse, DayContext, Suggestion
from dayplanner.services.chat.handlers.base import (
    HandlerContext,
    IntentHandler,
    parse_link_hints,
    parse_uuid,
)
from dayplanner.services.json_utils import as_number, as_text, parse_json_object
from dayplanner.services.time_parsing import clamp, next_available_slot


MAX_SUGGESTIONS = 2
DEFAULT_MINUTES = 30

# Wire durations are minutes; values above this are taken as seconds
_MAX_WIRE_MINUTES = 240

CHAT_FALLBACK_TEXT = "I'm here to help you plan your day. Could you tell me a bit more about what you need?"

SUGGESTION_RULES = """IMPORTANT: Always align suggestions with the user's core principles listed above. Consider:
- Weather conditions for indoor/outdoor activities
- User's guiding principles when making any suggestion
- How actionable pillars might need time slots
- The user's current energy and mood state
- If you mention a goal or pillar, include both its ID (if available) and its title.
- When an ID is unknown, set it to null, include the best title you have, and add a "linkHints" array with 1-3 short unique strings we can fuzzy-match locally (nicknames, goal keywords, pillar traits).
- Populate the "reason" with a short (<80 characters) justification tied to the current context.
- Populate "weight" with a 0-1 priority score (mirror confidence when unsure)."""

SUGGESTION_FORMAT = """{{
    "response": "Your helpful response text that acknowledges their principles",
    "suggestions": [
        {{
            "title": "Activity name",
            "explanation": "Brief reason why this aligns with their principles and current context",
            "duration": 60,
            "energy": "sunrise|daylight|moonlight",
            "emoji": "📋",
            "confidence": {confidence},
            "weight": {confidence},
            "reason": "Concise alignment statement",
            "relatedGoalId": "uuid-or-null",
            "relatedGoalTitle": "Goal name if known or null",
            "relatedPillarId": "uuid-or-null",
            "relatedPillarTitle": "Pillar name if known or null",
            "linkHints": ["concise keyword"]
        }}
    ]
}}"""

SUGGESTION_PROMPT = """You are a helpful day planning assistant. The user is asking for suggestions: "{message}"

Current context:
{context}
- Intent confidence: {confidence}
- Context alignment: {alignment}

{rules}
- The confidence level - adjust suggestion quality accordingly

Please provide a helpful response and exactly 2 activity suggestions ("duration" in minutes). Respond with ONLY valid JSON in this exact format:
{format}

Keep suggestions principle-aligned, realistic and personalized."""

CHAT_PROMPT = """Respond to this user message in a helpful, encouraging way: "{message}"

Context:
{context}

Provide a thoughtful response and suggest 1-2 activities if appropriate ("duration" in minutes), but keep confidence low since this is general chat.

Respond with ONLY valid JSON in this exact format:
{format}"""

PLAIN_PROMPT = """You are a helpful day planning assistant. The user is planning their day and needs suggestions.

Current context:
{context}

User message: "{message}"

{rules}

Please provide a helpful response and exactly 2 activity suggestions ("duration" in minutes). Respond with ONLY valid JSON in this exact format:
{format}

Keep suggestions principle-aligned, realistic and personalized."""


def wire_duration_seconds(value: Any) -> float:
    """Convert a suggestion's wire duration (minutes) to seconds."""
    number = as_number(value)
    if number is None or number <= 0:
        return DEFAULT_MINUTES * 60
    if number > _MAX_WIRE_MINUTES:
        return number
    return number * 60


def parse_suggestions(
    items: Any,
    start: datetime,
    default_confidence: float,
    limit: int = MAX_SUGGESTIONS,
) -> List[Suggestion]:
    """
    Build suggestions from the model's ``suggestions`` array.

    Entries without a title are skipped and at most ``limit`` are kept.
    Each suggestion is placed right after the previous one, starting at ``start``.
    """
    if not isinstance(items, list):
        return []

    suggestions = []
    cursor = start
    for item in items:
        if len(suggestions) >= limit:
            break
        if not isinstance(item, dict):
            continue
        title = as_text(item.get("title"))
        if not title:
            continue

        explanation = as_text(item.get("explanation")) or ""
        confidence = as_number(item.get("confidence"))
        confidence = clamp(confidence, 0.0, 1.0) if confidence is not None else default_confidence
        weight = as_number(item.get("weight"))

        suggestion = Suggestion(
            title=title,
            duration=wire_duration_seconds(item.get("duration")),
            suggested_time=cursor,
            energy=EnergyType.parse(item.get("energy")),
            emoji=as_text(item.get("emoji")) or "💡",
            explanation=explanation,
            confidence=confidence,
            weight=clamp(weight, 0.0, 1.0) if weight is not None else confidence,
            related_goal_id=parse_uuid(item.get("relatedGoalId")),
            related_goal_title=as_text(item.get("relatedGoalTitle")),
            related_pillar_id=parse_uuid(item.get("relatedPillarId")),
            related_pillar_title=as_text(item.get("relatedPillarTitle")),
            reason=as_text(item.get("reason")) or explanation or None,
            link_hints=parse_link_hints(item.get("linkHints")),
        )
        suggestions.append(suggestion)
        cursor = cursor + timedelta(seconds=suggestion.duration)
    return suggestions


def plain_text_reply(raw: str) -> Optional[str]:
    """Model prose without any JSON in it, usable as a chat reply."""
    text = (raw or "").replace("```json", "").replace("```", "").strip()
    if not text or "{" in text or "[" in text:
        return None
    return text


def build_plain_prompt(message: str, context: DayContext) -> str:
    return PLAIN_PROMPT.format(
        message=message,
        context=context.summary(),
        rules=SUGGESTION_RULES,
        format=SUGGESTION_FORMAT.format(confidence=0.8),
    )


class SuggestionHandler(IntentHandler):
    """Handle suggest_activities and general_chat - reply plus up to two ideas."""

    actions = [AIActionType.SUGGEST_ACTIVITIES, AIActionType.GENERAL_CHAT]
    item_label = "suggestion"
    detail_hint = "what kind of activity you're in the mood for"
    fallback_text = CHAT_FALLBACK_TEXT

    def build_prompt(self, context: HandlerContext) -> str:
        if context.action == AIActionType.GENERAL_CHAT:
            return CHAT_PROMPT.format(
                message=context.message,
                context=context.context.summary(),
                format=SUGGESTION_FORMAT.format(confidence=min(context.confidence, 0.4)),
            )
        return SUGGESTION_PROMPT.format(
            message=context.message,
            context=context.context.summary(),
            confidence=context.confidence,
            alignment=context.analysis.context_alignment,
            rules=SUGGESTION_RULES,
            format=SUGGESTION_FORMAT.format(confidence=context.confidence),
        )

    def guidance_text(self, context: HandlerContext) -> str:
        return (
            "Here are a couple of ideas to start with. "
            f"Tell me {self.detail_hint} and I can tailor them."
        )

    def parse(self, raw: str, context: HandlerContext) -> AIResponse:
        parsed = parse_json_object(raw)
        text = as_text(parsed.get("response")) if parsed else None
        if text is None:
            return self._degraded_response(context, raw, text=plain_text_reply(raw))

        suggestions = parse_suggestions(
            parsed.get("suggestions"),
            next_available_slot(context.now),
            context.confidence,
        )
        return self._success_response(context, text, suggestions=suggestions)
