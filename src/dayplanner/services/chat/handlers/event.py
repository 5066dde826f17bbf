"""Event handler - turns a scheduling request into a time block."""
from datetime import datetime

from dayplanner.models.domain import EnergyType, TimeBlock
from dayplanner.models.schemas import AIActionType, AIResponse, EventItem, Suggestion
from dayplanner.services.chat.handlers.base import (
    HandlerContext,
    IntentHandler,
    parse_link_hints,
    parse_uuid,
)
from dayplanner.services.json_utils import as_number, as_text, parse_json_object
from dayplanner.services.time_parsing import (
    clamp,
    next_available_slot,
    parse_iso_datetime,
    round_to_slot,
    time_extractor,
)


MAX_TITLE = 30
MIN_DURATION = 900
MAX_DURATION = 14400
DEFAULT_DURATION = 1800

EVENT_PROMPT = """Create a specific time block/event from this user request: "{message}"

Context:
{context}
Extracted entities: {entities}
Confidence: {confidence}

Analyze the message carefully and create a complete event with:
1. Specific, clear title (max 30 chars)
2. Smart start time based on context and available slots
3. Realistic duration in seconds (900 - 14400)
4. Energy level matching the activity type
5. Activity-appropriate emoji
6. Helpful explanation of timing choice

Energy type mapping:
- High-focus work, exercise, important meetings: "sunrise"
- Regular work, meetings, active tasks: "daylight"
- Rest, breaks, casual activities, wind-down: "moonlight"

Time extraction from message:
- Look for "at 3pm", "tomorrow", "in 1 hour", "now", etc.
- Default to next available slot if no time specified
- Round to 15-minute intervals

Respond with ONLY valid JSON in this EXACT format with ALL fields properly filled:
{{
    "response": "I'll create {activity} for you",
    "event": {{
        "title": "Specific activity title",
        "startTime": "{example_start}",
        "duration": 1800,
        "energy": "sunrise",
        "emoji": "💪",
        "explanation": "Scheduled for optimal timing based on your context and available time"
    }},
    "confidence": {confidence}
}}

Choose the best available time slot and energy level for this activity."""


class EventHandler(IntentHandler):
    """Handle create_event - schedule a single time block."""

    actions = [AIActionType.CREATE_EVENT]
    item_label = "event"
    detail_hint = "what you'd like to do and roughly when"
    fallback_text = "I'll help you schedule that activity"

    def build_prompt(self, context: HandlerContext) -> str:
        return EVENT_PROMPT.format(
            message=context.message,
            context=context.context.summary(),
            entities=context.entities,
            confidence=context.confidence,
            activity=context.entity("activity") or "this activity",
            example_start=next_available_slot(context.now).isoformat(),
        )

    def resolve_start(self, event: dict, context: HandlerContext) -> datetime:
        """Explicit time in the message wins, then the model's, then the next slot."""
        explicit = time_extractor.extract_start_time(context.message, context.now)
        if explicit is not None:
            return explicit

        entity_time = context.entity("time")
        if entity_time:
            from_entity = time_extractor.extract_start_time(entity_time, context.now)
            if from_entity is not None:
                return from_entity

        from_model = parse_iso_datetime(event.get("startTime"), context.now)
        if from_model is not None:
            return round_to_slot(from_model)
        return next_available_slot(context.now)

    def resolve_duration(self, event: dict, context: HandlerContext) -> float:
        """Explicit duration in the message wins, then the model's, clamped to 15min-4h."""
        duration = time_extractor.extract_duration(context.message)
        if duration is None:
            duration = as_number(event.get("duration"))
        if duration is None:
            entity_duration = context.entity("duration")
            duration = time_extractor.extract_duration(entity_duration) if entity_duration else None
        if duration is None:
            duration = DEFAULT_DURATION
        return clamp(duration, MIN_DURATION, MAX_DURATION)

    def resolve_energy(self, event: dict, context: HandlerContext) -> EnergyType:
        """Keyword mapping on the request first, then the model's energy, then daylight."""
        cue_text = " ".join(filter(None, [context.message, context.entity("activity")]))
        energy = time_extractor.infer_energy(cue_text)
        if energy is not None:
            return energy
        return EnergyType.parse(event.get("energy"))

    def parse(self, raw: str, context: HandlerContext) -> AIResponse:
        parsed = parse_json_object(raw)
        event = parsed.get("event") if parsed else None
        if not isinstance(event, dict):
            return self._degraded_response(context, raw)

        title = (as_text(event.get("title")) or context.entity("activity") or "New Activity")[:MAX_TITLE].strip()
        explanation = as_text(event.get("explanation")) or "AI-generated activity"
        start = self.resolve_start(event, context)
        duration = self.resolve_duration(event, context)
        energy = self.resolve_energy(event, context)
        emoji = as_text(event.get("emoji")) or "📋"

        goal_id = parse_uuid(event.get("relatedGoalId"))
        goal_title = as_text(event.get("relatedGoalTitle"))
        pillar_id = parse_uuid(event.get("relatedPillarId"))
        pillar_title = as_text(event.get("relatedPillarTitle"))
        weight = as_number(event.get("weight"))

        suggestion = Suggestion(
            title=title,
            duration=duration,
            suggested_time=start,
            energy=energy,
            emoji=emoji,
            explanation=explanation,
            confidence=context.confidence,
            weight=clamp(weight, 0.0, 1.0) if weight is not None else context.confidence,
            related_goal_id=goal_id,
            related_goal_title=goal_title,
            related_pillar_id=pillar_id,
            related_pillar_title=pillar_title,
            reason=as_text(event.get("reason")) or explanation,
            link_hints=parse_link_hints(event.get("linkHints")),
        )
        block = TimeBlock(
            title=title,
            start_time=start,
            duration=duration,
            energy=energy,
            emoji=emoji,
            explanation=explanation,
            related_goal_id=goal_id,
            related_goal_title=goal_title,
            related_pillar_id=pillar_id,
            related_pillar_title=pillar_title,
        )

        text = as_text(parsed.get("response")) or f"I'll create {title} for you"
        return self._success_response(
            context,
            text,
            suggestions=[suggestion],
            created_items=[EventItem(title=title, confidence=context.confidence, payload=block)],
        )
