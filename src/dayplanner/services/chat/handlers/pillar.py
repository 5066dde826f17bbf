"""Pillar handler - turns a stated principle or routine into a pillar."""
from dayplanner.models.schemas import AIActionType, AIResponse, PillarItem
from dayplanner.services.chat.handlers.base import HandlerContext, IntentHandler
from dayplanner.services.json_utils import as_text, parse_json_object
from dayplanner.services.pillars import pillar_normalizer


PILLAR_PROMPT = """Create a comprehensive principle pillar from this user request: "{message}"

Context:
{context}
Extracted entities: {entities}
Confidence: {confidence}

GUIDELINES:
- Pillars are guiding principles that steer AI decisions and suggestions
- Populate ALL metadata fields for maximum usefulness
- Values: Core principles this pillar represents (3-5 items)
- Habits: Specific behaviors to encourage (3-5 items)
- Constraints: Boundaries and guardrails (2-4 items)
- Quiet Hours: Time windows to protect (1-3 windows)
- Wisdom: Short, memorable principle or mantra
- Choose frequency that reflects how often this pillar should guide decisions

Respond with ONLY valid JSON in this EXACT format with ALL fields populated:
{{
    "response": "I'll create a comprehensive principle pillar for you",
    "pillar": {{
        "name": "Specific pillar name (max 24 chars)",
        "description": "Detailed description of how this pillar guides decisions and suggestions",
        "type": "principle",
        "frequency": "daily|weekly|monthly|as_needed|3x per week",
        "values": ["Core value 1", "Core value 2", "Core value 3"],
        "habits": ["Specific habit 1", "Specific habit 2", "Specific habit 3"],
        "constraints": ["Important boundary 1", "Important boundary 2"],
        "quietHours": [
            {{
                "startHour": 6,
                "startMinute": 0,
                "endHour": 8,
                "endMinute": 0
            }}
        ],
        "wisdom": "Short, memorable principle or mantra",
        "emoji": "🏛️"
    }},
    "confidence": {confidence}
}}

REQUIREMENTS:
- Fill ALL fields with meaningful content
- Use 24-hour clock for quiet hours
- Keep arrays focused (3-5 items each)
- Make wisdom text memorable and actionable
- Ensure description explains how this guides AI decisions"""


class PillarHandler(IntentHandler):
    """Handle create_pillar - build a fully populated pillar."""

    actions = [AIActionType.CREATE_PILLAR]
    item_label = "pillar"
    detail_hint = "the principle itself and how often it should guide your day"
    fallback_text = "I'll help you create that pillar"

    def build_prompt(self, context: HandlerContext) -> str:
        return PILLAR_PROMPT.format(
            message=context.message,
            context=context.context.summary(),
            entities=context.entities,
            confidence=context.confidence,
        )

    def parse(self, raw: str, context: HandlerContext) -> AIResponse:
        parsed = parse_json_object(raw)
        pillar_data = parsed.get("pillar") if parsed else None
        if not isinstance(pillar_data, dict):
            fallback = pillar_normalizer.fallback()
            return self._degraded_response(
                context,
                raw,
                created_items=[PillarItem(title=fallback.name, confidence=context.confidence, payload=fallback)],
            )

        pillar = pillar_normalizer.from_model(pillar_data)
        if pillar_normalizer.validate(pillar).needs_enhancement:
            pillar = pillar_normalizer.enhance(pillar)

        text = as_text(parsed.get("response")) or f"I'll create the {pillar.name} pillar for you"
        return self._success_response(
            context,
            text,
            created_items=[PillarItem(title=pillar.name, confidence=context.confidence, payload=pillar)],
        )
