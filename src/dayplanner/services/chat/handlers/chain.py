"""Chain handler - turns a described sequence into linked time blocks."""
from datetime import datetime
from typing import Any, List, Optional

from dayplanner.models.domain import Chain, EnergyType, FlowPattern, TimeBlock
from dayplanner.models.schemas import AIActionType, AIResponse, ChainItem
from dayplanner.services.chat.handlers.base import HandlerContext, IntentHandler
from dayplanner.services.json_utils import as_number, as_text, parse_json_object
from dayplanner.services.time_parsing import clamp, next_available_slot, time_extractor


MAX_NAME = 25
MAX_BLOCKS = 4
MIN_BLOCK_DURATION = 900
MAX_BLOCK_DURATION = 7200
DEFAULT_BLOCK_DURATION = 1800
DEFAULT_BLOCK_EMOJI = "🌊"

FALLBACK_NAME = "Activity Chain"

CHAIN_PROMPT = """Create a comprehensive activity chain from this user request: "{message}"

Context:
{context}
Extracted entities: {entities}
Confidence: {confidence}

Analyze the message and create a logical sequence with:
1. Meaningful chain name (max 25 chars)
2. 2-4 related activities that flow together
3. Realistic durations in seconds (900 - 7200 per activity)
4. Appropriate energy progression
5. Activity-specific emojis
6. Flow pattern that matches the activities

Energy levels:
- "sunrise": High energy, sharp focus
- "daylight": Steady energy, sustained work
- "moonlight": Low energy, gentle activities

Flow patterns:
- waterfall: Sequential building (prep -> work -> review)
- spiral: Circular building (practice -> apply -> reflect -> practice)
- wave: Rhythm with breaks (work -> break -> work -> break)
- ripple: Expanding impact (small -> medium -> large)

Respond with ONLY valid JSON in this EXACT format with ALL fields populated:
{{
    "response": "I'll create a chain for {chain_name}",
    "chain": {{
        "name": "Descriptive chain name",
        "blocks": [
            {{
                "title": "Specific activity title",
                "duration": 1800,
                "energy": "sunrise",
                "emoji": "🌅"
            }},
            {{
                "title": "Next logical activity",
                "duration": 3600,
                "energy": "daylight",
                "emoji": "💼"
            }}
        ],
        "flowPattern": "waterfall",
        "emoji": "🔗"
    }},
    "confidence": {confidence}
}}

Make activities flow logically and choose appropriate emojis for each block."""


def energy_from_level(level: float) -> EnergyType:
    """Map a 1-10 energy score: 8+ sunrise, 5-7 daylight, below 5 moonlight."""
    if level >= 8:
        return EnergyType.SUNRISE
    if level >= 5:
        return EnergyType.DAYLIGHT
    return EnergyType.MOONLIGHT


def parse_flow_pattern(value: Any) -> FlowPattern:
    if isinstance(value, str):
        try:
            return FlowPattern(value.strip().lower())
        except ValueError:
            pass
    return FlowPattern.WATERFALL


def build_blocks(blocks_data: Any, start: datetime, max_blocks: Optional[int] = MAX_BLOCKS) -> List[TimeBlock]:
    """
    Build back-to-back time blocks from a list of block payloads.

    Missing fields are defaulted and durations clamped to 15min-2h. Energy may
    be given as a name or as a numeric ``energyLevel``.
    """
    if not isinstance(blocks_data, list):
        return []

    if max_blocks:
        blocks_data = blocks_data[:max_blocks]

    blocks = []
    cursor = start
    for block_data in blocks_data:
        if not isinstance(block_data, dict):
            continue
        duration = as_number(block_data.get("duration"))
        level = as_number(block_data.get("energyLevel"))
        if "energy" in block_data:
            energy = EnergyType.parse(block_data.get("energy"))
        elif level is not None:
            energy = energy_from_level(level)
        else:
            energy = EnergyType.DAYLIGHT

        block = TimeBlock(
            title=as_text(block_data.get("title")) or "Activity",
            start_time=cursor,
            duration=clamp(duration if duration is not None else DEFAULT_BLOCK_DURATION,
                           MIN_BLOCK_DURATION, MAX_BLOCK_DURATION),
            energy=energy,
            emoji=as_text(block_data.get("emoji")) or DEFAULT_BLOCK_EMOJI,
        )
        blocks.append(block)
        cursor = block.end_time
    return blocks


def fallback_chain(start: datetime) -> Chain:
    """Single-block chain attached when the model output cannot be read."""
    return Chain(
        name=FALLBACK_NAME,
        blocks=[TimeBlock(
            title="Activity",
            start_time=start,
            duration=DEFAULT_BLOCK_DURATION,
            energy=EnergyType.DAYLIGHT,
            emoji=DEFAULT_BLOCK_EMOJI,
        )],
        flow_pattern=FlowPattern.WATERFALL,
        emoji="🔗",
    )


class ChainHandler(IntentHandler):
    """Handle create_chain - sequence 2-4 related blocks."""

    actions = [AIActionType.CREATE_CHAIN]
    item_label = "chain"
    detail_hint = "the activities you want to link and their order"
    fallback_text = "I'll help you create that chain"

    def build_prompt(self, context: HandlerContext) -> str:
        return CHAIN_PROMPT.format(
            message=context.message,
            context=context.context.summary(),
            entities=context.entities,
            confidence=context.confidence,
            chain_name=context.entity("chain_name", "activity") or "these activities",
        )

    def chain_start(self, context: HandlerContext) -> datetime:
        return time_extractor.extract_start_time(context.message, context.now) or next_available_slot(context.now)

    def parse(self, raw: str, context: HandlerContext) -> AIResponse:
        start = self.chain_start(context)
        parsed = parse_json_object(raw)
        chain_data = parsed.get("chain") if parsed else None
        if not isinstance(chain_data, dict):
            fallback = fallback_chain(start)
            return self._degraded_response(
                context,
                raw,
                created_items=[ChainItem(title=fallback.name, confidence=context.confidence, payload=fallback)],
            )

        blocks = build_blocks(chain_data.get("blocks"), start)
        if not blocks:
            blocks = fallback_chain(start).blocks

        name = (as_text(chain_data.get("name")) or "New Chain")[:MAX_NAME].strip()
        chain = Chain(
            name=name,
            blocks=blocks,
            flow_pattern=parse_flow_pattern(chain_data.get("flowPattern")),
            emoji=as_text(chain_data.get("emoji")) or "🔗",
        )

        text = as_text(parsed.get("response")) or f"I'll create the {name} chain for you"
        return self._success_response(
            context,
            text,
            created_items=[ChainItem(title=name, confidence=context.confidence, payload=chain)],
        )
