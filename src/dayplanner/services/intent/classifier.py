"""Intent Classifier - first stage that decides what to do with a user message."""
import json
from typing import Any, Dict, List, Optional

from dayplanner.core.logging import logger
from dayplanner.models.schemas import (
    AIActionType,
    DayContext,
    MessageActionAnalysis,
    UrgencyLevel,
)
from dayplanner.services.intent.thresholds import ThresholdTable
from dayplanner.services.json_utils import as_number, parse_json_object
from dayplanner.services.llm import CompletionClient


PATTERN_PLACEHOLDER = "Building pattern intelligence. First few interactions help establish preferences."

INTENT_PROMPT = """SMART INTENT ANALYSIS: Analyze this user message to determine the BEST action with HIGH ACCURACY: "{message}"

Context:
{context}

User Pattern Intelligence:
{insights}

SMART ANALYSIS GUIDELINES:
1. SCHEDULING INDICATORS: "schedule", "book", "add", "create", "plan", "set up", "at 3pm", "tomorrow", "in 1 hour"
2. GOAL INDICATORS: "want to achieve", "goal", "objective", "hope to", "work towards", "long-term"
3. PILLAR INDICATORS: "routine", "habit", "principle", "always", "never", "believe in", "recurring"
4. CHAIN INDICATORS: "sequence", "flow", "then", "after that", "routine", "steps"
5. SUGGESTION INDICATORS: "what should", "ideas", "suggestions", "what to do", "recommend"

CONFIDENCE BOOST FACTORS:
- Specific time mentioned (+0.2)
- Duration mentioned (+0.15)
- Clear action verb (+0.1)
- Matches user patterns (+0.1)
- Urgency indicators (+0.1)

Respond with ONLY valid JSON in this EXACT format:
{{
    "intent": "Precise description of user intent",
    "confidence": 0.85,
    "recommendedAction": "create_event",
    "extractedEntities": {{
        "activity": "specific activity name",
        "time": "extracted time or null",
        "duration": "extracted duration or estimated",
        "importance": "high/medium/low"
    }},
    "urgency": "low|medium|high|immediate",
    "contextAlignment": 0.9
}}

Action thresholds:
{thresholds}

BE BOLD with confidence when indicators are clear. Users want direct action, not constant suggestions."""

_REQUIRED_FIELDS = (
    "intent",
    "confidence",
    "recommendedAction",
    "extractedEntities",
    "urgency",
    "contextAlignment",
)


def _as_unit_float(value: Any) -> Optional[float]:
    number = as_number(value)
    if number is None:
        return None
    return max(0.0, min(1.0, number))


def _entity_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


class IntentClassifier:
    """Classifies a message into one of the six assistant actions."""

    def __init__(self, client: CompletionClient, thresholds: Optional[ThresholdTable] = None):
        self.client = client
        self.thresholds = thresholds or ThresholdTable()

    def build_prompt(
        self,
        message: str,
        context: DayContext,
        insights: Optional[List[str]] = None,
    ) -> str:
        insight_lines = [line.strip() for line in (insights or []) if line and line.strip()]
        insights_text = "\n".join(f"- {line}" for line in insight_lines) or PATTERN_PLACEHOLDER
        return INTENT_PROMPT.format(
            message=message,
            context=context.summary(),
            insights=insights_text,
            thresholds=self.thresholds.describe(),
        )

    async def analyze(
        self,
        message: str,
        context: DayContext,
        insights: Optional[List[str]] = None,
    ) -> MessageActionAnalysis:
        """
        Classify a message.

        Args:
            message: Current user message
            context: Day snapshot for this request
            insights: Optional pattern-learning insight strings

        Returns:
            MessageActionAnalysis; the default analysis when the output is unusable
        """
        prompt = self.build_prompt(message, context, insights)
        response = await self.client.complete(prompt)
        analysis = self.parse(response)
        logger.info(
            f"Intent routing: {message[:50]}... => {analysis.recommended_action.value} "
            f"(confidence={analysis.confidence:.2f})"
        )
        return analysis

    def parse(self, response: str) -> MessageActionAnalysis:
        """Parse classifier output, falling back to general chat on any problem."""
        parsed = parse_json_object(response)
        if parsed is None:
            logger.warning(f"Intent routing JSON parse error, response was: {response[:200] if response else 'empty'}")
            return MessageActionAnalysis.fallback()

        missing = [name for name in _REQUIRED_FIELDS if name not in parsed]
        if missing:
            logger.warning(f"Intent routing missing fields: {', '.join(missing)}")
            return MessageActionAnalysis.fallback()

        intent = parsed["intent"]
        confidence = _as_unit_float(parsed["confidence"])
        action = AIActionType.parse(parsed["recommendedAction"])
        entities = parsed["extractedEntities"]
        alignment = _as_unit_float(parsed["contextAlignment"])
        urgency_raw = parsed["urgency"]

        try:
            urgency = UrgencyLevel(urgency_raw.strip().lower()) if isinstance(urgency_raw, str) else None
        except ValueError:
            urgency = None

        if (
            not isinstance(intent, str)
            or confidence is None
            or action is None
            or not isinstance(entities, dict)
            or urgency is None
            or alignment is None
        ):
            logger.warning(f"Intent routing invalid field values: {str(parsed)[:200]}")
            return MessageActionAnalysis.fallback()

        extracted: Dict[str, str] = {}
        for key, value in entities.items():
            text = _entity_text(value)
            if text is not None:
                extracted[str(key)] = text

        return MessageActionAnalysis(
            intent=intent,
            confidence=confidence,
            recommended_action=action,
            extracted_entities=extracted,
            urgency=urgency,
            context_alignment=alignment,
        )
