"""
Pillar normalisation for model-generated pillar payloads.

Sanitises every field to the limits the planner expects, scores how complete
the result is and fills gaps with heuristic defaults keyed off the pillar name.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from dayplanner.core.logging import logger
from dayplanner.models.domain import FrequencyKind, Pillar, PillarFrequency, PillarType, TimeWindow
from dayplanner.services.json_utils import as_number


DEFAULT_NAME = "New Pillar"
DEFAULT_DESCRIPTION = "AI-created pillar"
DEFAULT_EMOJI = "🏛️"

MAX_NAME = 24
MAX_DESCRIPTION = 200
MAX_ITEM = 50
MAX_WISDOM = 100
MAX_VALUES = 5
MAX_HABITS = 5
MAX_CONSTRAINTS = 4
MAX_QUIET_WINDOWS = 3

ENHANCE_BELOW = 0.8

_TIME_STRING_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_COUNT_FREQUENCY_RE = re.compile(r"^\s*(\d+)\s*x?\s*(?:times\s+)?per\s+(week|month)\b")

# Keyword families checked against the lower-cased pillar name, in order
_THEMES = (
    (("health", "exercise"), {
        "values": ["Vitality", "Discipline", "Well-being"],
        "habits": ["Daily movement", "Proper nutrition", "Adequate sleep"],
        "constraints": ["No intense workouts after 9pm", "Listen to body signals", "Rest when needed"],
        "wisdom": "Strong body, clear mind.",
    }),
    (("work", "career"), {
        "values": ["Excellence", "Growth", "Impact"],
        "habits": ["Deep work sessions", "Regular breaks", "Skill development"],
        "constraints": ["No work after 6pm", "Protect deep work time", "Limit meetings"],
        "wisdom": "Excellence is a habit, not an accident.",
    }),
    (("family", "relationship"), {
        "values": ["Connection", "Love", "Support"],
        "habits": ["Quality time", "Active listening", "Regular check-ins"],
        "constraints": ["No devices during family time", "Be fully present", "Respect boundaries"],
        "wisdom": "Love is the foundation of everything.",
    }),
    (("learning", "education"), {
        "values": ["Curiosity", "Growth", "Knowledge"],
        "habits": ["Daily reading", "Practice sessions", "Reflection time"],
        "constraints": ["Focus on one topic at a time", "Apply learning immediately", "Take breaks"],
        "wisdom": "Knowledge is power, but wisdom is the key.",
    }),
)

_DEFAULT_THEME = {
    "values": ["Integrity", "Purpose", "Balance"],
    "habits": ["Morning routine", "Evening reflection", "Weekly review"],
    "constraints": ["Maintain balance", "Respect limits", "Prioritize well-being"],
    "wisdom": "Live with intention and purpose.",
}


@dataclass
class PillarValidation:
    """Outcome of checking a pillar for missing metadata."""
    is_valid: bool
    completeness: float  # 0.0 to 1.0
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @property
    def completeness_percentage(self) -> int:
        return int(self.completeness * 100)

    @property
    def needs_enhancement(self) -> bool:
        return self.completeness < ENHANCE_BELOW


def _clean_text(value: Any, limit: int) -> Optional[str]:
    if not isinstance(value, str):
        return None
    cleaned = value.strip().replace("\n", " ")[:limit].strip()
    return cleaned or None


def _clean_list(value: Any, max_items: int) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return [item[:MAX_ITEM] for item in items[:max_items]]


def _clamp_int(value: Any, low: int, high: int) -> Optional[int]:
    number = as_number(value)
    if number is None:
        return None
    return max(low, min(high, int(number)))


def _parse_clock(value: Any) -> Optional[Tuple[int, int]]:
    if not isinstance(value, str):
        return None
    match = _TIME_STRING_RE.match(value)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def _theme_for(name: str) -> Dict[str, Any]:
    lowered = name.lower()
    for keywords, theme in _THEMES:
        if any(keyword in lowered for keyword in keywords):
            return theme
    return _DEFAULT_THEME


class PillarNormalizer:
    """Builds valid Pillar objects out of loosely-shaped model output."""

    def parse_frequency(self, value: Any) -> PillarFrequency:
        """
        Parse a frequency string.

        Accepts daily, weekly, monthly, as_needed / "as needed" and counted
        forms like "3x per week". Anything else is weekly.
        """
        if not isinstance(value, str):
            return PillarFrequency()

        lowered = value.strip().lower()
        if lowered == "daily":
            return PillarFrequency(kind=FrequencyKind.DAILY)
        if lowered == "weekly":
            return PillarFrequency(kind=FrequencyKind.WEEKLY)
        if lowered == "monthly":
            return PillarFrequency(kind=FrequencyKind.MONTHLY)
        if lowered in ("as_needed", "as needed", "as-needed"):
            return PillarFrequency(kind=FrequencyKind.AS_NEEDED)

        match = _COUNT_FREQUENCY_RE.match(lowered)
        if match:
            count = max(1, int(match.group(1)))
            kind = FrequencyKind.WEEKLY if match.group(2) == "week" else FrequencyKind.MONTHLY
            return PillarFrequency(kind=kind, count=count)

        return PillarFrequency()

    def parse_type(self, value: Any) -> PillarType:
        if isinstance(value, str) and value.strip().lower() == PillarType.ACTIONABLE.value:
            return PillarType.ACTIONABLE
        return PillarType.PRINCIPLE

    def parse_time_window(self, data: Any) -> Optional[TimeWindow]:
        """Read one quiet-hours window in either the numeric or "HH:MM" shape."""
        if not isinstance(data, dict):
            return None

        numeric = [
            _clamp_int(data.get("startHour"), 0, 23),
            _clamp_int(data.get("startMinute"), 0, 59),
            _clamp_int(data.get("endHour"), 0, 23),
            _clamp_int(data.get("endMinute"), 0, 59),
        ]
        if all(part is not None for part in numeric):
            start_hour, start_minute, end_hour, end_minute = numeric
            return TimeWindow(
                start_hour=start_hour,
                start_minute=start_minute,
                end_hour=end_hour,
                end_minute=end_minute,
            )

        start = _parse_clock(data.get("start"))
        end = _parse_clock(data.get("end"))
        if start and end:
            return TimeWindow(
                start_hour=max(0, min(23, start[0])),
                start_minute=max(0, min(59, start[1])),
                end_hour=max(0, min(23, end[0])),
                end_minute=max(0, min(59, end[1])),
            )
        return None

    def parse_quiet_hours(self, data: Dict[str, Any]) -> List[TimeWindow]:
        raw = data.get("quietHours")
        if raw is None:
            raw = data.get("quiet_hours")
        if not isinstance(raw, list):
            return []
        windows = [window for window in (self.parse_time_window(item) for item in raw) if window]
        return windows[:MAX_QUIET_WINDOWS]

    def validate_emoji(self, value: Any) -> str:
        """Keep short pictographic strings, otherwise the pillar default."""
        if not isinstance(value, str):
            return DEFAULT_EMOJI
        trimmed = value.strip()
        # A single emoji may carry a variation selector or joiners
        if trimmed and len(trimmed) <= 4 and not any(ch.isalnum() for ch in trimmed):
            return trimmed
        return DEFAULT_EMOJI

    def from_model(self, data: Dict[str, Any]) -> Pillar:
        """
        Build a pillar from a model payload, sanitising every field.

        Args:
            data: The ``pillar`` object from a completion

        Returns:
            Pillar with all limits applied; never raises for odd shapes
        """
        if not isinstance(data, dict):
            data = {}

        wisdom = _clean_text(data.get("wisdom"), MAX_WISDOM) or _clean_text(data.get("wisdomText"), MAX_WISDOM)

        min_duration = as_number(data.get("minDuration"))
        max_duration = as_number(data.get("maxDuration"))
        if min_duration is None or min_duration <= 0:
            min_duration = 1800
        if max_duration is None or max_duration <= 0:
            max_duration = max(7200, min_duration)

        return Pillar(
            name=_clean_text(data.get("name"), MAX_NAME) or DEFAULT_NAME,
            description=_clean_text(data.get("description"), MAX_DESCRIPTION) or DEFAULT_DESCRIPTION,
            type=self.parse_type(data.get("type")),
            frequency=self.parse_frequency(data.get("frequency")),
            values=_clean_list(data.get("values"), MAX_VALUES),
            habits=_clean_list(data.get("habits"), MAX_HABITS),
            constraints=_clean_list(data.get("constraints"), MAX_CONSTRAINTS),
            quiet_hours=self.parse_quiet_hours(data),
            wisdom=wisdom,
            min_duration=min_duration,
            max_duration=max_duration,
            emoji=self.validate_emoji(data.get("emoji")),
        )

    def completeness(self, pillar: Pillar) -> float:
        """Share of the six descriptive fields that carry real content."""
        filled = [
            bool(pillar.description) and pillar.description != DEFAULT_DESCRIPTION,
            bool(pillar.values),
            bool(pillar.habits),
            bool(pillar.constraints),
            bool(pillar.quiet_hours),
            bool(pillar.wisdom),
        ]
        return sum(filled) / len(filled)

    def validate(self, pillar: Pillar) -> PillarValidation:
        issues = []
        suggestions = []

        if not pillar.description or pillar.description == DEFAULT_DESCRIPTION:
            issues.append("Description is missing or generic")
            suggestions.append("Add a specific description of what this pillar represents")
        if not pillar.values:
            suggestions.append("Consider adding core values this pillar represents")
        if not pillar.habits:
            suggestions.append("Consider adding specific habits to encourage")
        if not pillar.constraints:
            suggestions.append("Consider adding constraints or boundaries")
        if not pillar.quiet_hours:
            suggestions.append("Consider adding quiet hours to protect important time")
        if not pillar.wisdom:
            suggestions.append("Consider adding a core principle or wisdom statement")

        return PillarValidation(
            is_valid=not issues,
            completeness=self.completeness(pillar),
            issues=issues,
            suggestions=suggestions,
        )

    def enhance(self, pillar: Pillar) -> Pillar:
        """Fill empty values, habits, constraints and wisdom for incomplete pillars."""
        validation = self.validate(pillar)
        if not validation.needs_enhancement:
            return pillar

        theme = _theme_for(pillar.name)
        updates = {}
        if not pillar.values:
            updates["values"] = list(theme["values"])
        if not pillar.habits:
            updates["habits"] = list(theme["habits"])
        if not pillar.constraints:
            updates["constraints"] = list(theme["constraints"])
        if not pillar.wisdom:
            updates["wisdom"] = theme["wisdom"]

        if updates:
            logger.info(
                f"[Pillars] Enhanced '{pillar.name}' "
                f"({validation.completeness_percentage}% complete): {', '.join(sorted(updates))}"
            )
        return pillar.model_copy(update=updates)

    def fallback(self) -> Pillar:
        """Default pillar attached when the model output cannot be read."""
        return self.from_model({
            "name": DEFAULT_NAME,
            "description": DEFAULT_DESCRIPTION,
            "frequency": "weekly",
            "emoji": DEFAULT_EMOJI,
        })


# Singleton instance
pillar_normalizer = PillarNormalizer()
