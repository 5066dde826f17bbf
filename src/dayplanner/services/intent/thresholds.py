"""Per-action confidence thresholds shared by the classifier and the handlers."""
from typing import Dict, Optional

from dayplanner.core.config import ThresholdConfig, settings
from dayplanner.models.schemas import AIActionType


_ACTION_NOTES = {
    AIActionType.CREATE_EVENT: "Scheduling specific activity",
    AIActionType.CREATE_GOAL: "Long-term objective mentioned",
    AIActionType.CREATE_PILLAR: "New principle or guiding value",
    AIActionType.CREATE_CHAIN: "Multiple linked activities",
    AIActionType.SUGGEST_ACTIVITIES: "Asking for ideas",
    AIActionType.GENERAL_CHAT: "Everything else",
}


class ThresholdTable:
    """Minimum confidence per action before its result is auto-applied."""

    def __init__(self, config: Optional[ThresholdConfig] = None):
        config = config or settings.thresholds
        self._table: Dict[AIActionType, float] = {
            action: float(getattr(config, action.value)) for action in AIActionType
        }

    def for_action(self, action: AIActionType) -> float:
        return self._table[action]

    def allows(self, action: AIActionType, confidence: float) -> bool:
        """True when ``confidence`` clears the threshold for ``action``."""
        return confidence >= self._table[action]

    def as_dict(self) -> Dict[str, float]:
        return {action.value: value for action, value in self._table.items()}

    def describe(self) -> str:
        """Render the table the way the classifier prompt presents it."""
        suggest = self._table[AIActionType.SUGGEST_ACTIVITIES]
        lines = []
        for action, threshold in self._table.items():
            note = _ACTION_NOTES[action]
            if action == AIActionType.GENERAL_CHAT:
                lines.append(f"- {action.value}: {note} (confidence < {suggest:g})")
            else:
                lines.append(f"- {action.value}: {note} (confidence >= {threshold:g})")
        return "\n".join(lines)
