"""Pydantic schemas for the assistant pipeline and its HTTP surface."""
import re
import uuid
from datetime import date as date_type, datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from dayplanner.models.domain import (
    Chain,
    EnergyType,
    GlassMood,
    Goal,
    Pillar,
    TimeBlock,
)
from dayplanner.models.mind import MindEditorContext


class AIActionType(str, Enum):
    """What the assistant decided to do with a message."""
    CREATE_EVENT = "create_event"
    CREATE_GOAL = "create_goal"
    CREATE_PILLAR = "create_pillar"
    CREATE_CHAIN = "create_chain"
    SUGGEST_ACTIVITIES = "suggest_activities"
    GENERAL_CHAT = "general_chat"

    @classmethod
    def parse(cls, value) -> Optional["AIActionType"]:
        """Accept both ``create_event`` and ``createEvent`` spellings."""
        if not isinstance(value, str):
            return None
        normalized = value.strip()
        if "_" not in normalized and "-" not in normalized:
            normalized = re.sub(r"(?<!^)(?=[A-Z])", "_", normalized)
        normalized = normalized.replace("-", "_").lower()
        try:
            return cls(normalized)
        except ValueError:
            return None


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    IMMEDIATE = "immediate"


class ResponseOutcome(str, Enum):
    """Terminal state of one pipeline run."""
    COMPLETED = "completed"
    DEGRADED = "degraded"
    NEEDS_DETAIL = "needs_detail"


class DayContext(BaseModel):
    """Point-in-time snapshot of the user's day, fed into every prompt."""
    model_config = ConfigDict(frozen=True)

    date: date_type
    current_time: datetime = Field(default_factory=datetime.now)
    existing_blocks: List[TimeBlock] = Field(default_factory=list)
    current_energy: EnergyType = EnergyType.DAYLIGHT
    preferred_emojis: List[str] = Field(default_factory=list)
    available_time: float = Field(default=0, ge=0, description="Seconds of free time")
    mood: GlassMood = GlassMood.CRYSTAL
    weather: Optional[str] = None
    pillar_guidance: List[str] = Field(default_factory=list)

    def summary(self) -> str:
        lines = [
            f"Date: {self.date.strftime('%b %d, %Y')}",
            f"Current time: {self.current_time.strftime('%H:%M')}",
            f"Energy: {self.current_energy.description}",
            f"Blocks: {len(self.existing_blocks)}",
            f"Available: {int(self.available_time // 3600)}h",
            f"Mood: {self.mood.description}",
        ]
        if self.weather:
            lines.append(f"Weather: {self.weather}")
        if self.pillar_guidance:
            lines.append(f"Guiding principles: {'; '.join(self.pillar_guidance)}")
        return "\n".join(lines)


class MessageActionAnalysis(BaseModel):
    """Classifier verdict for one message."""
    intent: str
    confidence: float = Field(ge=0, le=1)
    recommended_action: AIActionType
    extracted_entities: Dict[str, str] = Field(default_factory=dict)
    urgency: UrgencyLevel = UrgencyLevel.LOW
    context_alignment: float = Field(default=0.5, ge=0, le=1)

    @classmethod
    def fallback(cls) -> "MessageActionAnalysis":
        """Analysis used whenever the classifier output cannot be read."""
        return cls(
            intent="General conversation",
            confidence=0.3,
            recommended_action=AIActionType.GENERAL_CHAT,
            extracted_entities={},
            urgency=UrgencyLevel.LOW,
            context_alignment=0.5,
        )


class Suggestion(BaseModel):
    """A proposed activity the user can accept onto the calendar."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    duration: float = Field(gt=0, description="Seconds")
    suggested_time: datetime
    energy: EnergyType = EnergyType.DAYLIGHT
    emoji: str = "📋"
    explanation: str = ""
    confidence: float = Field(ge=0, le=1)
    weight: Optional[float] = Field(default=None, ge=0, le=1)
    related_goal_id: Optional[uuid.UUID] = None
    related_goal_title: Optional[str] = None
    related_pillar_id: Optional[uuid.UUID] = None
    related_pillar_title: Optional[str] = None
    reason: Optional[str] = None
    link_hints: Optional[List[str]] = None


class _CreatedItemBase(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    confidence: float = Field(ge=0, le=1)


class EventItem(_CreatedItemBase):
    kind: Literal["event"] = "event"
    payload: TimeBlock


class GoalItem(_CreatedItemBase):
    kind: Literal["goal"] = "goal"
    payload: Goal


class PillarItem(_CreatedItemBase):
    kind: Literal["pillar"] = "pillar"
    payload: Pillar


class ChainItem(_CreatedItemBase):
    kind: Literal["chain"] = "chain"
    payload: Chain


CreatedItem = Annotated[
    Union[EventItem, GoalItem, PillarItem, ChainItem],
    Field(discriminator="kind"),
]


class AIResponse(BaseModel):
    """Uniform result of one assistant turn."""
    text: str
    suggestions: List[Suggestion] = Field(default_factory=list)
    action_type: Optional[AIActionType] = None
    created_items: Optional[List[CreatedItem]] = None
    confidence: float = Field(ge=0, le=1)
    outcome: ResponseOutcome = ResponseOutcome.COMPLETED


class ConnectionStatus(BaseModel):
    """Latest result of the provider health probe."""
    connected: bool = False
    provider: str = "local"
    endpoint: Optional[str] = None
    last_checked: Optional[datetime] = None
    last_error: Optional[str] = None
    last_status_code: Optional[int] = None


# ===== HTTP API =====

class ChatRequest(BaseModel):
    """Chat request schema."""
    message: str = Field(min_length=1)
    context: DayContext
    insights: Optional[List[str]] = None


class SuggestionsRequest(BaseModel):
    """Suggestion request schema; a missing message asks for a plan for the day."""
    message: Optional[str] = None
    context: DayContext


class ChainRequest(BaseModel):
    """Chain generation request schema."""
    prompt: str = Field(min_length=1)


class MindRequest(BaseModel):
    """Mind editor request schema."""
    message: str = Field(min_length=1)
    context: MindEditorContext = Field(default_factory=MindEditorContext)
    insights: Optional[List[str]] = None
