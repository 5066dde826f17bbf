"""Planner domain types produced by the assistant.

These are owned by the planner's stores; the assistant only builds them
from model output and hands them back to the caller.
"""
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class EnergyType(str, Enum):
    """Energy level a block asks of the user."""
    SUNRISE = "sunrise"      # High energy, sharp focus
    DAYLIGHT = "daylight"    # Steady energy, sustained work
    MOONLIGHT = "moonlight"  # Low energy, gentle activities

    @property
    def description(self) -> str:
        return {
            EnergyType.SUNRISE: "Sharp Focus",
            EnergyType.DAYLIGHT: "Steady Work",
            EnergyType.MOONLIGHT: "Gentle Flow",
        }[self]

    @classmethod
    def parse(cls, value, default: "EnergyType" = None) -> "EnergyType":
        """Lenient parse of model output, falling back to ``default`` (daylight)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return default or cls.DAYLIGHT


class GlassMood(str, Enum):
    """Overall feel of the day, captured from the user."""
    CRYSTAL = "crystal"
    MIST = "mist"
    PRISM = "prism"
    STORM = "storm"

    @property
    def description(self) -> str:
        return {
            GlassMood.CRYSTAL: "Clear & Focused",
            GlassMood.MIST: "Gentle & Flowing",
            GlassMood.PRISM: "Creative & Dynamic",
            GlassMood.STORM: "Intense & Challenging",
        }[self]


class FlowPattern(str, Enum):
    """Pacing shape of a chain."""
    WATERFALL = "waterfall"  # prep -> work -> review
    SPIRAL = "spiral"        # practice -> apply -> reflect -> practice
    WAVE = "wave"            # work -> break -> work -> break
    RIPPLE = "ripple"        # small -> medium -> large

    @property
    def description(self) -> str:
        return {
            FlowPattern.WATERFALL: "Sequential Flow",
            FlowPattern.SPIRAL: "Circular Flow",
            FlowPattern.WAVE: "Rhythmic Flow",
            FlowPattern.RIPPLE: "Expanding Flow",
        }[self]


class GoalState(str, Enum):
    DRAFT = "draft"
    ON = "on"
    OFF = "off"


class PillarType(str, Enum):
    ACTIONABLE = "actionable"  # auto-generates time blocks
    PRINCIPLE = "principle"    # guides suggestions


class FrequencyKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    AS_NEEDED = "as_needed"


class PillarFrequency(BaseModel):
    """How often a pillar should steer the plan, e.g. weekly x3."""
    kind: FrequencyKind = FrequencyKind.WEEKLY
    count: int = Field(default=1, ge=1)

    @property
    def display_name(self) -> str:
        if self.kind == FrequencyKind.DAILY:
            return "Daily"
        if self.kind == FrequencyKind.AS_NEEDED:
            return "As needed"
        if self.kind == FrequencyKind.WEEKLY:
            return "Weekly" if self.count == 1 else f"{self.count}x per week"
        return "Monthly" if self.count == 1 else f"{self.count}x per month"


class TimeWindow(BaseModel):
    """A protected window of the day, 24h clock."""
    start_hour: int = Field(ge=0, le=23)
    start_minute: int = Field(ge=0, le=59)
    end_hour: int = Field(ge=0, le=23)
    end_minute: int = Field(ge=0, le=59)

    @property
    def start(self) -> str:
        return f"{self.start_hour:02d}:{self.start_minute:02d}"

    @property
    def end(self) -> str:
        return f"{self.end_hour:02d}:{self.end_minute:02d}"

    @property
    def description(self) -> str:
        return f"{self.start} - {self.end}"


class TimeBlock(BaseModel):
    """A scheduled block on the calendar."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    start_time: datetime
    duration: float = Field(gt=0, description="Seconds")
    energy: EnergyType = EnergyType.DAYLIGHT
    emoji: str = "📋"
    explanation: Optional[str] = None
    related_goal_id: Optional[uuid.UUID] = None
    related_goal_title: Optional[str] = None
    related_pillar_id: Optional[uuid.UUID] = None
    related_pillar_title: Optional[str] = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration)

    @property
    def duration_minutes(self) -> int:
        return int(self.duration // 60)


class GoalTask(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    description: str = ""
    is_completed: bool = False
    estimated_duration: Optional[float] = None
    action_quality: int = Field(default=3, ge=1, le=5)


class GoalGroup(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    tasks: List[GoalTask] = Field(default_factory=list)


class Goal(BaseModel):
    """A longer-horizon objective."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    description: str = ""
    state: GoalState = GoalState.DRAFT
    importance: int = Field(default=3, ge=1, le=5)
    target_date: Optional[datetime] = None
    emoji: str = "🎯"
    related_pillar_ids: List[uuid.UUID] = Field(default_factory=list)
    groups: List[GoalGroup] = Field(default_factory=list)


class Pillar(BaseModel):
    """A recurring principle or scheduled category."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    description: str = ""
    type: PillarType = PillarType.PRINCIPLE
    frequency: PillarFrequency = Field(default_factory=PillarFrequency)
    min_duration: float = 1800
    max_duration: float = 7200
    values: List[str] = Field(default_factory=list)
    habits: List[str] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    quiet_hours: List[TimeWindow] = Field(default_factory=list)
    wisdom: Optional[str] = None
    emoji: str = "🏛️"

    @field_validator("max_duration")
    @classmethod
    def _max_not_below_min(cls, v, info):
        min_duration = info.data.get("min_duration")
        if min_duration is not None and v < min_duration:
            return min_duration
        return v


class Chain(BaseModel):
    """Ordered blocks meant to be scheduled together."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    blocks: List[TimeBlock] = Field(default_factory=list)
    flow_pattern: FlowPattern = FlowPattern.WATERFALL
    emoji: str = "🔗"

    @property
    def total_duration(self) -> float:
        return sum(block.duration for block in self.blocks)
