"""Mind editor state and the typed commands the model issues against it."""
import uuid
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from dayplanner.models.domain import TimeWindow


class MindNodeType(str, Enum):
    SUBGOAL = "subgoal"
    TASK = "task"
    NOTE = "note"
    RESOURCE = "resource"
    METRIC = "metric"


class MindCommandType(str, Enum):
    """Command names accepted on the wire."""
    CREATE_GOAL = "create_goal"
    UPDATE_GOAL = "update_goal"
    ADD_NODE = "add_node"
    LINK_NODES = "link_nodes"
    PIN_NODE = "pin_node"
    CREATE_PILLAR = "create_pillar"
    UPDATE_PILLAR = "update_pillar"
    ASK_CLARIFICATION = "ask_clarification"
    NOOP = "noop"


# ===== Editor state =====

class NodeSummary(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    type: MindNodeType = MindNodeType.NOTE
    title: str
    detail: Optional[str] = None
    pinned: bool = False
    weight: float = Field(default=0.5, ge=0, le=1)


class GoalSummary(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    title: str
    description: str = ""
    emoji: str = "🎯"
    importance: int = Field(default=3, ge=1, le=5)
    pinned_node_titles: List[str] = Field(default_factory=list)
    nodes: List[NodeSummary] = Field(default_factory=list)


class PillarSummary(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    description: str = ""
    frequency: str = "weekly"
    wisdom: Optional[str] = None
    values: List[str] = Field(default_factory=list)
    habits: List[str] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    quiet_hours: List[str] = Field(default_factory=list, description='"HH:MM - HH:MM" windows')


class MindEditorContext(BaseModel):
    """The user's current goals and pillars, serialised into the editor prompt."""
    goals: List[GoalSummary] = Field(default_factory=list)
    pillars: List[PillarSummary] = Field(default_factory=list)


# ===== Commands =====

class GoalReference(BaseModel):
    """A goal addressed by id when the model knows it, otherwise by title."""
    id: Optional[uuid.UUID] = None
    title: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.id is not None or bool(self.title)


class PillarReference(BaseModel):
    id: Optional[uuid.UUID] = None
    name: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.id is not None or bool(self.name)


class MindNode(BaseModel):
    type: MindNodeType = MindNodeType.NOTE
    title: str
    detail: Optional[str] = None
    pinned: bool = False
    weight: Optional[float] = Field(default=None, ge=0, le=1)


class CreateGoalCommand(BaseModel):
    type: Literal["create_goal"] = "create_goal"
    title: str
    description: Optional[str] = None
    emoji: Optional[str] = None
    importance: Optional[int] = Field(default=None, ge=1, le=5)
    nodes: List[MindNode] = Field(default_factory=list)
    related_pillar_ids: List[uuid.UUID] = Field(default_factory=list)
    related_pillar_names: List[str] = Field(default_factory=list)


class UpdateGoalCommand(BaseModel):
    type: Literal["update_goal"] = "update_goal"
    reference: GoalReference
    title: Optional[str] = None
    description: Optional[str] = None
    emoji: Optional[str] = None
    importance: Optional[int] = Field(default=None, ge=1, le=5)
    focus: Optional[str] = None


class AddNodeCommand(BaseModel):
    type: Literal["add_node"] = "add_node"
    reference: GoalReference
    node: MindNode
    link_to_title: Optional[str] = None
    link_label: Optional[str] = None


class LinkNodesCommand(BaseModel):
    type: Literal["link_nodes"] = "link_nodes"
    reference: GoalReference
    from_title: str
    to_title: str
    label: Optional[str] = None


class PinNodeCommand(BaseModel):
    type: Literal["pin_node"] = "pin_node"
    reference: GoalReference
    node_title: str
    pinned: bool = True


class _PillarFields(BaseModel):
    description: Optional[str] = None
    emoji: Optional[str] = None
    frequency: Optional[str] = None
    wisdom: Optional[str] = None
    values: List[str] = Field(default_factory=list)
    habits: List[str] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    quiet_hours: List[TimeWindow] = Field(default_factory=list)


class CreatePillarCommand(_PillarFields):
    type: Literal["create_pillar"] = "create_pillar"
    name: str


class UpdatePillarCommand(_PillarFields):
    type: Literal["update_pillar"] = "update_pillar"
    reference: PillarReference


class ClarificationCommand(BaseModel):
    type: Literal["ask_clarification"] = "ask_clarification"
    question: str


MindCommand = Annotated[
    Union[
        CreateGoalCommand,
        UpdateGoalCommand,
        AddNodeCommand,
        LinkNodesCommand,
        PinNodeCommand,
        CreatePillarCommand,
        UpdatePillarCommand,
        ClarificationCommand,
    ],
    Field(discriminator="type"),
]


class MindCommandResponse(BaseModel):
    """Editor turn result: a status line plus the commands to apply, in order."""
    summary: str = ""
    commands: List[MindCommand] = Field(default_factory=list)
