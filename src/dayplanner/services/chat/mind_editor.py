"""
Mind editor: turns a free-text request into typed goal and pillar commands.

One completion per request. The model sees the current goals and pillars as
JSON and answers with ``{"summary": ..., "commands": [...]}``. Commands it
cannot address (no id and no title), ``noop`` and unknown types are dropped;
a reply that is not a JSON object with a ``commands`` list is an
``InvalidResponseError``.
"""
import json
from typing import Any, Callable, Dict, List, Optional

from dayplanner.core.exceptions import InvalidResponseError
from dayplanner.core.logging import logger
from dayplanner.models.domain import TimeWindow
from dayplanner.models.mind import (
    AddNodeCommand,
    ClarificationCommand,
    CreateGoalCommand,
    CreatePillarCommand,
    GoalReference,
    LinkNodesCommand,
    MindCommand,
    MindCommandResponse,
    MindCommandType,
    MindEditorContext,
    MindNode,
    MindNodeType,
    PillarReference,
    PinNodeCommand,
    UpdateGoalCommand,
    UpdatePillarCommand,
)
from dayplanner.services.chat.handlers.base import parse_uuid
from dayplanner.services.json_utils import as_number, as_text, parse_json_object
from dayplanner.services.pillars import MAX_QUIET_WINDOWS, pillar_normalizer


MIND_EDITOR_PROMPT = """You are the Mind editor for a personal planning app. Adjust the user's long-term goals and pillars using precise commands.

CURRENT_STATE_JSON:
{state}

USER_REQUEST:
"{message}"{insights}

INSTRUCTIONS:
- Parse the user's intent even if the grammar is unclear
- If they mention creating a goal, extract the goal title and any details
- If they mention a deadline (like "by October"), include it in the description
- Consider the pattern insights when making recommendations
- Be helpful and interpret their intent rather than asking for clarification unless absolutely necessary

Respond with ONLY valid JSON using snake_case keys and this shape:
{{
  "summary": "short status",
  "commands": [
    {{
      "type": "create_goal|update_goal|add_node|link_nodes|pin_node|create_pillar|update_pillar|ask_clarification|noop",
      "goal_id": "uuid?",
      "goal_title": "string?",
      "pillar_id": "uuid?",
      "pillar_name": "string?",
      "title": "string?",
      "description": "string?",
      "emoji": "string?",
      "importance": 1-5?,
      "question": "string?",
      "nodes": [
        {{"type": "subgoal|task|note|resource|metric", "title": "string", "detail": "string?", "pinned": true|false, "weight": 0.1-1.0?}}
      ],
      "pillar_ids": ["uuid"],
      "pillar_names": ["string"],
      "link_to_title": "string?",
      "link_label": "string?",
      "target_node_title": "string?",
      "pin_state": true|false?,
      "updates": {{
        "title": "string?",
        "description": "string?",
        "emoji": "string?",
        "importance": 1-5?,
        "wisdom": "string?",
        "frequency": "daily|weekly|monthly|as_needed|Nx per week",
        "quiet_hours": [ {{"start": "HH:MM", "end": "HH:MM"}} ],
        "values": ["string"],
        "habits": ["string"],
        "constraints": ["string"],
        "focus": "string?"
      }}
    }}
  ]
}}

- Prefer goal_id / pillar_id when you know the UUID, otherwise include goal_title / pillar_name.
- For quiet hours, use 24-hour HH:MM strings.
- If information is missing, return a single ask_clarification command with a clear question.
- Do not include commentary, markdown, or any text outside the JSON object."""

INSIGHTS_HEADER = "PATTERN INSIGHTS (consider these when making recommendations):"


def _texts(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (as_text(item) for item in value) if text]


def _importance(value: Any) -> Optional[int]:
    number = as_number(value)
    if number is None:
        return None
    return max(1, min(5, int(round(number))))


def _quiet_hours(value: Any) -> List[TimeWindow]:
    if not isinstance(value, list):
        return []
    windows = [window for window in (pillar_normalizer.parse_time_window(item) for item in value) if window]
    return windows[:MAX_QUIET_WINDOWS]


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


class MindCommandParser:
    """Builds the editor prompt and converts its reply into typed commands."""

    def build_prompt(
        self,
        message: str,
        context: MindEditorContext,
        insights: Optional[List[str]] = None,
    ) -> str:
        state = json.dumps(context.model_dump(mode="json"), sort_keys=True, ensure_ascii=False)
        insight_lines = [line.strip() for line in (insights or []) if line and line.strip()]
        insights_text = ""
        if insight_lines:
            insights_text = "\n\n" + INSIGHTS_HEADER + "\n" + "\n".join(f"• {line}" for line in insight_lines)

        return MIND_EDITOR_PROMPT.format(
            state=state,
            message=message.replace('"', '\\"'),
            insights=insights_text,
        )

    def parse(self, response: str) -> MindCommandResponse:
        """
        Convert the model reply into a MindCommandResponse.

        Raises:
            InvalidResponseError: The reply is not a JSON object with a ``commands`` list
        """
        parsed = parse_json_object(response)
        if parsed is None or not isinstance(parsed.get("commands"), list):
            logger.error(f"[MindEditor] Unreadable response: {response[:200] if response else 'empty'}")
            raise InvalidResponseError("mind editor response has no commands list")

        commands: List[MindCommand] = []
        for descriptor in parsed["commands"]:
            command = self.parse_command(descriptor) if isinstance(descriptor, dict) else None
            if command is not None:
                commands.append(command)

        dropped = len(parsed["commands"]) - len(commands)
        if dropped:
            logger.info(f"[MindEditor] Dropped {dropped} unusable or noop commands")

        return MindCommandResponse(summary=as_text(parsed.get("summary")) or "", commands=commands)

    def parse_command(self, descriptor: Dict[str, Any]) -> Optional[MindCommand]:
        """One wire command, or None when it is a noop, unknown or cannot be applied."""
        raw_type = as_text(descriptor.get("type"))
        try:
            command_type = MindCommandType(raw_type.lower()) if raw_type else None
        except ValueError:
            command_type = None
        if command_type is None:
            logger.warning(f"[MindEditor] Unknown command type: {raw_type}")
            return None

        builder = self._builders().get(command_type)
        return builder(descriptor) if builder else None

    def _builders(self) -> Dict[MindCommandType, Callable[[Dict[str, Any]], Optional[MindCommand]]]:
        return {
            MindCommandType.CREATE_GOAL: self._create_goal,
            MindCommandType.UPDATE_GOAL: self._update_goal,
            MindCommandType.ADD_NODE: self._add_node,
            MindCommandType.LINK_NODES: self._link_nodes,
            MindCommandType.PIN_NODE: self._pin_node,
            MindCommandType.CREATE_PILLAR: self._create_pillar,
            MindCommandType.UPDATE_PILLAR: self._update_pillar,
            MindCommandType.ASK_CLARIFICATION: self._clarification,
        }

    def parse_node(self, data: Any) -> Optional[MindNode]:
        if not isinstance(data, dict):
            return None
        title = as_text(data.get("title"))
        if not title:
            return None
        try:
            node_type = MindNodeType(str(data.get("type", "")).strip().lower())
        except ValueError:
            node_type = MindNodeType.NOTE
        weight = as_number(data.get("weight"))
        pinned = data.get("pinned")
        return MindNode(
            type=node_type,
            title=title,
            detail=as_text(data.get("detail")),
            pinned=pinned if isinstance(pinned, bool) else False,
            weight=max(0.0, min(1.0, weight)) if weight is not None else None,
        )

    def _goal_reference(self, data: Dict[str, Any], *title_keys: str) -> GoalReference:
        title = next((as_text(data.get(key)) for key in title_keys if as_text(data.get(key))), None)
        return GoalReference(id=parse_uuid(data.get("goal_id")), title=title)

    def _create_goal(self, data: Dict[str, Any]) -> Optional[CreateGoalCommand]:
        title = as_text(data.get("title"))
        if not title:
            return None
        nodes = data.get("nodes") if isinstance(data.get("nodes"), list) else []
        pillar_ids = data.get("pillar_ids") if isinstance(data.get("pillar_ids"), list) else []
        return CreateGoalCommand(
            title=title,
            description=as_text(data.get("description")),
            emoji=as_text(data.get("emoji")),
            importance=_importance(data.get("importance")),
            nodes=[node for node in (self.parse_node(item) for item in nodes) if node],
            related_pillar_ids=[pid for pid in (parse_uuid(item) for item in pillar_ids) if pid],
            related_pillar_names=_texts(data.get("pillar_names")),
        )

    def _update_goal(self, data: Dict[str, Any]) -> Optional[UpdateGoalCommand]:
        reference = self._goal_reference(data, "goal_title", "title")
        if not reference.is_valid:
            return None
        updates = _section(data, "updates")
        importance = updates.get("importance", data.get("importance"))
        return UpdateGoalCommand(
            reference=reference,
            title=as_text(updates.get("title")) or as_text(data.get("title")),
            description=as_text(updates.get("description")) or as_text(data.get("description")),
            emoji=as_text(updates.get("emoji")) or as_text(data.get("emoji")),
            importance=_importance(importance),
            focus=as_text(updates.get("focus")) or as_text(data.get("focus")),
        )

    def _add_node(self, data: Dict[str, Any]) -> Optional[AddNodeCommand]:
        reference = self._goal_reference(data, "goal_title")
        nodes = data.get("nodes") if isinstance(data.get("nodes"), list) else []
        node = self.parse_node(nodes[0]) if nodes else None
        if not reference.is_valid or node is None:
            return None
        link = _section(data, "link")
        return AddNodeCommand(
            reference=reference,
            node=node,
            link_to_title=as_text(data.get("link_to_title")) or as_text(link.get("from_node_title")),
            link_label=as_text(data.get("link_label")) or as_text(link.get("label")),
        )

    def _link_nodes(self, data: Dict[str, Any]) -> Optional[LinkNodesCommand]:
        reference = self._goal_reference(data, "goal_title")
        link = _section(data, "link")
        from_title = as_text(link.get("from_node_title")) or as_text(data.get("title"))
        to_title = as_text(link.get("to_node_title")) or as_text(data.get("link_to_title"))
        if not reference.is_valid or not from_title or not to_title:
            return None
        return LinkNodesCommand(
            reference=reference,
            from_title=from_title,
            to_title=to_title,
            label=as_text(link.get("label")) or as_text(data.get("link_label")),
        )

    def _pin_node(self, data: Dict[str, Any]) -> Optional[PinNodeCommand]:
        reference = self._goal_reference(data, "goal_title")
        node_title = as_text(data.get("target_node_title")) or as_text(data.get("title"))
        if not reference.is_valid or not node_title:
            return None
        pin_state = data.get("pin_state")
        return PinNodeCommand(
            reference=reference,
            node_title=node_title,
            pinned=pin_state if isinstance(pin_state, bool) else True,
        )

    def _pillar_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        updates = _section(data, "updates")
        return {
            "description": as_text(updates.get("description")) or as_text(data.get("description")),
            "emoji": as_text(updates.get("emoji")) or as_text(data.get("emoji")),
            "frequency": as_text(updates.get("frequency")) or as_text(data.get("focus")),
            "wisdom": as_text(updates.get("wisdom")),
            "values": _texts(updates.get("values")) or _texts(updates.get("principles")),
            "habits": _texts(updates.get("habits")),
            "constraints": _texts(updates.get("constraints")),
            "quiet_hours": _quiet_hours(updates.get("quiet_hours")),
        }

    def _create_pillar(self, data: Dict[str, Any]) -> Optional[CreatePillarCommand]:
        name = as_text(data.get("title")) or as_text(data.get("pillar_name"))
        if not name:
            return None
        return CreatePillarCommand(name=name, **self._pillar_fields(data))

    def _update_pillar(self, data: Dict[str, Any]) -> Optional[UpdatePillarCommand]:
        name = as_text(data.get("pillar_name")) or as_text(data.get("title"))
        reference = PillarReference(id=parse_uuid(data.get("pillar_id")), name=name)
        if not reference.is_valid:
            return None
        fields = self._pillar_fields(data)
        if not any(fields.values()):
            return None
        return UpdatePillarCommand(reference=reference, **fields)

    def _clarification(self, data: Dict[str, Any]) -> Optional[ClarificationCommand]:
        question = as_text(data.get("question")) or as_text(data.get("description")) or as_text(data.get("title"))
        return ClarificationCommand(question=question) if question else None


# Singleton instance
mind_command_parser = MindCommandParser()
