"""Goal handler - turns a long-term ambition into a draft goal."""
from datetime import datetime, timedelta
from typing import Any, List

from dayplanner.models.domain import Goal, GoalGroup, GoalState, GoalTask
from dayplanner.models.schemas import AIActionType, AIResponse, GoalItem
from dayplanner.services.chat.handlers.base import HandlerContext, IntentHandler, parse_uuid
from dayplanner.services.json_utils import as_number, as_text, parse_json_object
from dayplanner.services.time_parsing import parse_iso_datetime, time_extractor


MAX_TITLE = 30
MIN_HORIZON_DAYS = 90
MAX_HORIZON_DAYS = 365
DEFAULT_HORIZON_DAYS = 182

GOAL_PROMPT = """Create a comprehensive goal from this user request: "{message}"

Context:
{context}
Extracted entities: {entities}
Confidence: {confidence}

Analyze the message and create a SMART goal with:
1. Specific, clear title (max 30 chars)
2. Detailed description explaining the outcome
3. Importance level 1-5 based on urgency/impact indicators
4. Realistic target date (3-12 months out)
5. Initial task breakdown to make it actionable
6. Appropriate emoji for visual identification

Look for importance indicators:
- "critical/urgent/essential" = importance 5
- "important/priority" = importance 4
- "want to/should" = importance 3
- "nice to/would like" = importance 2
- everything else = importance 3

Respond with ONLY valid JSON in this EXACT format with ALL fields properly filled:
{{
    "response": "I'll help you create a goal for {goal}",
    "goal": {{
        "title": "Specific goal title",
        "description": "Detailed description of what success looks like",
        "importance": 4,
        "targetDate": "{example_target}",
        "emoji": "🎯",
        "relatedPillarIds": [],
        "groups": [
            {{
                "name": "Group name",
                "tasks": [
                    {{
                        "title": "Specific actionable task",
                        "description": "Clear task description with deliverables",
                        "estimatedDuration": 3600,
                        "actionQuality": 4
                    }}
                ]
            }}
        ]
    }},
    "confidence": {confidence}
}}

Make the goal actionable with concrete first steps. Choose an emoji that matches the goal domain."""


class GoalHandler(IntentHandler):
    """Handle create_goal - draft a goal with task groups."""

    actions = [AIActionType.CREATE_GOAL]
    item_label = "goal"
    detail_hint = "what success looks like and when you'd like to get there"
    fallback_text = "I'll help you create that goal"

    def build_prompt(self, context: HandlerContext) -> str:
        return GOAL_PROMPT.format(
            message=context.message,
            context=context.context.summary(),
            entities=context.entities,
            confidence=context.confidence,
            goal=context.entity("goal", "activity") or "this objective",
            example_target=(context.now + timedelta(days=DEFAULT_HORIZON_DAYS)).date().isoformat(),
        )

    def resolve_importance(self, goal: dict, context: HandlerContext) -> int:
        """Model importance clamped to 1-5, otherwise urgency cues in the message."""
        importance = as_number(goal.get("importance"))
        if importance is not None:
            return int(max(1, min(5, round(importance))))
        return time_extractor.importance_from_text(context.message)

    def resolve_target_date(self, goal: dict, context: HandlerContext) -> datetime:
        """Target date kept 3-12 months out; about six months when missing."""
        now = context.now
        earliest = now + timedelta(days=MIN_HORIZON_DAYS)
        latest = now + timedelta(days=MAX_HORIZON_DAYS)
        target = parse_iso_datetime(goal.get("targetDate"), now)
        if target is None:
            return now + timedelta(days=DEFAULT_HORIZON_DAYS)
        return max(earliest, min(latest, target))

    def parse_groups(self, value: Any) -> List[GoalGroup]:
        if not isinstance(value, list):
            return []

        groups = []
        for group_data in value:
            if not isinstance(group_data, dict):
                continue
            tasks = []
            for task_data in group_data.get("tasks") or []:
                if not isinstance(task_data, dict):
                    continue
                title = as_text(task_data.get("title"))
                if not title:
                    continue
                estimate = as_number(task_data.get("estimatedDuration"))
                quality = as_number(task_data.get("actionQuality"))
                tasks.append(GoalTask(
                    title=title,
                    description=as_text(task_data.get("description")) or "",
                    estimated_duration=estimate if estimate and estimate > 0 else None,
                    action_quality=int(max(1, min(5, round(quality)))) if quality is not None else 3,
                ))
            groups.append(GoalGroup(name=as_text(group_data.get("name")) or "Tasks", tasks=tasks))
        return groups

    def parse(self, raw: str, context: HandlerContext) -> AIResponse:
        parsed = parse_json_object(raw)
        goal_data = parsed.get("goal") if parsed else None
        if not isinstance(goal_data, dict):
            return self._degraded_response(context, raw)

        title = (as_text(goal_data.get("title")) or context.entity("goal", "activity") or "New Goal")[:MAX_TITLE].strip()
        raw_ids = goal_data.get("relatedPillarIds")
        pillar_ids = [pid for pid in map(parse_uuid, raw_ids) if pid] if isinstance(raw_ids, list) else []

        goal = Goal(
            title=title,
            description=as_text(goal_data.get("description")) or "",
            state=GoalState.DRAFT,
            importance=self.resolve_importance(goal_data, context),
            target_date=self.resolve_target_date(goal_data, context),
            emoji=as_text(goal_data.get("emoji")) or "🎯",
            related_pillar_ids=pillar_ids,
            groups=self.parse_groups(goal_data.get("groups")),
        )

        text = as_text(parsed.get("response")) or f"I'll help you create a goal for {title}"
        return self._success_response(
            context,
            text,
            created_items=[GoalItem(title=title, confidence=context.confidence, payload=goal)],
        )
