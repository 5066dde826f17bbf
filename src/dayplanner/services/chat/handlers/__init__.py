"""Action handlers."""
from dayplanner.services.chat.handlers.base import IntentHandler, HandlerContext

from dayplanner.services.chat.handlers.event import EventHandler
from dayplanner.services.chat.handlers.goal import GoalHandler
from dayplanner.services.chat.handlers.pillar import PillarHandler
from dayplanner.services.chat.handlers.chain import ChainHandler
from dayplanner.services.chat.handlers.suggestion import SuggestionHandler

__all__ = [
    # Base classes
    'IntentHandler',
    'HandlerContext',
    # Creation handlers
    'EventHandler',
    'GoalHandler',
    'PillarHandler',
    'ChainHandler',
    # Suggestions and chat
    'SuggestionHandler',
]
