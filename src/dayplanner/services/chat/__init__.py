"""Assistant pipeline package.

AIService coordinates:
1. Connectivity gating (via the caller-supplied ConnectionStatus)
2. Intent classification (via IntentClassifier)
3. Handler dispatch (via HandlerRegistry)
"""
from dayplanner.services.chat.orchestrator import AIService, HandlerRegistry, ai_service
from dayplanner.services.chat.handlers.base import IntentHandler, HandlerContext

__all__ = [
    'AIService',
    'HandlerRegistry',
    'ai_service',
    'IntentHandler',
    'HandlerContext',
]
