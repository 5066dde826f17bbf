"""API routes."""
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Header

from dayplanner.core.config import settings
from dayplanner.core.exceptions import (
    AIError,
    CompletionTimeoutError,
    NotConnectedError,
)
from dayplanner.core.logging import logger
from dayplanner.models.domain import Chain
from dayplanner.models.mind import MindCommandResponse
from dayplanner.models.schemas import (
    AIResponse,
    ChainRequest,
    ChatRequest,
    MindRequest,
    Suggestion,
    SuggestionsRequest,
)
from dayplanner.services.chat import ai_service
from dayplanner.services.connection import ConnectionMonitor

router = APIRouter()

# Single writer of connectivity status for the whole process
connection_monitor = ConnectionMonitor(ai_service.client)


def verify_auth(x_api_key: Optional[str] = None):
    """Verify API key if configured."""
    if settings.api_key and x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return True


def _http_error(error: AIError) -> HTTPException:
    """Map an assistant error onto an HTTP status."""
    if isinstance(error, (NotConnectedError, CompletionTimeoutError)):
        return HTTPException(status_code=503, detail=error.message)
    return HTTPException(status_code=502, detail=error.message)


@router.get("/health")
def health_check():
    """Health check endpoint."""
    status = connection_monitor.status
    return {
        "status": "running",
        "connected": status.connected,
        "provider": status.provider,
        "endpoint": status.endpoint,
        "last_checked": status.last_checked.isoformat() if status.last_checked else None,
        "last_error": status.last_error,
        "monitor_running": connection_monitor.is_running,
        "processing": ai_service.is_processing,
        "last_response_time": ai_service.last_response_time,
        "thresholds": ai_service.thresholds.as_dict(),
    }


@router.post("/chat", response_model=AIResponse)
async def chat(req: ChatRequest, x_api_key: Optional[str] = Header(None)):
    """Main assistant endpoint."""
    verify_auth(x_api_key)

    try:
        return await ai_service.process_message(
            message=req.message,
            context=req.context,
            status=connection_monitor.status,
            insights=req.insights,
        )
    except AIError as e:
        logger.error(f"Chat endpoint AI error: {e}")
        raise _http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Chat endpoint error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/suggestions", response_model=List[Suggestion])
async def suggestions(req: SuggestionsRequest, x_api_key: Optional[str] = Header(None)):
    """Activity suggestions for a message, or for the day when no message is given."""
    verify_auth(x_api_key)

    try:
        if req.message:
            return await ai_service.get_suggestions(req.message, req.context, connection_monitor.status)
        return await ai_service.generate_suggestions(req.context, connection_monitor.status)
    except AIError as e:
        logger.error(f"Suggestions endpoint AI error: {e}")
        raise _http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Suggestions endpoint error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/suggestions/mock", response_model=List[Suggestion])
def mock_suggestions(x_api_key: Optional[str] = Header(None)):
    """Fixed suggestions for clients running offline."""
    verify_auth(x_api_key)
    return ai_service.mock_suggestions()


@router.post("/chains", response_model=List[Chain])
async def chains(req: ChainRequest, x_api_key: Optional[str] = Header(None)):
    """Candidate chains for a free-form prompt."""
    verify_auth(x_api_key)

    try:
        return await ai_service.generate_chains(req.prompt, connection_monitor.status)
    except AIError as e:
        logger.error(f"Chains endpoint AI error: {e}")
        raise _http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Chains endpoint error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/mind", response_model=MindCommandResponse)
async def mind(req: MindRequest, x_api_key: Optional[str] = Header(None)):
    """Goal and pillar editing commands for a free-text request."""
    verify_auth(x_api_key)

    try:
        return await ai_service.process_mind_commands(
            message=req.message,
            context=req.context,
            status=connection_monitor.status,
            insights=req.insights,
        )
    except AIError as e:
        logger.error(f"Mind endpoint AI error: {e}")
        raise _http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Mind endpoint error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/diagnostics")
async def diagnostics(x_api_key: Optional[str] = Header(None)):
    """Connection probe plus a test round trip, as a text report."""
    verify_auth(x_api_key)

    report = await ai_service.run_diagnostics()
    return {"report": report}
