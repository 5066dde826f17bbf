"""DayPlanner assistant - Main entry point."""
from fastapi import FastAPI

from dayplanner import __version__
from dayplanner.api.routes import connection_monitor, router
from dayplanner.core.config import settings
from dayplanner.core.logging import logger

# Initialize FastAPI app
app = FastAPI(
    title="DayPlanner Assistant",
    description="Turns free-text planning chat into events, goals, pillars and chains",
    version=__version__,
)

# Include routes
app.include_router(router)


@app.on_event("startup")
async def startup_event():
    """Start the connectivity monitor."""
    logger.info("=" * 60)
    logger.info("DayPlanner assistant starting up")
    logger.info(f"LLM provider: {settings.llm.provider}")
    logger.info(f"LLM endpoint: {settings.llm.base_url}")
    logger.info(f"Poll interval: {settings.connection.poll_interval}s")

    connection_monitor.start()

    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("DayPlanner assistant shutting down")
    await connection_monitor.stop()


if __name__ == "__main__":
    import uvicorn
    import os
    # Only enable reload in development
    reload = os.getenv("DAYPLANNER_DEV_MODE", "false").lower() == "true"
    uvicorn.run(
        "dayplanner.main:app",
        host="0.0.0.0",
        port=8080,
        reload=reload,
        log_level="info"
    )
