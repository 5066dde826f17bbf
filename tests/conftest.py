"""
DayPlanner Test Configuration

Shared fixtures and configuration for pytest.
"""
import json
from datetime import date, datetime
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from dayplanner.core.config import ThresholdConfig
from dayplanner.models.domain import EnergyType, GlassMood
from dayplanner.models.schemas import (
    AIActionType,
    ConnectionStatus,
    DayContext,
    MessageActionAnalysis,
    UrgencyLevel,
)
from dayplanner.services.intent.thresholds import ThresholdTable

PROJECT_ROOT = Path(__file__).parent.parent

# Tuesday mid-morning, fixed so time extraction is reproducible
FIXED_NOW = datetime(2026, 3, 10, 10, 5)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up common environment variables for testing."""
    monkeypatch.setenv("DAYPLANNER_LLM_PROVIDER", "local")
    monkeypatch.setenv("DAYPLANNER_LLM_BASE_URL", "http://localhost:1234")
    monkeypatch.setenv("DAYPLANNER_API_KEY", "test-api-key")


# =============================================================================
# Pipeline Fixtures
# =============================================================================

@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def day_context(now) -> DayContext:
    """A plain weekday snapshot with nothing scheduled yet."""
    return DayContext(
        date=date(2026, 3, 10),
        current_time=now,
        existing_blocks=[],
        current_energy=EnergyType.DAYLIGHT,
        preferred_emojis=["🌊"],
        available_time=4 * 3600,
        mood=GlassMood.CRYSTAL,
        pillar_guidance=["Protect mornings for deep work"],
    )


@pytest.fixture
def connected_status() -> ConnectionStatus:
    return ConnectionStatus(connected=True, provider="local", endpoint="http://localhost:1234/v1/models")


@pytest.fixture
def disconnected_status() -> ConnectionStatus:
    return ConnectionStatus(
        connected=False,
        provider="local",
        endpoint="http://localhost:1234/v1/models",
        last_error="HTTP 500",
        last_status_code=500,
    )


@pytest.fixture
def thresholds() -> ThresholdTable:
    """Default thresholds regardless of local config.yml or env overrides."""
    return ThresholdTable(ThresholdConfig(
        create_event=0.7,
        create_goal=0.8,
        create_pillar=0.85,
        create_chain=0.75,
        suggest_activities=0.6,
        general_chat=0.0,
    ))


@pytest.fixture
def mock_completion_client():
    """Completion client whose ``complete`` is an AsyncMock."""
    mock = MagicMock()
    mock.provider = "local"
    mock.models_url = "http://localhost:1234/v1/models"
    mock.complete = AsyncMock(return_value="")
    mock.probe = AsyncMock(return_value=ConnectionStatus(connected=True))
    return mock


# =============================================================================
# Helpers
# =============================================================================

def make_analysis(
    action: AIActionType,
    confidence: float = 0.9,
    entities: Optional[dict] = None,
) -> MessageActionAnalysis:
    return MessageActionAnalysis(
        intent=f"User wants {action.value}",
        confidence=confidence,
        recommended_action=action,
        extracted_entities=entities or {},
        urgency=UrgencyLevel.MEDIUM,
        context_alignment=0.8,
    )


def classifier_reply(action: str, confidence: float = 0.9, entities: Optional[dict] = None) -> str:
    """Classifier JSON as a model would send it."""
    return json.dumps({
        "intent": f"User wants {action}",
        "confidence": confidence,
        "recommendedAction": action,
        "extractedEntities": entities or {},
        "urgency": "medium",
        "contextAlignment": 0.8,
    })


def completion_envelope(content) -> dict:
    """OpenAI-style chat completion body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }
