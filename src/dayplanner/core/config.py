"""
Application configuration with layered loading.

Configuration precedence (highest to lowest):
1. Environment variables
2. config.yml values
3. Default values defined here

The same settings object drives the completion client, the connectivity
monitor and the confidence threshold table.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import timezone, timedelta
import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load .env file first (lowest priority, will be overridden by config.yml and env vars)
load_dotenv()

logger = logging.getLogger(__name__)


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "config.example.yml").exists() or (parent / "pyproject.toml").exists():
            return parent
    return Path(os.getenv("DAYPLANNER_ROOT", str(Path.cwd())))


def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from YAML file if it exists."""
    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}")
        return {}

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config file {config_path}: {e}")
        return {}


def _get_nested(d: Dict, *keys, default=None):
    """Safely get a nested dictionary value."""
    for key in keys:
        if isinstance(d, dict):
            d = d.get(key, default)
        else:
            return default
    return d if d is not None else default


def _env_or_yaml(env_key: str, yaml_config: Dict, *yaml_keys, default=None):
    """Get value from environment variable, falling back to YAML config, then default."""
    env_value = os.getenv(env_key)
    if env_value is not None:
        return env_value

    yaml_value = _get_nested(yaml_config, *yaml_keys)
    if yaml_value is not None:
        return yaml_value

    return default


PROJECT_ROOT = _find_project_root()
YAML_CONFIG = _load_yaml_config(PROJECT_ROOT / "config.yml")


# Dotted config.yml key -> environment variable that overrides it
ENV_KEYS: Dict[str, str] = {
    "llm.provider": "DAYPLANNER_LLM_PROVIDER",
    "llm.base_url": "DAYPLANNER_LLM_BASE_URL",
    "llm.local_model": "DAYPLANNER_LOCAL_MODEL",
    "llm.openai_model": "DAYPLANNER_OPENAI_MODEL",
    "llm.openai_api_key": "OPENAI_API_KEY",
    "llm.temperature": "DAYPLANNER_LLM_TEMPERATURE",
    "llm.max_tokens": "DAYPLANNER_LLM_MAX_TOKENS",
    "llm.request_timeout": "DAYPLANNER_REQUEST_TIMEOUT",
    "llm.resource_timeout": "DAYPLANNER_RESOURCE_TIMEOUT",
    "connection.probe_timeout": "DAYPLANNER_PROBE_TIMEOUT",
    "connection.poll_interval": "DAYPLANNER_POLL_INTERVAL",
    "thresholds.create_event": "DAYPLANNER_THRESHOLD_CREATE_EVENT",
    "thresholds.create_goal": "DAYPLANNER_THRESHOLD_CREATE_GOAL",
    "thresholds.create_pillar": "DAYPLANNER_THRESHOLD_CREATE_PILLAR",
    "thresholds.create_chain": "DAYPLANNER_THRESHOLD_CREATE_CHAIN",
    "thresholds.suggest_activities": "DAYPLANNER_THRESHOLD_SUGGEST_ACTIVITIES",
    "thresholds.general_chat": "DAYPLANNER_THRESHOLD_GENERAL_CHAT",
    "user.timezone_offset_hours": "DAYPLANNER_TIMEZONE_OFFSET",
    "auth.api_key": "DAYPLANNER_API_KEY",
    "logging.level": "DAYPLANNER_LOG_LEVEL",
    "logging.logs_path": "DAYPLANNER_LOGS_PATH",
    "logging.format": "DAYPLANNER_LOG_FORMAT",
}

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _setting(key: str, default=None):
    """Layered lookup of a dotted config key through its mapped env var."""
    return _env_or_yaml(ENV_KEYS[key], YAML_CONFIG, *key.split("."), default=default)


class LLMConfig(BaseModel):
    """Completion provider configuration."""
    provider: str = _setting("llm.provider", default="local")
    base_url: str = _setting("llm.base_url", default="http://localhost:1234")
    local_model: str = _setting("llm.local_model", default="openai/gpt-oss-20b")
    openai_model: str = _setting("llm.openai_model", default="gpt-4o-mini")
    openai_api_key: str = _setting("llm.openai_api_key", default="")
    temperature: float = float(_setting("llm.temperature", default=0.7))
    max_tokens: int = int(_setting("llm.max_tokens", default=1000))
    request_timeout: float = float(_setting("llm.request_timeout", default=30))
    resource_timeout: float = float(_setting("llm.resource_timeout", default=60))


class ConnectionConfig(BaseModel):
    """Connectivity health check configuration."""
    probe_timeout: float = float(_setting("connection.probe_timeout", default=5))
    poll_interval: float = float(_setting("connection.poll_interval", default=30))


class ThresholdConfig(BaseModel):
    """Minimum confidence per action before a created item is auto-applied."""
    create_event: float = float(_setting("thresholds.create_event", default=0.7))
    create_goal: float = float(_setting("thresholds.create_goal", default=0.8))
    create_pillar: float = float(_setting("thresholds.create_pillar", default=0.85))
    create_chain: float = float(_setting("thresholds.create_chain", default=0.75))
    suggest_activities: float = float(_setting("thresholds.suggest_activities", default=0.6))
    general_chat: float = float(_setting("thresholds.general_chat", default=0.0))


class UserConfig(BaseModel):
    """User-specific configuration."""
    timezone_offset_hours: int = int(_setting("user.timezone_offset_hours", default=0))

    @property
    def timezone(self):
        """Get user's timezone as a timezone object."""
        return timezone(timedelta(hours=self.timezone_offset_hours))


class AuthConfig(BaseModel):
    """HTTP API authentication configuration."""
    api_key: Optional[str] = _setting("auth.api_key", default=None)


class LoggingConfig(BaseModel):
    """Level, format and optional log directory for the ``dayplanner`` logger."""
    level: str = _setting("logging.level", default="INFO")
    format: str = _setting("logging.format", default=DEFAULT_LOG_FORMAT)
    logs_path: Optional[str] = _setting("logging.logs_path", default=None)


class Settings(BaseModel):
    """
    Application settings with layered configuration.

    Configuration is loaded from (in order of precedence):
    1. Environment variables
    2. config.yml
    3. Default values
    """

    llm: LLMConfig = Field(default_factory=LLMConfig)
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def user_timezone(self):
        """User timezone shortcut."""
        return self.user.timezone

    @property
    def api_key(self) -> Optional[str]:
        """HTTP API key shortcut."""
        return self.auth.api_key


settings = Settings()


def get_config_source(key: str) -> str:
    """
    Get the source of a configuration value.

    Args:
        key: Dotted config.yml key, e.g. "connection.poll_interval"

    Returns 'env', 'yaml', or 'default'.
    """
    env_key = ENV_KEYS.get(key)
    if env_key and os.getenv(env_key) is not None:
        return "env"

    keys = key.split(".")
    yaml_value = _get_nested(YAML_CONFIG, *keys)
    if yaml_value is not None:
        return "yaml"

    return "default"


def reload_config() -> Settings:
    """Reload configuration from files and re-apply the logging settings."""
    global YAML_CONFIG, settings
    YAML_CONFIG = _load_yaml_config(PROJECT_ROOT / "config.yml")
    settings = Settings()

    from dayplanner.core.logging import configure_logging
    configure_logging(settings.logging)

    logger.info("Configuration reloaded")
    return settings
