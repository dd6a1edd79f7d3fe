import logging
import os
from dataclasses import dataclass
from typing import Optional

import dotenv
from rich.logging import RichHandler

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """
    Runtime settings for the fan-out service.

    Provider API keys are not settings; they arrive with each request.
    """
    host: str = "127.0.0.1"
    port: int = 3001
    discovery_timeout: float = 12.0
    request_timeout: float = 60.0
    model_cache_ttl: Optional[float] = None
    log_level: str = "INFO"
    openrouter_app_title: str = "KeyBridge"
    openrouter_referer: str = "http://localhost:5173"


def _env_number(name: str, default, cast=float):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %r", name, raw, default)
        return default


def load_settings() -> Settings:
    """
    Build settings from the environment, loading a ``.env`` file first if present.

    Returns:
        Settings: Populated settings; invalid numeric values fall back to defaults.
    """
    dotenv.load_dotenv()
    defaults = Settings()
    return Settings(
        host=os.getenv("LLMFANOUT_HOST", defaults.host),
        port=_env_number("LLMFANOUT_PORT", defaults.port, int),
        discovery_timeout=_env_number("LLMFANOUT_DISCOVERY_TIMEOUT", defaults.discovery_timeout),
        request_timeout=_env_number("LLMFANOUT_REQUEST_TIMEOUT", defaults.request_timeout),
        model_cache_ttl=_env_number("LLMFANOUT_MODEL_CACHE_TTL", defaults.model_cache_ttl),
        log_level=os.getenv("LLMFANOUT_LOG_LEVEL", defaults.log_level).upper(),
        openrouter_app_title=os.getenv("OPENROUTER_APP_TITLE", defaults.openrouter_app_title),
        openrouter_referer=os.getenv("OPENROUTER_REFERER", defaults.openrouter_referer),
    )


def configure_logging(level: str = "INFO") -> None:
    """Route log records through rich for readable console output."""
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
