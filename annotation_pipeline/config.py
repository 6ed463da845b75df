"""
Configuration loading.
Values come from .env, then railway.json (deployment overrides), then the process environment.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_TIMEOUT = 60.0
DEFAULT_MOCK_DELAY = 1.0
DEFAULT_JPEG_QUALITY = 90
DEFAULT_MAX_UPLOAD_SIZE = 20 * 1024 * 1024  # Telegram bot API download limit


def load_railway_config(path: Path = Path("railway.json")) -> bool:
    """Load configuration from railway.json if available."""
    try:
        if path.exists():
            with open(path, 'r') as f:
                config = json.load(f)
            for key, value in config.items():
                os.environ[key] = str(value)
            logger.info(f"Loaded configuration from {path}")
            return True
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading {path}: {e}")
    return False


def _as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value else default
    except ValueError:
        logger.warning(f"Invalid number {value!r}, using default {default}")
        return default


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        logger.warning(f"Invalid integer {value!r}, using default {default}")
        return default


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_MODEL
    openai_timeout: float = DEFAULT_TIMEOUT
    mock_delay: float = DEFAULT_MOCK_DELAY
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    telegram_bot_token: Optional[str] = None
    max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE
    log_level: str = "INFO"

    @property
    def mock_mode(self) -> bool:
        """True when no service credential is configured."""
        return not self.openai_api_key

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            openai_timeout=_as_float(os.getenv("OPENAI_TIMEOUT"), DEFAULT_TIMEOUT),
            mock_delay=_as_float(os.getenv("MOCK_DELAY"), DEFAULT_MOCK_DELAY),
            jpeg_quality=_as_int(os.getenv("JPEG_QUALITY"), DEFAULT_JPEG_QUALITY),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
            max_upload_size=_as_int(os.getenv("MAX_UPLOAD_SIZE"), DEFAULT_MAX_UPLOAD_SIZE),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def load_settings() -> Settings:
    """Load .env first, then override with railway.json if available."""
    load_dotenv()
    load_railway_config()
    return Settings.from_env()
