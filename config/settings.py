# config/settings.py
"""
Alfredo Voice — Settings
========================
Environment-driven configuration for the voice pipeline.
Values come from the process environment or a local .env file.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# LANGUAGE MODEL
# =============================================================================
GOOGLE_API_KEY: Optional[str] = os.getenv("GOOGLE_API_KEY") or None
GEMINI_MODEL = os.getenv("ALFREDO_GEMINI_MODEL", "gemini-1.5-flash-latest")

GENERATION_CONFIG = {
    "temperature": 0.7,
    "top_k": 40,
    "top_p": 0.95,
    "max_output_tokens": 512,
}

# =============================================================================
# VOICE SESSION
# =============================================================================
VOICE_CONFIG = {
    "app_name": "alfredo_voice",
    "assistant_name": "Alfredo",
    "silence_timeout_sec": float(os.getenv("ALFREDO_SILENCE_TIMEOUT", "1.5")),
    "language": os.getenv("ALFREDO_SPEECH_LANG", "en-US"),
    "speech_rate": float(os.getenv("ALFREDO_SPEECH_RATE", "0.9")),
    "speech_pitch": float(os.getenv("ALFREDO_SPEECH_PITCH", "1.0")),
    "default_low_stock_threshold": 1.0,
    "fallback_recipe_max_ingredients": 5,
}

# =============================================================================
# STORAGE
# =============================================================================
# Empty string keeps collaborator state in memory only.
DATA_FILE = os.getenv("ALFREDO_DATA_FILE", "")

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = os.getenv("ALFREDO_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for scripts and the API server."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL), logging.INFO),
        format=LOG_FORMAT,
    )


__all__ = [
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "GENERATION_CONFIG",
    "VOICE_CONFIG",
    "DATA_FILE",
    "LOG_LEVEL",
    "configure_logging",
]
