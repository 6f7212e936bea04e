"""
Runtime configuration for the Form Friend API.

Values come from environment variables (optionally via a .env file in the
project root). API keys belong in .env, never in version control.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def _get_env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return v.strip() if v is not None and v.strip() else default


def _get_env_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, str(default))).strip())
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, str(default))).strip())
    except ValueError:
        return default


# Gemini
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "").strip()
GEMINI_MODEL_NAME: str = _get_env_str("GEMINI_MODEL_NAME", "gemini-1.5-flash")
GEMINI_TEMPERATURE: float = _get_env_float("GEMINI_TEMPERATURE", 0.7)
GEMINI_MAX_OUTPUT_TOKENS: int = _get_env_int("GEMINI_MAX_OUTPUT_TOKENS", 1200)

# Server
CORS_ORIGINS = [o.strip() for o in _get_env_str("FORM_FRIEND_CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL: str = _get_env_str("FORM_FRIEND_LOG_LEVEL", "INFO").upper()
