"""
MediFlow Gateway: Configuration
================================
Environment-driven settings. Secrets are loaded from the project-level .env
file; values are re-read on every ``get_settings()`` call so a credential
added or removed at runtime is seen by the next request.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

APP_NAME = "MediFlow Analysis Gateway"
APP_VERSION = "1.0.0"

# ── Gemini defaults ─────────────────────────────────────────────────────
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT_SECONDS = 30.0

# ── CORS ────────────────────────────────────────────────────────────────
CORS_ALLOW_ORIGINS = ["*"]
CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


@dataclass(frozen=True)
class Settings:
    """Snapshot of the environment-provided settings."""
    gemini_api_key: Optional[str]
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_base_url: str = GEMINI_BASE_URL
    gemini_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = "INFO"
    port: int = 8000

    @property
    def has_gemini_credential(self) -> bool:
        return bool(self.gemini_api_key)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_settings() -> Settings:
    """Read settings from the current process environment."""
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", GEMINI_BASE_URL).rstrip("/"),
        gemini_timeout_seconds=_float_env("GEMINI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(_float_env("PORT", 8000)),
    )
