from __future__ import annotations

import os
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

load_dotenv(os.path.join(BASE_DIR, ".env"))

SCORE_MIN = 1
SCORE_MAX = 10
COMMENT_MAX_LENGTH = 5000
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def supabase_url() -> str:
    return os.getenv("SUPABASE_URL", "").strip().rstrip("/")


def supabase_anon_key() -> str:
    return os.getenv("SUPABASE_ANON_KEY", "").strip()


def auth_timeout() -> float:
    return float(os.getenv("AUTH_TIMEOUT", "10"))


def _project_ref(url: str) -> Optional[str]:
    host = urlparse(url).hostname or ""
    if not host:
        return None
    return host.split(".")[0]


def session_cookie_name() -> str:
    explicit = os.getenv("SESSION_COOKIE_NAME", "").strip()
    if explicit:
        return explicit
    ref = _project_ref(supabase_url())
    if ref:
        return f"sb-{ref}-auth-token"
    return "sb-auth-token"


def cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    return [item.strip() for item in raw.split(",") if item.strip()]


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
