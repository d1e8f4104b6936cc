from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional
from urllib.parse import unquote

import httpx

from ..errors import UpstreamError

logger = logging.getLogger(__name__)

USER_PATH = "/auth/v1/user"
BASE64_PREFIX = "base64-"


def _b64decode(value: str) -> str:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


def access_token_from_cookie(cookie: Optional[str]) -> Optional[str]:
    """Pull the access token out of a Supabase session cookie value.

    The value may be URL-encoded and may carry a ``base64-`` prefix. Its JSON
    payload is either a session object with ``access_token`` or the legacy
    array form ``[access_token, refresh_token, ...]``.
    """
    if not cookie:
        return None
    raw = unquote(cookie.strip())
    if raw.startswith(BASE64_PREFIX):
        try:
            raw = _b64decode(raw[len(BASE64_PREFIX):])
        except (ValueError, UnicodeDecodeError):
            return None
    try:
        payload: Any = json.loads(raw)
    except ValueError:
        return None
    token = None
    if isinstance(payload, dict):
        token = payload.get("access_token")
    elif isinstance(payload, list) and payload:
        token = payload[0]
    if isinstance(token, str) and token.strip():
        return token.strip()
    return None


class SupabaseAuthProvider:
    """Validates credentials against Supabase Auth (GoTrue)."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self, token: str) -> dict:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    def verify_bearer_token(self, token: str) -> Optional[str]:
        if not token:
            return None
        if not self.base_url:
            raise UpstreamError("Auth provider is not configured")
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                res = client.get(f"{self.base_url}{USER_PATH}", headers=self._headers(token))
        except httpx.HTTPError as exc:
            logger.warning("Auth provider unreachable: %s", exc.__class__.__name__)
            raise UpstreamError("Auth provider unavailable") from exc
        if res.status_code in (401, 403):
            return None
        if res.status_code >= 400:
            logger.warning("Auth provider returned HTTP %s", res.status_code)
            raise UpstreamError("Auth provider unavailable")
        try:
            data = res.json()
        except ValueError as exc:
            raise UpstreamError("Auth provider returned an unreadable response") from exc
        user_id = data.get("id") if isinstance(data, dict) else None
        return str(user_id) if user_id else None

    def decode_session_cookie(self, cookie: str) -> Optional[str]:
        token = access_token_from_cookie(cookie)
        if not token:
            return None
        return self.verify_bearer_token(token)
