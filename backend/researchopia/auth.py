"""Request authentication: credential extraction and the auth guard.

A request may carry a Supabase session cookie or an ``Authorization: Bearer``
header. The cookie wins when both are present. Extraction never fails on a
missing or bad credential; it returns ``None`` and leaves the decision to
:func:`require`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Protocol

from fastapi import Depends, Request

from . import config
from .errors import Unauthenticated, UpstreamError
from .services.supabase_auth import SupabaseAuthProvider

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"^\s*bearer\s+(\S+)\s*$", re.IGNORECASE)


class CredentialSource(str, Enum):
    COOKIE = "cookie"
    BEARER = "bearer"


@dataclass(frozen=True)
class Identity:
    user_id: str
    source: CredentialSource

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("Identity requires a non-empty user_id")


class AuthProvider(Protocol):
    def verify_bearer_token(self, token: str) -> Optional[str]: ...

    def decode_session_cookie(self, cookie: str) -> Optional[str]: ...


def read_session_cookie(cookies: Mapping[str, str], name: str) -> Optional[str]:
    """Return the session cookie, joining ``name.0``, ``name.1``, ... chunks when split."""
    value = cookies.get(name)
    if value:
        return value
    chunks = []
    index = 0
    while f"{name}.{index}" in cookies:
        chunks.append(cookies[f"{name}.{index}"])
        index += 1
    return "".join(chunks) or None


def parse_bearer(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    match = _BEARER_RE.match(header)
    return match.group(1) if match else None


def extract(request: Request, provider: AuthProvider) -> Optional[Identity]:
    cookie = read_session_cookie(request.cookies, config.session_cookie_name())
    if cookie:
        user_id = provider.decode_session_cookie(cookie)
        if user_id:
            return Identity(user_id=user_id, source=CredentialSource.COOKIE)
    token = parse_bearer(request.headers.get("Authorization"))
    if token:
        user_id = provider.verify_bearer_token(token)
        if user_id:
            return Identity(user_id=user_id, source=CredentialSource.BEARER)
    return None


def require(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise Unauthenticated("Authentication required")
    return identity


def get_auth_provider() -> AuthProvider:
    return SupabaseAuthProvider(
        config.supabase_url(),
        api_key=config.supabase_anon_key(),
        timeout=config.auth_timeout(),
    )


def get_identity(
    request: Request, provider: AuthProvider = Depends(get_auth_provider)
) -> Optional[Identity]:
    return extract(request, provider)


def get_optional_identity(
    request: Request, provider: AuthProvider = Depends(get_auth_provider)
) -> Optional[Identity]:
    """Identity for read endpoints; an unreachable auth provider degrades to anonymous."""
    try:
        return extract(request, provider)
    except UpstreamError:
        logger.warning(
            "Auth provider failed on %s %s; serving anonymously",
            request.method,
            request.url.path,
        )
        return None
