from __future__ import annotations

import base64
import json
import sys
from pathlib import Path
from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

COOKIE_NAME = "sb-test-auth-token"

TOKENS = {
    "token-alice": "alice",
    "token-bob": "bob",
}


class FakeAuthProvider:
    def __init__(self, tokens: Dict[str, str]):
        self.tokens = tokens
        self.calls = []

    def verify_bearer_token(self, token: str) -> Optional[str]:
        self.calls.append(("bearer", token))
        return self.tokens.get(token)

    def decode_session_cookie(self, cookie: str) -> Optional[str]:
        from researchopia.services.supabase_auth import access_token_from_cookie

        self.calls.append(("cookie", cookie))
        token = access_token_from_cookie(cookie)
        return self.tokens.get(token) if token else None


def session_cookie(token: str) -> str:
    payload = json.dumps({"access_token": token, "refresh_token": "r"}).encode("utf-8")
    return "base64-" + base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


ALICE = bearer("token-alice")
BOB = bearer("token-bob")


@pytest.fixture()
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    from researchopia import db as db_module

    path = tmp_path / "researchopia.db"
    monkeypatch.setattr(db_module, "DB_PATH", str(path))
    db_module.ensure_db()
    return path


@pytest.fixture()
def conn(db_path: Path):
    from researchopia.db import get_conn

    with get_conn() as connection:
        yield connection


@pytest.fixture()
def auth_provider() -> FakeAuthProvider:
    return FakeAuthProvider(TOKENS)


@pytest.fixture()
def client(db_path: Path, auth_provider: FakeAuthProvider, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SESSION_COOKIE_NAME", COOKIE_NAME)

    from researchopia.auth import get_auth_provider
    from researchopia.main import app

    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def paper(db_path: Path) -> dict:
    from researchopia.db import get_conn
    from researchopia.repository import insert_paper

    with get_conn() as connection:
        return insert_paper(
            connection,
            {"doi": "10.1234/test", "title": "A Test Paper", "year": 2024},
        )
