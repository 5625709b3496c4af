# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared test fixtures

Provides temp-dir backed stores, a configured app with a live TestClient,
token helpers and a fake WebSocket for workflow tests.
"""

from pathlib import Path
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from dotportion.core.config import Config
from dotportion.core.security import create_access_token
from dotportion.db.store import DocumentStore
from dotportion.main import create_app


# ============================================================================
# Config and storage
# ============================================================================

@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config pointing at temp dirs with short orchestrator waits"""
    return Config(
        data_path=str(tmp_path / "data"),
        executions_path=str(tmp_path / "executions"),
        frontend_url="http://frontend.test",
        base_url="http://api.test",
        websocket_url="ws://api.test/ws",
        connection_wait_timeout=0.2,
        node_timeout=5.0,
        max_steps=50,
    )


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
    """Document store in a temp directory"""
    return DocumentStore(tmp_path / "store")


# ============================================================================
# Application
# ============================================================================

@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def client(app):
    """
    TestClient with startup run.

    Used as a context manager so every request and background execution
    shares one event loop.
    """
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def run(client):
    """Run a coroutine function on the app's event loop"""
    def _run(fn, *args):
        return client.portal.call(fn, *args)
    return _run


@pytest.fixture
def make_user(client, run):
    """Insert a user document and return it"""
    from dotportion.db.collections import USERS, get_collection
    from dotportion.models.user import User

    def _make_user(email: str = "ada@example.com", name: str = "ada", role: str = "user", **fields):
        users = get_collection(client.app.state.store, USERS)
        document = User(email=email, name=name, full_name=fields.pop("full_name", "Ada Lovelace"), role=role, **fields)
        return run(users.insert_one, document.to_document())

    return _make_user


def auth_headers(user: Dict[str, Any]) -> Dict[str, str]:
    token = create_access_token({
        "userId": user["_id"],
        "email": user["email"],
        "name": user["name"],
        "role": user.get("role", "user"),
    })
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# WebSocket double
# ============================================================================

class FakeWebSocket:
    """Records what the server would have sent"""

    def __init__(self, fail_on_send: bool = False):
        self.accepted = False
        self.closed_with = None
        self.sent: List[Dict[str, Any]] = []
        self.fail_on_send = fail_on_send

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.fail_on_send:
            raise RuntimeError("socket is gone")
        self.sent.append(message)

    async def close(self, code: int = 1000):
        self.closed_with = code

    @property
    def events(self) -> List[str]:
        return [m["event"] for m in self.sent]


@pytest.fixture
def fake_ws():
    """Factory for FakeWebSocket instances"""
    return FakeWebSocket


@pytest.fixture
def headers_for():
    """Bearer headers for a stored user"""
    return auth_headers
