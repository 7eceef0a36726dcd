import json
import time

import httpx
import jwt
import pytest

from app.db.storage import MemoryKeyValueStore
from app.services.session_service import SessionStore

TEST_SECRET = "test-secret"


def make_token(expires_in: float = 3600, **claims) -> str:
    """Signed JWT whose `exp` is `expires_in` seconds from now."""
    payload = {"sub": "user-1", "exp": int(time.time() + expires_in)}
    payload.update(claims)
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def make_user(**overrides) -> dict:
    user = {
        "id": "user-1",
        "full_name": "Jane Wanjiku",
        "email": "jane@example.com",
        "phone": "+254712345678",
        "phone_verified": True,
        "profile_completed": False,
        "kyc_status": "not_submitted",
    }
    user.update(overrides)
    return user


class BackendStub:
    """
    Records requests and answers them from a route table.

    Routes map "METHOD /path" to a (status, body) tuple, a list of such
    tuples consumed in order, or a callable taking the httpx.Request.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def calls(self, method: str, path: str):
        return [r for r in self.requests if r.method == method and r.url.path.endswith(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for key, answer in self.routes.items():
            method, path = key.split(" ", 1)
            if request.method == method and request.url.path.endswith(path):
                if callable(answer):
                    answer = answer(request)
                elif isinstance(answer, list):
                    answer = answer.pop(0) if len(answer) > 1 else answer[0]
                if isinstance(answer, Exception):
                    raise answer
                status, body = answer
                return httpx.Response(status, json=body)
        return httpx.Response(404, json={"detail": "Not Found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content or b"{}")


@pytest.fixture
def storage():
    return MemoryKeyValueStore()


@pytest.fixture
def session_store(storage):
    return SessionStore(storage)
