import time

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.dependencies import get_current_user, get_sensay_client, get_settings, get_task_store
from app.main import app
from app.models.tasks import Task
from app.services.sensay import SensayClient

TEST_JWT_SECRET = "test-jwt-secret-for-unit-tests"
TEST_USER_ID = "test-user-00000000-0000-0000-0000-000000000001"
TEST_BASE_URL = "https://api.sensay.test/v1"
TEST_REPLICA_ID = "replica-0000"
TEST_SECRET = "org-secret"


def make_token(
    user_id: str = TEST_USER_ID,
    *,
    secret: str = TEST_JWT_SECRET,
    algorithm: str = "HS256",
    audience: str = "authenticated",
    expires_in: int = 3600,
    extra_claims: dict | None = None,
) -> str:
    """Generate a Supabase-style JWT for testing."""
    payload = {
        "sub": user_id,
        "aud": audience,
        "exp": int(time.time()) + expires_in,
        "iat": int(time.time()),
    }
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, secret, algorithm=algorithm)


def make_settings(**overrides) -> Settings:
    values = {
        "sensay_api_url_base": TEST_BASE_URL,
        "sensay_organization_secret": TEST_SECRET,
        "sensay_replica_id": TEST_REPLICA_ID,
        "supabase_url": "https://db.supabase.test",
        "supabase_service_key": "service-key",
        "supabase_jwt_secret": TEST_JWT_SECRET,
    }
    values.update(overrides)
    return Settings(**values)


def completion(content: str = "Hello from the replica") -> httpx.Response:
    """A 200 chat-completion body in the OpenAI-like shape."""
    return httpx.Response(
        200,
        json={"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]},
    )


class FakeUpstream:
    """Scripted responses for httpx.MockTransport; records every request."""

    def __init__(self, *responses, on_request=None):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.on_request = on_request

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request:
            self.on_request(request)
        if not self.responses:
            return httpx.Response(503, text="no scripted response")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


class FakeTaskStore:
    """In-memory stand-in for TaskStore that counts calls."""

    def __init__(self, texts=(), *, user_id: str = TEST_USER_ID, fail_lists=(), fail_writes=False):
        self.rows: list[Task] = []
        self._next_id = 1
        self.calls: list[tuple] = []
        self.fail_lists = set(fail_lists)   # 1-based list() call numbers that raise
        self.fail_writes = fail_writes
        self._list_calls = 0
        for item in texts:
            text, completed = item if isinstance(item, tuple) else (item, False)
            self._add(user_id, text, completed)

    def _add(self, user_id: str, text: str, completed: bool = False, *, first: bool = False) -> Task:
        task = Task(id=self._next_id * 10, text=text, completed=completed, user_id=user_id)
        self._next_id += 1
        if first:
            self.rows.insert(0, task)
        else:
            self.rows.append(task)
        return task

    def list(self, user_id):
        self.calls.append(("list", user_id))
        self._list_calls += 1
        if self._list_calls in self.fail_lists:
            raise RuntimeError("datastore unreachable")
        return [t.model_copy() for t in self.rows if t.user_id == user_id]

    def get(self, user_id, task_id):
        self.calls.append(("get", user_id, task_id))
        for t in self.rows:
            if str(t.id) == str(task_id) and t.user_id == user_id:
                return t.model_copy()
        return None

    def create(self, user_id, text):
        self.calls.append(("create", user_id, text))
        if self.fail_writes:
            raise RuntimeError("insert failed")
        return self._add(user_id, text).model_copy()

    def set_completed(self, user_id, task_id, completed):
        self.calls.append(("set_completed", user_id, task_id, completed))
        if self.fail_writes:
            raise RuntimeError("update failed")
        for t in self.rows:
            if str(t.id) == str(task_id) and t.user_id == user_id:
                t.completed = completed
                return t.model_copy()
        return None

    def delete(self, user_id, task_id):
        self.calls.append(("delete", user_id, task_id))
        if self.fail_writes:
            raise RuntimeError("delete failed")
        self.rows = [t for t in self.rows if not (str(t.id) == str(task_id) and t.user_id == user_id)]

    @property
    def writes(self):
        return [c for c in self.calls if c[0] in ("create", "set_completed", "delete")]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> FakeTaskStore:
    return FakeTaskStore(["buy milk", "call mom", "write report"])


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream(completion())


@pytest.fixture
def api_client(settings, store, upstream):
    """TestClient with the datastore and the Sensay transport replaced."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_task_store] = lambda: store
    app.dependency_overrides[get_sensay_client] = lambda: SensayClient(
        settings, transport=upstream.transport
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(store):
    """TestClient with a pre-authenticated user (dependency override)."""

    async def _override_user():
        return TEST_USER_ID

    app.dependency_overrides[get_current_user] = _override_user
    app.dependency_overrides[get_task_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def valid_token() -> str:
    return make_token()
