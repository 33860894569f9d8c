import asyncio
import inspect
import os
import sys
from pathlib import Path
from types import SimpleNamespace

# Configure before any import that might read settings
os.environ.setdefault("TEST_MODE", "true")
os.environ.setdefault("USE_MEMORY_BACKENDS", "true")
os.environ.setdefault("LOG_JSON", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from chatrelay.app import create_app  # noqa: E402
from chatrelay.config import Settings, reset_settings_cache  # noqa: E402
from chatrelay.service.auth import MemoryIdentityProvider  # noqa: E402
from chatrelay.service.llm import CompletionService  # noqa: E402
from chatrelay.service.runtime import Runtime  # noqa: E402
from chatrelay.storage.memory import MemoryChatStore  # noqa: E402

TEST_EMAIL = "a@b.com"
TEST_PASSWORD = "x"


class RecordingIdentityProvider(MemoryIdentityProvider):
    """Memory provider that records every call made to it."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = []

    def resolve_identity(self, token):
        self.calls.append(("resolve_identity", token))
        return super().resolve_identity(token)

    def register(self, email, password):
        self.calls.append(("register", email))
        return super().register(email, password)

    def authenticate(self, email, password):
        self.calls.append(("authenticate", email))
        return super().authenticate(email, password)

    def invalidate_session(self, token):
        self.calls.append(("invalidate_session", token))
        return super().invalidate_session(token)


class FakeCompletions:
    """Stands in for ``client.chat.completions`` of the OpenAI SDK."""

    def __init__(self, reply: str = "Hello from the model") -> None:
        self.reply = reply
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(role="assistant", content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


@pytest.fixture(autouse=True)
def reset_settings_state():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings():
    return Settings(use_memory_backends=True, test_mode=True)


@pytest.fixture
def store():
    return MemoryChatStore()


@pytest.fixture
def identity_provider():
    return RecordingIdentityProvider()


@pytest.fixture
def completions():
    return FakeCompletions()


@pytest.fixture
def runtime(settings, store, identity_provider, completions):
    completion = CompletionService(
        settings.completion_model,
        client=SimpleNamespace(chat=SimpleNamespace(completions=completions)),
    )
    return Runtime(
        settings,
        store=store,
        identity_provider=identity_provider,
        completion=completion,
    )


@pytest.fixture
def client(runtime):
    return TestClient(create_app(runtime))


@pytest.fixture
def access_token(client):
    """Sign up and log in the default test user, returning the issued token."""
    client.post("/auth/signup", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})
    response = client.post(
        "/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD}
    )
    return response.json()["accessToken"]


@pytest.fixture
def auth_headers(access_token):
    return {"Authorization": f"Bearer {access_token}"}


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")
