"""
Shared test fixtures: isolated settings, credential factories, a recording
HTTP router for httpx.MockTransport, and a fake live client.
"""
import json
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from mailbridge.domain.entities.credential import Credential, now_ms
from mailbridge.infrastructure.credentials.providers import CachedCredentialProvider
from mailbridge.infrastructure.credentials.store import CredentialStore
from mailbridge.infrastructure.settings import Settings, get_settings

HOUR_MS = 3_600_000

GMAIL_EMAIL = "gina@gmail.example"
GRAPH_EMAIL = "mo@outlook.example"


def make_credential(
    email: str = GMAIL_EMAIL,
    *,
    microsoft: bool = False,
    expires_in_ms: int = HOUR_MS,
    identity_token: Optional[str] = "id-token",
    user_id: Optional[str] = "user-1",
) -> Credential:
    return Credential(
        access_token=f"access-{email}",
        email=email,
        expires_at_epoch_ms=now_ms() + expires_in_ms,
        is_microsoft_account=microsoft,
        backend_identity_token=identity_token,
        backend_user_id=user_id,
    )


Responder = Union[dict, list, Callable[[httpx.Request], httpx.Response], httpx.Response]


class Router:
    """Answers requests by (method, path suffix) and records every request it sees.

    Unrouted requests get a 404.
    """

    def __init__(self):
        self.routes: list[tuple[str, str, Responder, int]] = []
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: Responder = None, status: int = 200) -> "Router":
        self.routes.append((method.upper(), path, {} if body is None else body, status))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, path, body, status in self.routes:
            if request.method == method and request.url.path.endswith(path):
                if callable(body):
                    return body(request)
                if isinstance(body, httpx.Response):
                    return body
                if status in (202, 204):
                    return httpx.Response(status)
                return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": "not routed"})

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path.endswith(path))
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


class FakeLiveClient:
    """In-memory stand-in for a desktop client session."""

    def __init__(self, accounts: list[str], current: Optional[str] = None, switch_delay: int = 0):
        self.accounts = accounts
        self.current = current if current is not None else (accounts[0] if accounts else None)
        self.credentials: dict[str, Credential] = {}
        self.switch_delay = switch_delay
        self.switch_requests: list[str] = []
        self.closed = False
        self._pending: Optional[str] = None
        self._checks = 0

    async def extract_credential(self, email: str) -> Credential:
        return self.credentials[email]

    async def list_linked_accounts(self) -> list[str]:
        return list(self.accounts)

    async def current_account(self) -> Optional[str]:
        if self._pending is not None:
            self._checks += 1
            if self._checks > self.switch_delay:
                self.current, self._pending = self._pending, None
        return self.current

    async def switch_active_account(self, email: str) -> bool:
        self.switch_requests.append(email)
        if email in self.accounts:
            self._pending, self._checks = email, 0
        return True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Point the default settings at a throwaway directory instead of $HOME"""
    config_dir = tmp_path / "default-config"
    monkeypatch.setenv("MAILBRIDGE_CONFIG_DIR", str(config_dir))
    get_settings.cache_clear()
    yield config_dir
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment, with fast account switching"""
    return Settings(
        _env_file=None,
        config_dir=tmp_path,
        account_switch_attempts=5,
        account_switch_interval_ms=1,
    )


@pytest.fixture
def store(settings):
    return CredentialStore(settings=settings)


@pytest.fixture
def router():
    return Router()


@pytest.fixture
def client(router):
    return httpx.AsyncClient(transport=httpx.MockTransport(router))


@pytest.fixture
def gmail_credential():
    return make_credential(GMAIL_EMAIL)


@pytest.fixture
def graph_credential():
    return make_credential(GRAPH_EMAIL, microsoft=True)


@pytest.fixture
def gmail_provider(store, gmail_credential):
    store.put(gmail_credential.email, gmail_credential)
    return CachedCredentialProvider(gmail_credential.email, store=store)


@pytest.fixture
def graph_provider(store, graph_credential):
    store.put(graph_credential.email, graph_credential)
    return CachedCredentialProvider(graph_credential.email, store=store)
