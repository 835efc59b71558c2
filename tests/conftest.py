"""
Shared fixtures for Netlify Bridge tests.
"""

import fnmatch
import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient
from redis.exceptions import WatchError

from netlify_bridge.config.settings import Settings
from netlify_bridge.core.mattermost_client import MattermostClient
from netlify_bridge.dependencies import (
    get_app_settings,
    get_http_client,
    get_mattermost_client,
    get_redis_client,
)
from netlify_bridge.main import create_app
from netlify_bridge.repositories.oauth_state_repository import OAuthStateRepository
from netlify_bridge.repositories.subscription_repository import SubscriptionRepository
from netlify_bridge.repositories.token_repository import TokenRepository
from netlify_bridge.utils.encryption import TokenCipher

SERVICE_URL = "https://bridge.example.com"
MATTERMOST_URL = "https://chat.example.com"
NETLIFY_API = "https://api.netlify.com/api/v1"
ACTION_SECRET = "test-action-secret-0123456789"
ENCRYPTION_KEY = "test-encryption-key"

USER_ID = "user1234567890abcdefghijkl"
CHANNEL_ID = "chan1234567890abcdefghijkl"
BOT_USER_ID = "bot01234567890abcdefghijkl"


class FakeRedis:
    """In-memory stand-in for the subset of redis.asyncio.Redis in use."""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.expiry: Dict[str, Optional[int]] = {}
        # called once, right after the next watched read inside a transaction
        self.on_watched_read: Optional[Callable[[], None]] = None

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.store[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                self.expiry.pop(key, None)
                removed += 1
        return removed

    async def getdel(self, key: str) -> Optional[str]:
        self.expiry.pop(key, None)
        return self.store.pop(key, None)

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self) -> bool:
        return True

    async def transaction(self, func, *watches: str, value_from_callable: bool = False, **kwargs):
        while True:
            pipe = FakePipeline(self, watches)
            try:
                value = await func(pipe)
                results = await pipe.execute()
            except WatchError:
                continue
            return value if value_from_callable else results


class FakePipeline:
    """
    WATCH/MULTI pipeline over FakeRedis. Commands before multi() run at
    once; queued ones are dropped with a WatchError if a watched key
    changed in the meantime.
    """

    def __init__(self, redis: FakeRedis, watches: Tuple[str, ...]):
        self.redis = redis
        self.watched = {key: redis.store.get(key) for key in watches}
        self.queued: List[Tuple[str, tuple, dict]] = []
        self.in_multi = False

    async def get(self, key: str) -> Optional[str]:
        value = await self.redis.get(key)
        if self.redis.on_watched_read is not None:
            hook, self.redis.on_watched_read = self.redis.on_watched_read, None
            hook()
        return value

    def multi(self) -> None:
        self.in_multi = True

    def set(self, *args, **kwargs) -> "FakePipeline":
        self.queued.append(("set", args, kwargs))
        return self

    def delete(self, *args) -> "FakePipeline":
        self.queued.append(("delete", args, {}))
        return self

    async def execute(self) -> list:
        if any(self.redis.store.get(key) != value for key, value in self.watched.items()):
            raise WatchError("Watched variable changed.")
        return [await getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self.queued]


Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class RecordingTransport:
    """
    Routes outbound requests by method and URL to canned responses and
    keeps every request for assertions.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Responder] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, responder: Responder) -> None:
        self.routes[(method.upper(), url)] = responder

    def add_json(self, method: str, url: str, payload: Any, status_code: int = 200) -> None:
        self.add(method, url, httpx.Response(status_code, json=payload))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url.copy_with(query=None))
        responder = self.routes.get((request.method, url))
        if responder is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {url}"})
        if callable(responder):
            return responder(request)
        return responder

    def sent(self, method: str, url: str) -> List[httpx.Request]:
        return [
            request for request in self.requests
            if request.method == method.upper() and str(request.url.copy_with(query=None)) == url
        ]

    @staticmethod
    def json_body(request: httpx.Request) -> Any:
        return json.loads(request.content.decode("utf-8"))


def make_settings(**overrides) -> Settings:
    values = {
        "SERVICE_URL": SERVICE_URL,
        "MATTERMOST_URL": MATTERMOST_URL,
        "MATTERMOST_BOT_TOKEN": "bot-token",
        "NETLIFY_OAUTH_CLIENT_ID": "client-id",
        "NETLIFY_OAUTH_SECRET": "client-secret",
        "ENCRYPTION_KEY": ENCRYPTION_KEY,
        "ACTION_SECRET": ACTION_SECRET,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture(scope="session")
def cipher() -> TokenCipher:
    return TokenCipher(ENCRYPTION_KEY)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
async def http_client(transport):
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport.handler))
    yield client
    await client.aclose()


@pytest.fixture
def mattermost():
    """Bot client double; every API method is an AsyncMock."""
    client = AsyncMock(spec=MattermostClient)
    client.get_bot_user_id.return_value = BOT_USER_ID
    client.create_post.return_value = {"id": "post-id"}
    client.send_ephemeral_post.return_value = {"id": "ephemeral-id"}
    return client


@pytest.fixture
def token_repository(fake_redis, cipher) -> TokenRepository:
    return TokenRepository(fake_redis, cipher=cipher)


@pytest.fixture
def subscription_repository(fake_redis) -> SubscriptionRepository:
    return SubscriptionRepository(fake_redis)


@pytest.fixture
def state_repository(fake_redis, settings) -> OAuthStateRepository:
    return OAuthStateRepository(fake_redis, ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS)


@pytest.fixture
async def connected_user(token_repository) -> str:
    await token_repository.save_token(USER_ID, "netlify-access-token")
    return USER_ID


def site_payload(site_id: str = "site-1", name: str = "docs", branch: Optional[str] = "main") -> Dict[str, Any]:
    return {
        "id": site_id,
        "name": name,
        "url": f"http://{name}.netlify.app",
        "ssl_url": f"https://{name}.netlify.app",
        "admin_url": f"https://app.netlify.com/sites/{name}",
        "custom_domain": None,
        "account_name": "Team",
        "updated_at": "2024-03-01T10:20:30.000Z",
        "build_settings": {"repo_url": f"https://github.com/acme/{name}", "repo_branch": branch},
    }


@pytest.fixture
def app(settings, fake_redis, transport, mattermost):
    """Application wired to in-memory Redis, mocked HTTP and a mocked bot."""
    async def fake_redis_client():
        return fake_redis

    application = create_app()
    application.dependency_overrides[get_app_settings] = lambda: settings
    application.dependency_overrides[get_redis_client] = fake_redis_client
    application.dependency_overrides[get_http_client] = (
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(transport.handler))
    )
    application.dependency_overrides[get_mattermost_client] = lambda: mattermost
    return application


@pytest.fixture
def client(app):
    """Test client; the lifespan is not started so no real Redis is needed."""
    return TestClient(app)


def connect_user(fake_redis: FakeRedis, cipher: TokenCipher, user_id: str = USER_ID, token: str = "netlify-access-token") -> None:
    fake_redis.store[TokenRepository.token_key(user_id)] = cipher.encrypt(token)
