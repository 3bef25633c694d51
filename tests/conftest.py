import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from iptv_proxy.core.config import Settings
from iptv_proxy.main import create_app
from iptv_proxy.modules.catalog.schemas import ExtractionOptions, StreamRecord
from iptv_proxy.modules.catalog.service import InMemoryStreamCatalog
from iptv_proxy.modules.extraction.process import ExtractionProcessManager
from iptv_proxy.modules.tokens.store import TokenStore

FAKE_TOOL = Path(__file__).parent / "fake_streamlink.py"
PROXY_BASE = "http://relay.test/api/proxy/streamlink"

class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta):
        self.now += delta

class FakeProcess:
    """Stands in for ExtractionProcess: reports a fixed port or fails."""

    def __init__(self, port: int = 51234, error: Exception | None = None):
        self.port_number = port
        self.error = error
        self.stop_calls = 0

    @property
    def stopped(self) -> bool:
        return self.stop_calls > 0

    async def wait_for_port(self) -> int:
        if self.error is not None:
            await self.stop()
            raise self.error
        return self.port_number

    async def stop(self):
        self.stop_calls += 1

class FakeProcessManager:
    def __init__(self, process: FakeProcess | None = None, spawn_error: Exception | None = None):
        self.process = process or FakeProcess()
        self.spawn_error = spawn_error
        self.started = []

    async def start(self, stream_url, options=None):
        self.started.append((stream_url, options))
        if self.spawn_error is not None:
            raise self.spawn_error
        return self.process

def loopback_client(body: bytes = b"ABCD", status: int = 200, headers=None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "127.0.0.1"
        return httpx.Response(
            status,
            headers=headers or {"content-type": "application/octet-stream", "server": "streamlink"},
            stream=httpx.ByteStream(body)
        )
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def store(clock):
    return TokenStore(clock=clock)

@pytest.fixture
def settings():
    return Settings(_env_file=None, PROXY_PUBLIC_URL=PROXY_BASE)

@pytest.fixture
def direct_stream():
    return StreamRecord(
        id="1",
        name="Public News",
        url="https://example.com/live/news.m3u8",
        category="News",
        logo="https://example.com/news.png",
    )

@pytest.fixture
def proxied_stream():
    return StreamRecord(
        id="42",
        name="Twitch Channel",
        url="https://www.twitch.tv/somechannel",
        category="Gaming",
        use_streamlink=True,
        platform="twitch",
        streamlink_options=ExtractionOptions(quality="720p", use_proxy=True, secure_token_enabled=True),
    )

@pytest.fixture
def catalog(direct_stream, proxied_stream):
    return InMemoryStreamCatalog([direct_stream, proxied_stream])

@pytest.fixture
def process_manager():
    return FakeProcessManager()

@pytest.fixture
def make_client(settings, catalog, store, process_manager):
    def _make(http_client: httpx.AsyncClient | None = None, **overrides) -> TestClient:
        app = create_app(
            settings=overrides.pop("settings", settings),
            catalog=overrides.pop("catalog", catalog),
            token_store=overrides.pop("token_store", store),
            process_manager=overrides.pop("process_manager", process_manager),
            http_client=http_client if http_client is not None else loopback_client(),
        )
        return TestClient(app)
    return _make

@pytest.fixture
def tool_manager():
    return ExtractionProcessManager(
        command=[sys.executable, str(FAKE_TOOL)],
        port_timeout=5.0,
        kill_grace=1.0
    )
