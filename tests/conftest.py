from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from ddw_trends.backend.app import app, get_http_client
from ddw_trends.backend.config import Settings, get_settings
from ddw_trends.backend.months import last_full_months

from .fakes import FakeUpstream


@pytest.fixture
def settings():
    return Settings(
        threat_api_url="https://fp.test/search/all",
        api_key="test-token",
        credentials_api_url="https://fp.test/search/credentials",
        credentials_scroll_url="https://fp.test/search/scroll",
        throttle_seconds=0,
    )


@pytest.fixture
def months():
    return last_full_months(datetime(2026, 10, 19, 12, 30, tzinfo=timezone.utc))


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def api_client(settings, upstream):
    async def _client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
            yield client

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_http_client] = _client
    yield TestClient(app)
    app.dependency_overrides.clear()
