import os
import sys
import tempfile
from pathlib import Path

import httpx
import pytest

os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "smartcart-test.log"))
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from smartcart.data.api_client import SmartCartClient
from smartcart.offline.storage import OfflineStorage

BASE_URL = "http://smartcart.test"


class Recorder:
    """Routes requests to canned responses and remembers what was sent."""

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, response):
        self.routes[(method.upper(), path)] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, text="Not Found")
        if callable(route):
            return route(request)
        if isinstance(route, Exception):
            raise route
        return route


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_client(recorder):
    created = []

    def factory(**kwargs) -> SmartCartClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(recorder), base_url=BASE_URL)
        kwargs.setdefault("retry_base_delay", 0)
        kwargs.setdefault("offline_mode", False)
        kwargs.setdefault("token", "")
        client = SmartCartClient(base_url=BASE_URL, http_client=http, **kwargs)
        created.append(client)
        return client

    return factory


@pytest.fixture
def storage(tmp_path):
    return OfflineStorage(path=tmp_path / "offline.json")
