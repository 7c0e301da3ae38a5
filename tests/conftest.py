"""Shared fixtures: settings pointing at tmp_path and a stub upstream."""

from typing import Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from catcache.settings import ProxySettings
from tests._data import UPSTREAM_URL


class StubUpstream:
    """
    httpx MockTransport handler standing in for http.cat.

    Serves whatever is in `images`, 404 for anything else, and fails every
    request with a connection error while `enabled` is False.
    """

    def __init__(self):
        self.images: Dict[str, bytes] = {}
        self.requests: List[httpx.Request] = []
        self.enabled = True

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.enabled:
            raise httpx.ConnectError("upstream unreachable", request=request)

        key = request.url.path[1:]
        if key in self.images:
            return httpx.Response(200, content=self.images[key], headers={"content-type": "image/jpeg"})
        return httpx.Response(404, content=b"")

    @property
    def fetched_keys(self) -> List[str]:
        return [r.url.path[1:] for r in self.requests]


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def settings(cache_dir) -> ProxySettings:
    return ProxySettings(host="127.0.0.1", port=8080, cache_dir=cache_dir, upstream_url=UPSTREAM_URL)


@pytest.fixture
def upstream() -> StubUpstream:
    return StubUpstream()


@pytest.fixture
def client(settings, upstream):
    app = create_app(settings, transport=httpx.MockTransport(upstream))
    with TestClient(app) as c:
        yield c
