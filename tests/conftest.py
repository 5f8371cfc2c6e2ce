from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
import pytest

from index_templates.core.models import TransportConfig
from index_templates.remote.client import TemplateClient


@dataclass
class Stub:
    method: str
    url: str
    status: int = 200
    body: Any = None
    auth: tuple[str, str] | None = None
    expect_json: Any = None
    error: Exception | None = None
    calls: int = 0

    def matches(self, request: httpx.Request) -> bool:
        if request.method != self.method or str(request.url) != self.url:
            return False
        if request.headers.get("accept") != "application/json":
            return False
        if self.auth is not None:
            token = base64.b64encode(":".join(self.auth).encode()).decode()
            if request.headers.get("authorization") != f"Basic {token}":
                return False
        if self.expect_json is not None:
            if request.headers.get("content-type") != "application/json":
                return False
            if json.loads(request.content) != self.expect_json:
                return False
        return True

    def respond(self) -> httpx.Response:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if isinstance(self.body, str):
            return httpx.Response(self.status, text=self.body)
        if self.body is None:
            return httpx.Response(self.status)
        return httpx.Response(self.status, json=self.body)


@dataclass
class StubService:
    """Canned responses keyed on method, URL, headers and body; 404 otherwise."""

    stubs: list[Stub] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def stub(self, method: str, url: str, **kwargs: Any) -> Stub:
        item = Stub(method=method, url=url, **kwargs)
        self.stubs.append(item)
        return item

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for item in self.stubs:
            if item.matches(request):
                return item.respond()
        return httpx.Response(404, text=f"no stub for {request.method} {request.url}")

    def calls(self, method: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.method == method]


@pytest.fixture
def service() -> StubService:
    return StubService()


@pytest.fixture
def transport(service: StubService) -> httpx.MockTransport:
    return httpx.MockTransport(service.handler)


@pytest.fixture
def config() -> TransportConfig:
    return TransportConfig(scheme="http", host="localhost", port=9200, timeout=10)


@pytest.fixture
def make_client(
    transport: httpx.MockTransport,
) -> Callable[..., TemplateClient]:
    clients: list[TemplateClient] = []

    def factory(config: TransportConfig) -> TemplateClient:
        client = TemplateClient(config, transport=transport)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def client(make_client, config: TransportConfig) -> TemplateClient:
    return make_client(config)
