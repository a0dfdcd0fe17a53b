"""Shared pytest fixtures for Image Relay tests."""

from __future__ import annotations

import json
from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from imagerelay.api.main import create_app
from imagerelay.core.config import RelayConfig
from imagerelay.core.model_registry import Model, ModelRegistry, load_registry

UPSTREAM_BASE = "https://upstream.test/api/rest/v1"

ALL_CAPABILITIES = (
    "transparency",
    "alchemy",
    "photoReal",
    "promptMagic",
    "highContrast",
    "highResolution",
    "expandedDomain",
    "fantasyAvatar",
    "enhancePrompt",
)


def make_model(
    identifier: str,
    supported: tuple[str, ...] = (),
    priority: int | None = None,
    is_default: bool = False,
) -> Model:
    """Build a test model whose backend id is ``backend-<identifier>``."""
    return Model(
        id=f"backend-{identifier}",
        identifier=identifier,
        name=identifier.title(),
        supports={name: name in supported for name in ALL_CAPABILITIES},
        priority=priority,
        is_default=is_default,
    )


class FakeUpstream:
    """Callable handler for :class:`httpx.MockTransport`.

    Routes are registered as ``(method, path) -> (status, json_body)``.
    Every request is recorded in ``requests`` for later assertions.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method, path)] = (status, body)

    def add_sequence(self, method: str, path: str, bodies: list[Any]) -> None:
        """Serve *bodies* in order, repeating the last one."""
        self.routes[(method, path)] = list(bodies)

    def sent_json(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(httpx.URL(UPSTREAM_BASE).path)
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"error": f"no route for {request.method} {path}"})
        if isinstance(route, list):
            body = route.pop(0) if len(route) > 1 else route[0]
            return httpx.Response(200, json=body)
        status, body = route
        return httpx.Response(status, json=body)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def test_config() -> RelayConfig:
    """Configuration pointing at the fake upstream, ignoring any .env file."""
    return RelayConfig(
        api_key="test-key",
        user_id="user-123",
        api_base_url=UPSTREAM_BASE,
        default_model_identifier="lightning-xl",
        use_dynamic_model_selection=True,
        _env_file=None,
    )


@pytest.fixture
def registry() -> ModelRegistry:
    """The bundled model catalogue."""
    return load_registry()


@pytest.fixture
def model_factory() -> Callable[..., Model]:
    return make_model


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def test_client(
    test_config: RelayConfig, upstream: FakeUpstream
) -> Generator[TestClient, None, None]:
    """TestClient for a relay whose upstream is :class:`FakeUpstream`.

    Used as a context manager so the lifespan (registry, client) runs.
    """
    app = create_app(test_config, transport=httpx.MockTransport(upstream))
    with TestClient(app) as client:
        yield client
