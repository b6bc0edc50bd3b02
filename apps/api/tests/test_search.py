from __future__ import annotations

import json

import httpx
import pytest

from blueprint.exceptions import SourceResolutionError
from blueprint.search import MockSourceResolver, SerperResolver


async def test_serper_keeps_top_three_links_in_rank_order() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["key"] = request.headers.get("x-api-key")
        organic = [{"link": f"https://site{i}.example/page", "title": f"Result {i}"} for i in range(5)]
        return httpx.Response(200, json={"organic": organic})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        resolver = SerperResolver(client, api_key="secret", url="https://search.example/search")
        candidates = await resolver.resolve("Root > A")

    assert seen["body"] == {"q": "Root > A"}
    assert seen["key"] == "secret"
    assert [c.url for c in candidates] == [f"https://site{i}.example/page" for i in range(3)]
    assert [c.rank for c in candidates] == [0, 1, 2]


async def test_serper_without_organic_results_returns_nothing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"searchParameters": {"q": "x"}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        candidates = await SerperResolver(client, api_key="k").resolve("x")

    assert candidates == []


async def test_serper_error_status_raises_resolution_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "Unauthorized"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(SourceResolutionError) as excinfo:
            await SerperResolver(client, api_key="bad").resolve("Root > B")

    assert excinfo.value.status_code == 403
    assert excinfo.value.topic == "Root > B"


@pytest.mark.parametrize("status", [302, 304])
async def test_serper_redirect_status_raises_resolution_error(status: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, headers={"Location": "https://login.example/"}, json={"organic": []})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(SourceResolutionError) as excinfo:
            await SerperResolver(client, api_key="k").resolve("Root > C")

    assert excinfo.value.message == f"Search failed: {status}"
    assert excinfo.value.status_code == status


async def test_serper_transport_error_raises_resolution_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(SourceResolutionError):
            await SerperResolver(client, api_key="k").resolve("Root")


async def test_mock_resolver_is_bounded() -> None:
    candidates = await MockSourceResolver(limit=2).resolve("Root > A")
    assert len(candidates) == 2
    assert candidates[0].url.startswith("https://example.com/")
