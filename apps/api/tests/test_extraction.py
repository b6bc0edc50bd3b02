from __future__ import annotations

import asyncio
from pathlib import Path

import httpx

from blueprint import extraction
from blueprint.config import settings
from blueprint.extraction import ContentExtractor, RateLimiter, aggregate_sources, extract_content
from blueprint.schemas import SourceCandidate


def _sample_html() -> str:
    return (Path(__file__).parent / "fixtures" / "sample.html").read_text(encoding="utf-8")


def test_extract_content_finds_article_text() -> None:
    content = extract_content(_sample_html(), "https://example.com")
    assert "sample paragraph" in content["text"].lower()


def test_extract_content_fallback(monkeypatch) -> None:
    monkeypatch.setattr(extraction, "trafilatura", None)
    content = extract_content(_sample_html(), "https://example.com")
    assert "sample paragraph" in content["text"].lower()
    assert "window.tracking" not in content["text"]
    assert content["title"] == "Sample Page"


async def test_extractor_sends_browser_user_agent() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers.get("user-agent", "")
        return httpx.Response(200, text=_sample_html())

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        text = await ContentExtractor(client).extract(SourceCandidate(url="https://example.com/a", rank=0))

    assert "sample paragraph" in text.lower()
    assert seen["ua"] == settings.user_agent
    assert "Mozilla/5.0" in seen["ua"]


async def test_extractor_degrades_to_empty_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing":
            return httpx.Response(404, text="not found")
        if request.url.path == "/empty":
            return httpx.Response(200, text="<html><body></body></html>")
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        extractor = ContentExtractor(client)
        for path in ("/missing", "/empty", "/down"):
            candidate = SourceCandidate(url=f"https://example.com{path}", rank=0)
            assert await extractor.extract(candidate) == ""


def test_aggregate_sources_tags_each_text_with_its_own_locator() -> None:
    candidates = [
        SourceCandidate(url="https://a.example/x", rank=0),
        SourceCandidate(url="https://b.example/y", rank=1),
        SourceCandidate(url="https://c.example/[z] ", rank=2),
    ]
    aggregated = aggregate_sources(candidates, ["alpha", "", "gamma"])
    assert aggregated == "alpha\n\n(https://a.example/x)\n\n---\n\ngamma\n\n(https://c.example/z)"


def test_aggregate_sources_is_empty_when_nothing_was_extracted() -> None:
    candidates = [SourceCandidate(url="https://a.example", rank=0)]
    assert aggregate_sources(candidates, [""]) == ""


async def test_rate_limiter_spaces_calls_sharing_a_key() -> None:
    limiter = RateLimiter(0.05)
    loop = asyncio.get_running_loop()

    await limiter.wait("example.com")
    first = loop.time()
    await limiter.wait("other.example")
    other = loop.time()
    await limiter.wait("example.com")
    second = loop.time()

    assert other - first < 0.05
    # Event loop timers may fire up to one clock tick early.
    assert second - first >= 0.05 - 0.005


async def test_rate_limiter_without_interval_never_waits() -> None:
    limiter = RateLimiter(0.0)
    loop = asyncio.get_running_loop()

    start = loop.time()
    for _ in range(20):
        await limiter.wait("example.com")

    assert loop.time() - start < 0.05
