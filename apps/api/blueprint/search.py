from __future__ import annotations

from typing import Optional
from urllib.parse import quote_plus

import httpx
import structlog

from .config import settings
from .exceptions import SourceResolutionError
from .schemas import SourceCandidate

logger = structlog.get_logger(__name__)


class SourceResolver:
    name: str = "base"

    async def resolve(self, topic: str) -> list[SourceCandidate]:
        raise NotImplementedError


class MockSourceResolver(SourceResolver):
    name = "mock"

    def __init__(self, limit: Optional[int] = None) -> None:
        self.limit = limit or settings.max_sources

    async def resolve(self, topic: str) -> list[SourceCandidate]:
        query = quote_plus(topic)
        urls = [f"https://example.com/search/{idx}?q={query}" for idx in range(1, self.limit + 1)]
        return [SourceCandidate(url=url, rank=rank) for rank, url in enumerate(urls)]


class SerperResolver(SourceResolver):
    name = "serper"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> None:
        self.client = client
        self.api_key = api_key if api_key is not None else (settings.serper_api_key or "")
        self.url = url or settings.serper_url
        self.limit = limit or settings.max_sources

    async def resolve(self, topic: str) -> list[SourceCandidate]:
        try:
            resp = await self.client.post(
                self.url,
                json={"q": topic},
                headers={"Content-Type": "application/json", "X-API-KEY": self.api_key},
                timeout=settings.search_timeout,
            )
        except httpx.HTTPError as exc:
            raise SourceResolutionError(f"Search request failed: {exc}", topic) from exc
        if not resp.is_success:
            raise SourceResolutionError(
                f"Search failed: {resp.status_code}", topic, status_code=resp.status_code
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise SourceResolutionError("Search returned invalid JSON", topic, resp.status_code) from exc
        if not isinstance(data, dict):
            raise SourceResolutionError("Search returned an unexpected payload", topic, resp.status_code)

        links: list[str] = []
        for item in data.get("organic") or []:
            link = item.get("link") if isinstance(item, dict) else None
            if link:
                links.append(link)
        candidates = [SourceCandidate(url=link, rank=rank) for rank, link in enumerate(links[: self.limit])]
        logger.debug("sources_resolved", topic=topic, count=len(candidates))
        return candidates


def get_source_resolver(client: httpx.AsyncClient) -> SourceResolver:
    provider = settings.search_provider.lower().strip()
    if provider == "serper":
        if not settings.serper_api_key:
            raise RuntimeError("SERPER_API_KEY is required for the serper search provider")
        return SerperResolver(client)
    return MockSourceResolver()
