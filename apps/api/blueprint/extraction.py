from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
import structlog
from bs4 import BeautifulSoup

from .config import settings
from .schemas import SourceCandidate

try:
    import lxml  # type: ignore  # noqa: F401

    HAS_LXML = True
except Exception:  # pragma: no cover - optional dependency
    HAS_LXML = False

try:
    import trafilatura
except Exception:  # pragma: no cover - optional dependency
    trafilatura = None

logger = structlog.get_logger(__name__)

SOURCE_DELIMITER = "\n\n---\n\n"


def _html_parser() -> str:
    return "lxml" if HAS_LXML else "html.parser"


class RateLimiter:
    """Keeps at least ``min_interval`` seconds between calls sharing a key."""

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._last_time: dict[str, float] = {}

    async def wait(self, key: str) -> None:
        if self.min_interval <= 0:
            return
        lock = self._locks[key]
        async with lock:
            loop = asyncio.get_running_loop()
            now = loop.time()
            last = self._last_time.get(key)
            if last is not None:
                wait_for = self.min_interval - (now - last)
                if wait_for > 0:
                    await asyncio.sleep(wait_for)
            self._last_time[key] = loop.time()


def extract_content(html: str, url: str) -> dict[str, Any]:
    if trafilatura is not None:
        try:
            data = trafilatura.bare_extraction(html, url=url)
            if data is not None and not isinstance(data, dict):
                data = data.as_dict()
            if data and data.get("text"):
                return {"text": data.get("text", ""), "title": data.get("title") or ""}
        except Exception as exc:  # noqa: BLE001
            logger.debug("trafilatura_failed", url=url, error=str(exc))
    soup = BeautifulSoup(html, _html_parser())
    title = soup.title.text.strip() if soup.title and soup.title.text else ""
    for script in soup(["script", "style", "noscript"]):
        script.decompose()
    text = " ".join(soup.get_text(" ").split())
    return {"text": text, "title": title}


async def fetch_url(client: httpx.AsyncClient, url: str) -> tuple[int, str]:
    resp = await client.get(
        url,
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
        timeout=settings.http_timeout,
    )
    return resp.status_code, resp.text


class ContentExtractor:
    """
    Fetches one source locator and returns its readable text.

    A single attempt per locator; every failure yields ``""`` so the topic
    carries on with whatever other candidates produced.
    """

    def __init__(self, client: httpx.AsyncClient, limiter: Optional[RateLimiter] = None) -> None:
        self.client = client
        interval = 1.0 / settings.requests_per_host if settings.requests_per_host > 0 else 0.0
        self.limiter = limiter or RateLimiter(interval)

    async def extract(self, candidate: SourceCandidate) -> str:
        url = candidate.url
        try:
            await self.limiter.wait(urlparse(url).netloc)
            status, body = await fetch_url(self.client, url)
            if status >= 400:
                logger.warning("extraction_failed", url=url, error=f"http_{status}")
                return ""
            text = extract_content(body, url).get("text", "").strip()
        except Exception as exc:  # noqa: BLE001
            logger.warning("extraction_failed", url=url, error=f"{type(exc).__name__}: {exc}")
            return ""
        if not text:
            logger.warning("extraction_failed", url=url, error="empty_text")
            return ""
        if settings.max_source_chars > 0:
            text = text[: settings.max_source_chars]
        return text


def _clean_locator(url: str) -> str:
    return "".join(ch for ch in url if ch not in "[]" and not ch.isspace())


def aggregate_sources(candidates: list[SourceCandidate], texts: list[str]) -> str:
    blocks = []
    for candidate, text in zip(candidates, texts):
        if not text:
            continue
        blocks.append(f"{text}\n\n({_clean_locator(candidate.url)})")
    return SOURCE_DELIMITER.join(blocks)
