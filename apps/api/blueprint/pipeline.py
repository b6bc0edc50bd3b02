from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx
import structlog
from structlog.contextvars import bound_contextvars

from .config import settings
from .document import assemble_document
from .exceptions import InvalidBlueprintError, SourceResolutionError
from .extraction import ContentExtractor, RateLimiter, aggregate_sources
from .llm import get_generation_chain
from .schemas import ContentPolicy, SynthesisResult, TopicNode, TopicOutcome
from .search import SourceResolver, get_source_resolver
from .synthesis import Synthesizer
from .topics import TopicPath, content_topics, topic_query

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class PipelineResult:
    document: str
    policy: ContentPolicy
    summaries: dict[TopicPath, str] = field(default_factory=dict)
    outcomes: dict[TopicPath, TopicOutcome] = field(default_factory=dict)


def _report_progress(progress_cb: Optional[ProgressCallback], current: int, total: int, message: str) -> None:
    if not progress_cb:
        return
    try:
        progress_cb(current, total, message)
    except Exception:  # noqa: BLE001
        logger.exception("progress_callback_failed", current=current, total=total)


def validate_blueprint(root: Optional[TopicNode]) -> None:
    if root is None or not root.name or not root.name.strip():
        raise InvalidBlueprintError("Invalid blueprint structure")


class ContentPipeline:
    """
    Enriches every content topic of a tree and assembles the document.

    One task per distinct topic path, admitted through a semaphore of
    ``max_concurrency`` slots. Every task settles into exactly one entry of
    the summary map: the synthesized paragraph or the placeholder.
    """

    def __init__(
        self,
        resolver: SourceResolver,
        extractor: ContentExtractor,
        synthesizer: Synthesizer,
        max_concurrency: Optional[int] = None,
        topic_timeout: Optional[float] = None,
        policy: Optional[ContentPolicy] = None,
    ) -> None:
        self.resolver = resolver
        self.extractor = extractor
        self.synthesizer = synthesizer
        self.max_concurrency = max(1, max_concurrency or settings.max_concurrency)
        self.topic_timeout = settings.topic_timeout_seconds if topic_timeout is None else topic_timeout
        self.policy = policy or ContentPolicy(settings.content_policy)

    async def process_topic(self, topic: str) -> tuple[SynthesisResult, int]:
        candidates = await self.resolver.resolve(topic)
        if not candidates:
            logger.warning("no_sources_found")
            return SynthesisResult.placeholder(), 0
        texts = await asyncio.gather(*(self.extractor.extract(c) for c in candidates))
        content = aggregate_sources(candidates, list(texts))
        usable = sum(1 for text in texts if text)
        logger.info("sources_extracted", candidates=len(candidates), usable=usable)
        return await self.synthesizer.synthesize(topic, content), usable

    async def _settle(self, path: TopicPath) -> tuple[SynthesisResult, TopicOutcome]:
        topic = topic_query(path)
        with bound_contextvars(topic=topic):
            logger.info("topic_started")
            try:
                if self.topic_timeout and self.topic_timeout > 0:
                    result, usable = await asyncio.wait_for(self.process_topic(topic), self.topic_timeout)
                else:
                    result, usable = await self.process_topic(topic)
            except SourceResolutionError as exc:
                logger.error("source_resolution_failed", error=exc.message, status_code=exc.status_code)
                return SynthesisResult.placeholder(), TopicOutcome(topic=topic, ok=False, error=exc.message)
            except asyncio.TimeoutError:
                logger.error("topic_timed_out", timeout=self.topic_timeout)
                return SynthesisResult.placeholder(), TopicOutcome(topic=topic, ok=False, error="timeout")
            except Exception as exc:  # noqa: BLE001
                logger.exception("topic_failed")
                error = f"{type(exc).__name__}: {exc}"
                return SynthesisResult.placeholder(), TopicOutcome(topic=topic, ok=False, error=error)
        outcome = TopicOutcome(topic=topic, ok=result.ok, variant=result.variant, sources=usable)
        return result, outcome

    async def run(
        self,
        root: TopicNode,
        progress_cb: Optional[ProgressCallback] = None,
    ) -> PipelineResult:
        validate_blueprint(root)
        topics = content_topics(root, self.policy)
        total = len(topics)
        summaries: dict[TopicPath, str] = {}
        outcomes: dict[TopicPath, TopicOutcome] = {}
        completed = 0
        sem = asyncio.Semaphore(self.max_concurrency)

        logger.info("pipeline_started", topics=total, policy=self.policy.value, concurrency=self.max_concurrency)
        _report_progress(progress_cb, 0, total, "enumerated")

        async def handle(path: TopicPath) -> None:
            nonlocal completed
            async with sem:
                result, outcome = await self._settle(path)
            summaries[path] = result.text
            outcomes[path] = outcome
            completed += 1
            _report_progress(progress_cb, completed, total, f"Settled {outcome.topic}")

        await asyncio.gather(*(handle(path) for path, _ in topics))

        document = assemble_document(root, summaries, self.policy)
        failed = sum(1 for outcome in outcomes.values() if not outcome.ok)
        logger.info("pipeline_finished", topics=total, failed=failed)
        return PipelineResult(document=document, policy=self.policy, summaries=summaries, outcomes=outcomes)


def build_pipeline(client: httpx.AsyncClient, policy: Optional[ContentPolicy] = None) -> ContentPipeline:
    pacer = RateLimiter(settings.generation_interval_seconds)
    return ContentPipeline(
        resolver=get_source_resolver(client),
        extractor=ContentExtractor(client),
        synthesizer=Synthesizer(get_generation_chain(), pacer=pacer),
        policy=policy,
    )
