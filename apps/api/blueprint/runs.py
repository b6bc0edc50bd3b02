from __future__ import annotations

from pathlib import Path
from typing import Optional

from .config import settings
from .pipeline import PipelineResult
from .storage import atomic_write_json, iso_now, runs_dir


def save_run(
    run_type: str,
    title: str,
    result: PipelineResult,
    meta: Optional[dict] = None,
) -> Path:
    """Persist what happened to each topic of one pipeline invocation."""
    timestamp = iso_now().replace(":", "-")
    path = runs_dir() / f"{timestamp}-{run_type}.json"
    topics = [
        {
            "topic": outcome.topic,
            "ok": outcome.ok,
            "variant": outcome.variant,
            "sources": outcome.sources,
            "error": outcome.error,
        }
        for outcome in result.outcomes.values()
    ]
    payload = {
        "run_type": run_type,
        "timestamp": iso_now(),
        "title": title,
        "policy": result.policy.value,
        "llm_provider": settings.llm_provider,
        "models": list(settings.generation_models),
        "search_provider": settings.search_provider,
        "topics": sorted(topics, key=lambda item: item["topic"]),
        "meta": meta or {},
    }
    atomic_write_json(path, payload)
    return path
