from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .config import settings
from .db import init_db
from .exceptions import InvalidBlueprintError
from .jobs import create_job, get_job, update_job
from .logging_config import configure_logging
from .models import JobRead, JobStatus, JobType
from .pipeline import PipelineResult, ProgressCallback, build_pipeline, validate_blueprint
from .runs import save_run
from .schemas import ContentPolicy, TopicNode
from .storage import write_document

logger = structlog.get_logger(__name__)

MARKDOWN_MEDIA_TYPE = "text/markdown; charset=utf-8"

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_background_tasks: set[asyncio.Task] = set()


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    init_db()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


def _validate(tree: TopicNode) -> None:
    try:
        validate_blueprint(tree)
    except InvalidBlueprintError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


async def _generate(
    tree: TopicNode,
    policy: Optional[ContentPolicy],
    progress_cb: Optional[ProgressCallback] = None,
) -> PipelineResult:
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        pipeline = build_pipeline(client, policy)
        return await pipeline.run(tree, progress_cb=progress_cb)


@app.post("/content/generate")
async def generate_content(tree: TopicNode, policy: Optional[ContentPolicy] = None) -> Response:
    _validate(tree)
    try:
        result = await _generate(tree, policy)
    except Exception as exc:
        logger.exception("content_generate_failed", title=tree.name)
        raise HTTPException(status_code=500, detail=str(exc))
    save_run("content_generate", tree.name, result)
    return Response(content=result.document, media_type=MARKDOWN_MEDIA_TYPE)


async def _run_content_job(job_id: str, tree: TopicNode, policy: Optional[ContentPolicy]) -> None:
    update_job(job_id, status=JobStatus.running, message="enumerating topics")

    def progress(current: int, total: int, message: str) -> None:
        progress_value = min(current / total, 0.99) if total else 0.0
        update_job(job_id, progress=progress_value, current_step=current, total_steps=total, message=message)

    try:
        result = await _generate(tree, policy, progress)
        path = write_document(job_id, tree.name, result.document)
        save_run("content_generate", tree.name, result, meta={"job_id": job_id})
        failed = sum(1 for outcome in result.outcomes.values() if not outcome.ok)
        update_job(
            job_id,
            status=JobStatus.succeeded,
            progress=1.0,
            message=f"{len(result.outcomes)} topics, {failed} placeholders",
            result_path=str(path),
        )
    except Exception as exc:
        logger.exception("content_job_failed", job_id=job_id)
        update_job(job_id, status=JobStatus.failed, message=str(exc))


@app.post("/content/jobs", response_model=JobRead)
async def start_content_job(tree: TopicNode, policy: Optional[ContentPolicy] = None) -> JobRead:
    _validate(tree)
    job = create_job(JobType.content_generate, title=tree.name)
    task = asyncio.create_task(_run_content_job(job.id, tree, policy))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return JobRead.model_validate(job)


@app.get("/content/jobs/{job_id}/document")
async def get_job_document(job_id: str) -> Response:
    job = get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.status != JobStatus.succeeded or not job.result_path:
        raise HTTPException(status_code=404, detail="Document not ready")
    path = Path(job.result_path)
    if not path.exists():
        raise HTTPException(status_code=404, detail="Document not found")
    return Response(content=path.read_text(encoding="utf-8"), media_type=MARKDOWN_MEDIA_TYPE)


@app.get("/jobs/{job_id}", response_model=JobRead)
async def get_job_status(job_id: str) -> JobRead:
    job = get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobRead.model_validate(job)
