from __future__ import annotations

import importlib.util
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from blueprint import main
from blueprint.llm import MockLLMClient
from blueprint.pipeline import ContentPipeline
from blueprint.schemas import PLACEHOLDER, ContentPolicy, SourceCandidate
from blueprint.storage import runs_dir
from blueprint.synthesis import Synthesizer


class _StubResolver:
    async def resolve(self, topic: str) -> list[SourceCandidate]:
        if topic.endswith("> A"):
            return []
        return [SourceCandidate(url="https://b.example/article", rank=0)]


class _StubExtractor:
    async def extract(self, candidate: SourceCandidate) -> str:
        return "Material about B."


def _stub_pipeline(client, policy=None) -> ContentPipeline:
    return ContentPipeline(
        resolver=_StubResolver(),
        extractor=_StubExtractor(),
        synthesizer=Synthesizer([MockLLMClient()]),
        max_concurrency=2,
        topic_timeout=5.0,
        policy=policy or ContentPolicy.leaves,
    )


TREE = {"name": "Root", "children": [{"name": "A", "children": []}, {"name": "B", "children": []}]}


def test_health() -> None:
    with TestClient(main.app) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_returns_markdown_document(monkeypatch) -> None:
    monkeypatch.setattr(main, "build_pipeline", _stub_pipeline)
    with TestClient(main.app) as client:
        response = client.post("/content/generate", json=TREE)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/markdown")
    body = response.text
    assert body.startswith(f"# Root\n\n## A\n\n{PLACEHOLDER}\n\n## B\n\n")
    assert "Material about B." in body
    assert list(runs_dir().glob("*-content_generate.json"))


def test_generate_rejects_blank_root(monkeypatch) -> None:
    monkeypatch.setattr(main, "build_pipeline", _stub_pipeline)
    with TestClient(main.app) as client:
        response = client.post("/content/generate", json={"name": "  ", "children": []})
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid blueprint structure"}


def test_content_job_produces_document(monkeypatch) -> None:
    monkeypatch.setattr(main, "build_pipeline", _stub_pipeline)
    with TestClient(main.app) as client:
        created = client.post("/content/jobs", json=TREE)
        assert created.status_code == 200
        job_id = created.json()["id"]

        status = created.json()["status"]
        deadline = time.monotonic() + 5
        while status not in {"succeeded", "failed"} and time.monotonic() < deadline:
            time.sleep(0.05)
            status = client.get(f"/jobs/{job_id}").json()["status"]

        job = client.get(f"/jobs/{job_id}").json()
        document = client.get(f"/content/jobs/{job_id}/document")

    assert job["status"] == "succeeded"
    assert job["progress"] == 1.0
    assert job["total_steps"] == 2
    assert document.status_code == 200
    assert document.text.startswith("# Root")


def test_unknown_job_is_404() -> None:
    with TestClient(main.app) as client:
        assert client.get("/jobs/missing").status_code == 404
        assert client.get("/content/jobs/missing/document").status_code == 404


def _load_entrypoint():
    path = Path(__file__).resolve().parents[3] / "api" / "index.py"
    spec = importlib.util.spec_from_file_location("blueprint_entrypoint", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_entrypoint_serves_api_under_prefix() -> None:
    entrypoint = _load_entrypoint()
    with TestClient(entrypoint.app) as client:
        assert client.get("/api/health").json() == {"status": "ok"}
        assert client.get("/health").status_code == 404


@pytest.mark.parametrize(
    "method,path", [("GET", "/api/health"), ("POST", "/api/content/jobs"), ("GET", "/api/jobs/abc")]
)
def test_entrypoint_import_error_app_reports_every_route(method: str, path: str) -> None:
    fallback = _load_entrypoint().import_error_app("ModuleNotFoundError: No module named 'trafilatura'")
    with TestClient(fallback) as client:
        response = client.request(method, path)
    assert response.status_code == 500
    assert "trafilatura" in response.json()["detail"]
