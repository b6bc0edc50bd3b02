from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import settings


def iso_now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def documents_dir() -> Path:
    path = settings.data_dir / "documents"
    path.mkdir(parents=True, exist_ok=True)
    return path


def runs_dir() -> Path:
    path = settings.data_dir / "runs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _atomic_write(path: Path, write) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=path.name, text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            write(f)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass


def atomic_write_json(path: Path, data: Any) -> None:
    _atomic_write(path, lambda f: json.dump(data, f, ensure_ascii=True, indent=2))


def atomic_write_text(path: Path, text: str) -> None:
    _atomic_write(path, lambda f: f.write(text))


def slugify(value: str) -> str:
    safe = "".join(ch.lower() if ch.isalnum() else "-" for ch in value)
    while "--" in safe:
        safe = safe.replace("--", "-")
    return safe.strip("-")


def write_document(job_id: str, title: str, markdown: str) -> Path:
    slug = slugify(title)[:60] or "document"
    path = documents_dir() / f"{job_id}-{slug}.md"
    atomic_write_text(path, markdown)
    return path
