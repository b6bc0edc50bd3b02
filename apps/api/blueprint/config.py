from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional
import os

from pydantic_settings import BaseSettings


ROOT_DIR = Path(__file__).resolve().parents[3]


def _default_data_dir() -> Path:
    if (
        os.getenv("VERCEL")
        or os.getenv("VERCEL_ENV")
        or os.getenv("VERCEL_URL")
        or os.getenv("AWS_LAMBDA_FUNCTION_NAME")
    ):
        return Path("/tmp/blueprint/data")
    return ROOT_DIR / "data"


class Settings(BaseSettings):
    app_name: str = "Blueprint Content API"
    data_dir: Path = _default_data_dir()
    db_path: Optional[Path] = None

    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    search_provider: Literal["serper", "mock"] = "serper"
    serper_api_key: Optional[str] = None
    serper_url: str = "https://google.serper.dev/search"
    max_sources: int = 3
    search_timeout: float = 15.0

    http_timeout: float = 20.0
    requests_per_host: float = 0.0
    max_source_chars: int = 20000
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )

    llm_provider: str = "mock"
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_timeout_seconds: float = 60.0
    generation_models: list[str] = ["gpt-4o-mini", "gpt-4.1-mini", "gpt-3.5-turbo"]
    generation_temperature: float = 0.3
    generation_interval_seconds: float = 0.0

    max_concurrency: int = 5
    # None derives the budget from the search, fetch and model timeouts below.
    topic_timeout_seconds: Optional[float] = None
    content_policy: Literal["leaves", "all"] = "leaves"

    class Config:
        env_file = (
            ".env",
            str(ROOT_DIR / ".env"),
            str(ROOT_DIR / "apps" / "api" / ".env"),
        )
        env_prefix = ""


def _clean_api_key(value: str) -> str:
    cleaned = value.strip().strip('"').strip("'")
    if cleaned.lower().startswith("bearer "):
        cleaned = cleaned.split(" ", 1)[1].strip()
    return cleaned


def worst_case_topic_seconds(s: Settings) -> float:
    """Upper bound for one topic: a search, the source fetches, then every model in turn."""
    # Fetches run concurrently; per-host pacing only staggers their start.
    pacing = 1.0 / s.requests_per_host if s.requests_per_host > 0 else 0.0
    fetch = s.http_timeout + pacing * max(s.max_sources - 1, 0)
    per_model = s.openai_timeout_seconds + s.generation_interval_seconds
    return s.search_timeout + fetch + len(s.generation_models) * per_model


settings = Settings()
if settings.topic_timeout_seconds is None:
    settings.topic_timeout_seconds = worst_case_topic_seconds(settings)
if settings.openai_api_key:
    settings.openai_api_key = _clean_api_key(settings.openai_api_key)
if settings.serper_api_key:
    settings.serper_api_key = _clean_api_key(settings.serper_api_key)

if settings.db_path is None:
    settings.db_path = settings.data_dir / "metadata.db"

try:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
except OSError:
    settings.data_dir = Path("/tmp/blueprint/data")
    settings.db_path = settings.data_dir / "metadata.db"
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
