"""
insight_pipeline/config.py

Environment-driven settings for the product insight pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_PRODUCT_URL_TEMPLATE = "https://www.amazon.com/dp/{identifier}"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"
DEFAULT_SHEET_NAME = "Sheet1"


class ConfigurationError(RuntimeError):
    """
    Raised when required settings are missing or invalid.
    """


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = _project_root()
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _resolve_path(raw_path: str) -> str:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return str(candidate)
    return str((_project_root() / candidate).resolve())


@dataclass(frozen=True)
class ScrapeSettings:
    """
    Olostep scrape API settings.
    """

    api_key: str | None = None
    api_version: str = "v1"
    auto_fallback: bool = False
    product_url_template: str = DEFAULT_PRODUCT_URL_TEMPLATE
    timeout_seconds: float = 120.0
    max_attempts: int = 3
    backoff_base_seconds: float = 2.0
    wait_time: int = 10
    comments_number: int = 100


@dataclass(frozen=True)
class AnalysisSettings:
    """
    Gemini analysis settings.
    """

    api_key: str | None = None
    model: str = DEFAULT_GEMINI_MODEL
    base_url: str = DEFAULT_GEMINI_BASE_URL
    timeout_seconds: float = 120.0
    max_content_chars: int = 100_000
    prompt_path: str | None = None


@dataclass(frozen=True)
class BatchSettings:
    """
    Batch fan-out settings.
    """

    chunk_size: int = 5


@dataclass(frozen=True)
class SheetsSettings:
    """
    Google Sheets OAuth2 and destination settings.
    """

    client_id: str | None = None
    client_secret: str | None = None
    redirect_uri: str = "http://localhost:8080"
    sheet_id: str | None = None
    sheet_name: str = DEFAULT_SHEET_NAME
    token_path: str = ".google-tokens.json"
    value_input_option: str = "USER_ENTERED"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class PipelineSettings:
    """
    Settings bundle constructed once at startup and passed to components.
    """

    scrape: ScrapeSettings
    analysis: AnalysisSettings
    batch: BatchSettings
    sheets: SheetsSettings

    def require_credentials(self, *, include_sheets: bool = False) -> None:
        """
        Raise ConfigurationError naming every missing required variable.
        """

        missing: list[str] = []
        if not self.scrape.api_key:
            missing.append("OLOSTEP_API_KEY")
        if not self.analysis.api_key:
            missing.append("GEMINI_API_KEY")
        if include_sheets:
            if not self.sheets.client_id:
                missing.append("GOOGLE_SHEETS_CLIENT_ID")
            if not self.sheets.client_secret:
                missing.append("GOOGLE_SHEETS_CLIENT_SECRET")
            if not self.sheets.sheet_id:
                missing.append("GOOGLE_SHEETS_ID_DEFAULT")
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing)
            )


@lru_cache(maxsize=1)
def get_scrape_settings() -> ScrapeSettings:
    """
    Return cached scrape settings from environment variables.
    """

    return ScrapeSettings(
        api_key=_get_optional_str_env("OLOSTEP_API_KEY"),
        api_version=_get_str_env("OLOSTEP_API_VERSION", "v1").lower(),
        auto_fallback=_get_bool_env("OLOSTEP_AUTO_FALLBACK", False),
        product_url_template=_get_str_env(
            "OLOSTEP_PRODUCT_URL_TEMPLATE",
            DEFAULT_PRODUCT_URL_TEMPLATE,
        ),
        timeout_seconds=max(1.0, _get_float_env("OLOSTEP_TIMEOUT_SECONDS", 120.0)),
        max_attempts=max(1, _get_int_env("OLOSTEP_MAX_ATTEMPTS", 3)),
        backoff_base_seconds=max(0.0, _get_float_env("OLOSTEP_BACKOFF_BASE_SECONDS", 2.0)),
        wait_time=max(0, _get_int_env("OLOSTEP_WAIT_TIME", 10)),
        comments_number=max(0, _get_int_env("OLOSTEP_COMMENTS_NUMBER", 100)),
    )


@lru_cache(maxsize=1)
def get_analysis_settings() -> AnalysisSettings:
    """
    Return cached Gemini analysis settings from environment variables.
    """

    prompt_path = _get_optional_str_env("ANALYSIS_PROMPT_PATH")
    return AnalysisSettings(
        api_key=_get_optional_str_env("GEMINI_API_KEY"),
        model=_get_str_env("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        base_url=_get_str_env("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL).rstrip("/"),
        timeout_seconds=max(1.0, _get_float_env("GEMINI_TIMEOUT_SECONDS", 120.0)),
        max_content_chars=max(1, _get_int_env("ANALYSIS_MAX_CONTENT_CHARS", 100_000)),
        prompt_path=_resolve_path(prompt_path) if prompt_path else None,
    )


@lru_cache(maxsize=1)
def get_batch_settings() -> BatchSettings:
    """
    Return cached batch settings from environment variables.
    """

    return BatchSettings(chunk_size=max(1, _get_int_env("BATCH_CHUNK_SIZE", 5)))


@lru_cache(maxsize=1)
def get_sheets_settings() -> SheetsSettings:
    """
    Return cached Google Sheets settings from environment variables.
    """

    return SheetsSettings(
        client_id=_get_optional_str_env("GOOGLE_SHEETS_CLIENT_ID"),
        client_secret=_get_optional_str_env("GOOGLE_SHEETS_CLIENT_SECRET"),
        redirect_uri=_get_str_env("GOOGLE_SHEETS_REDIRECT_URI", "http://localhost:8080"),
        sheet_id=_get_optional_str_env("GOOGLE_SHEETS_ID_DEFAULT"),
        sheet_name=_get_str_env("GOOGLE_SHEET_NAME_DEFAULT", DEFAULT_SHEET_NAME),
        token_path=_resolve_path(_get_str_env("GOOGLE_SHEETS_TOKEN_PATH", ".google-tokens.json")),
        value_input_option=_get_str_env("GOOGLE_SHEETS_VALUE_INPUT_OPTION", "USER_ENTERED"),
        timeout_seconds=max(1.0, _get_float_env("GOOGLE_SHEETS_TIMEOUT_SECONDS", 30.0)),
    )


@lru_cache(maxsize=1)
def get_pipeline_settings() -> PipelineSettings:
    """
    Return the cached settings bundle.
    """

    return PipelineSettings(
        scrape=get_scrape_settings(),
        analysis=get_analysis_settings(),
        batch=get_batch_settings(),
        sheets=get_sheets_settings(),
    )
