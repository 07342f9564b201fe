"""
Olostep scrape API client with retry, backoff and version fallback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import httpx

from insight_pipeline.config import ConfigurationError, ScrapeSettings
from insight_pipeline.scraping.identifiers import build_product_url
from insight_pipeline.logging_utils import elapsed_ms, log_event, monotonic_ms
from insight_pipeline.scraping.types import ScrapeResult, utc_now

logger = logging.getLogger(__name__)

API_ENDPOINTS: dict[str, str] = {
    "v1": "https://api.olostep.com/v1/scrapes",
    "v2": "https://api.olostep.com/v2/agent/web-agent",
}

# Checked in order; the first non-empty string wins.
CONTENT_FIELD_PATHS: tuple[tuple[str, ...], ...] = (
    ("result", "markdown_content"),
    ("markdown_content",),
    ("content",),
    ("result", "html_content"),
    ("html_content",),
)


class ScrapeAttemptError(RuntimeError):
    """
    Raised for one failed scrape attempt; never leaves the client.
    """


def extract_content(payload: Any) -> str | None:
    """
    Return the first non-empty content field of a scrape response.
    """

    for path in CONTENT_FIELD_PATHS:
        node: Any = payload
        for key in path:
            node = node.get(key) if isinstance(node, dict) else None
        if isinstance(node, str) and node.strip():
            return node
    return None


def alternate_version(version: str) -> str:
    return "v2" if version == "v1" else "v1"


class ScrapeClient:
    """
    Scrapes one product page per call and reports failures as results.
    """

    def __init__(
        self,
        *,
        settings: ScrapeSettings,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if not settings.api_key:
            raise ConfigurationError("OLOSTEP_API_KEY is required for scraping.")
        self._check_version(settings.api_version)

        self._settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)
        self._sleep = sleep

    async def __aenter__(self) -> "ScrapeClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def scrape(self, identifier: str, *, api_version: str | None = None) -> ScrapeResult:
        """
        Scrape the product page for ``identifier``.

        Retries with ``backoff_base_seconds ** attempt`` sleeps between
        attempts, then optionally makes one attempt against the alternate
        API version. Remote failures are returned, not raised.
        """

        version = (api_version or self._settings.api_version).lower()
        self._check_version(version)

        url = build_product_url(identifier, self._settings.product_url_template)
        requested_at = utc_now()
        started_ms = monotonic_ms()
        max_attempts = self._settings.max_attempts
        attempts = 0
        last_error: str | None = None

        for attempt in range(1, max_attempts + 1):
            attempts += 1
            try:
                content = await self._request_content(version=version, url=url)
                return self._succeeded(
                    identifier=identifier,
                    url=url,
                    content=content,
                    version=version,
                    attempts=attempts,
                    requested_at=requested_at,
                    started_ms=started_ms,
                )
            except ScrapeAttemptError as exc:
                last_error = str(exc)
                log_event(
                    logger,
                    logging.WARNING,
                    "scrape_attempt_failed",
                    identifier=identifier,
                    api_version=version,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=last_error,
                )

            if attempt >= max_attempts:
                break
            await self._sleep(self._settings.backoff_base_seconds**attempt)

        if self._settings.auto_fallback:
            fallback = alternate_version(version)
            log_event(
                logger,
                logging.WARNING,
                "scrape_fallback",
                identifier=identifier,
                from_version=version,
                to_version=fallback,
            )
            attempts += 1
            try:
                content = await self._request_content(version=fallback, url=url)
                return self._succeeded(
                    identifier=identifier,
                    url=url,
                    content=content,
                    version=fallback,
                    attempts=attempts,
                    requested_at=requested_at,
                    started_ms=started_ms,
                )
            except ScrapeAttemptError as exc:
                last_error = f"{last_error}; fallback {fallback}: {exc}"

        log_event(
            logger,
            logging.ERROR,
            "scrape_failed",
            identifier=identifier,
            api_version=version,
            attempts=attempts,
            duration_ms=elapsed_ms(started_ms),
            error=last_error,
        )
        return ScrapeResult(
            identifier=identifier,
            url=url,
            success=False,
            error=last_error,
            api_version=version,
            attempts=attempts,
            requested_at=requested_at,
        )

    def _succeeded(
        self,
        *,
        identifier: str,
        url: str,
        content: str,
        version: str,
        attempts: int,
        requested_at: datetime,
        started_ms: int,
    ) -> ScrapeResult:
        log_event(
            logger,
            logging.INFO,
            "scrape_succeeded",
            identifier=identifier,
            api_version=version,
            attempts=attempts,
            content_chars=len(content),
            duration_ms=elapsed_ms(started_ms),
        )
        return ScrapeResult(
            identifier=identifier,
            url=url,
            success=True,
            content=content,
            api_version=version,
            attempts=attempts,
            requested_at=requested_at,
        )

    async def _request_content(self, *, version: str, url: str) -> str:
        endpoint = API_ENDPOINTS[version]
        try:
            response = await self._client.post(
                endpoint,
                json=self._build_body(version=version, url=url),
                headers={
                    "Authorization": f"Bearer {self._settings.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._settings.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ScrapeAttemptError(f"Olostep {version} request error: {exc}") from exc

        if not response.is_success:
            raise ScrapeAttemptError(
                f"Olostep {version} error: {response.status_code} - {response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ScrapeAttemptError(f"Olostep {version} response was not valid JSON.") from exc

        content = extract_content(payload)
        if content is None:
            raise ScrapeAttemptError("Invalid response: missing content")
        return content

    def _build_body(self, *, version: str, url: str) -> dict[str, Any]:
        if version == "v1":
            return {"url": url}
        return {
            "url": url,
            "wait_time": self._settings.wait_time,
            "screenshot": False,
            "extract_dynamic_content": True,
            "comments_number": self._settings.comments_number,
        }

    @staticmethod
    def _check_version(version: str) -> None:
        if version not in API_ENDPOINTS:
            allowed = ", ".join(sorted(API_ENDPOINTS))
            raise ValueError(f"Invalid API version '{version}'. Allowed versions: {allowed}.")
