"""
Scrape runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ScrapeResult:
    """
    Outcome of one scrape attempt series for a single identifier.
    """

    identifier: str
    url: str
    success: bool
    content: str | None = None
    error: str | None = None
    api_version: str | None = None
    attempts: int = 0
    requested_at: datetime = field(default_factory=utc_now)
