"""Result contracts for the analysis layer."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "unknown"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisResult(BaseModel):
    """Outcome of one text-generation call for scraped product content."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    success: bool
    content: Optional[str] = None
    error: Optional[str] = None
    model: str
    timestamp: datetime = Field(default_factory=_utc_now)

    @classmethod
    def failure(cls, reason: str, model: str) -> "AnalysisResult":
        return cls(success=False, error=reason, model=model)


class ExtractedFields(BaseModel):
    """Semi-structured fields pulled out of a free-text analysis.

    Scalar fields hold ``UNKNOWN`` when no extraction rule matched, which
    keeps "not found" distinct from an empty value.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    identifier: str
    title: str = UNKNOWN
    price: str = UNKNOWN
    rating: str = UNKNOWN
    full_analysis: str = ""
