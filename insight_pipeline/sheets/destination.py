"""
insight_pipeline/sheets/destination.py

Free-text spreadsheet destination parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from insight_pipeline.config import DEFAULT_SHEET_NAME

_SHEET_ID = re.compile(r"sheet\s*id\s*[:：]\s*([a-zA-Z0-9_-]+)", re.IGNORECASE)
_SHEET_URL = re.compile(r"docs\.google\.com/spreadsheets/d/([a-zA-Z0-9_-]+)")
_SHEET_NAME = re.compile(
    r"(?:表格|sheet\s*name)\s*(?:[\"“”「](.+?)[\"“”」]|[:：]\s*(.+))",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SheetDestination:
    """
    Target spreadsheet; ``sheet_id`` is None when neither the text nor the
    defaults name one.
    """

    sheet_id: str | None
    sheet_name: str
    source: str


def parse_sheet_destination(
    text: str | None,
    *,
    default_sheet_id: str | None = None,
    default_sheet_name: str = DEFAULT_SHEET_NAME,
) -> SheetDestination:
    """
    Read a sheet ID, a Sheets URL or a sheet name out of free text,
    falling back to the configured defaults.
    """

    default = SheetDestination(
        sheet_id=default_sheet_id,
        sheet_name=default_sheet_name,
        source="default",
    )
    if not text or not text.strip():
        return default

    match = _SHEET_ID.search(text)
    if match:
        return SheetDestination(sheet_id=match.group(1), sheet_name=default_sheet_name, source="explicit_id")

    match = _SHEET_URL.search(text)
    if match:
        return SheetDestination(sheet_id=match.group(1), sheet_name=default_sheet_name, source="url")

    match = _SHEET_NAME.search(text)
    if match:
        name = (match.group(1) or match.group(2) or "").strip()
        if name:
            return SheetDestination(sheet_id=default_sheet_id, sheet_name=name, source="name")

    return default
