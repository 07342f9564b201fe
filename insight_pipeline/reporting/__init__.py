"""
Reporting exports.
"""

from insight_pipeline.reporting.formatter import (
    SHEET_HEADER,
    SUMMARY_MAX_LENGTH,
    SUMMARY_SECTIONS,
    SummarySection,
    format_markdown_report,
    format_sheet_rows,
    summarize_section,
)

__all__ = [
    "SHEET_HEADER",
    "SUMMARY_MAX_LENGTH",
    "SUMMARY_SECTIONS",
    "SummarySection",
    "format_markdown_report",
    "format_sheet_rows",
    "summarize_section",
]
