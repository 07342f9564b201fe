"""
insight_pipeline/reporting/formatter.py

Tabular rows and Markdown report for batch results.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from llm_analysis.schema import UNKNOWN

from insight_pipeline.domain.batch import BatchItemFailure, BatchItemResult, BatchItemSuccess, BatchResult
from insight_pipeline.scraping.types import utc_now

SUMMARY_MAX_LENGTH = 300

SHEET_HEADER: tuple[str, ...] = (
    "Identifier",
    "Title",
    "Price",
    "Rating",
    "Copy Summary",
    "Visual Summary",
    "Review Summary",
    "Market Summary",
    "Status",
    "Error",
)


@dataclass(frozen=True)
class SummarySection:
    """
    One analysis section summarized into its own column.
    """

    name: str
    heading: re.Pattern[str]
    keywords: tuple[str, ...]


SUMMARY_SECTIONS: tuple[SummarySection, ...] = (
    SummarySection(
        name="copy",
        heading=re.compile(r"第一部分[：:]*.*?文案.*?\n([\s\S]*?)(?=第二部分|第三部分|$)", re.IGNORECASE),
        keywords=("文案构建", "Copywriting"),
    ),
    SummarySection(
        name="visual",
        heading=re.compile(r"第二部分[：:]*.*?视觉.*?\n([\s\S]*?)(?=第三部分|第四部分|$)", re.IGNORECASE),
        keywords=("视觉资产", "Visual"),
    ),
    SummarySection(
        name="reviews",
        heading=re.compile(r"第三部分[：:]*.*?评论.*?\n([\s\S]*?)(?=第四部分|$)", re.IGNORECASE),
        keywords=("评论", "Review"),
    ),
    SummarySection(
        name="market",
        heading=re.compile(r"第四部分[：:]*.*?市场.*?\n([\s\S]*?)$", re.IGNORECASE),
        keywords=("市场", "Market"),
    ),
)


def _shorten(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def summarize_section(analysis: str, section: SummarySection, max_length: int = SUMMARY_MAX_LENGTH) -> str:
    """
    Summarize one section: the numbered-part body when present, otherwise
    a window around the first keyword, otherwise the analysis head.
    """

    if not analysis:
        return ""

    match = section.heading.search(analysis)
    if match and match.group(1).strip():
        return match.group(1).strip()[:max_length]

    for keyword in section.keywords:
        position = analysis.find(keyword)
        if position == -1:
            continue
        start = max(0, position - 50)
        end = min(len(analysis), position + max_length)
        return _shorten(analysis[start:end].strip(), max_length)

    return _shorten(analysis, max_length)


def _success_row(result: BatchItemSuccess) -> list[str]:
    extracted = result.extracted
    analysis = result.analysis.content or ""
    return [
        extracted.identifier or result.identifier,
        extracted.title,
        extracted.price,
        extracted.rating,
        *(summarize_section(analysis, section) for section in SUMMARY_SECTIONS),
        "success",
        "",
    ]


def _failure_row(result: BatchItemFailure) -> list[str]:
    return [
        result.identifier or str(result.input),
        UNKNOWN,
        UNKNOWN,
        UNKNOWN,
        *("" for _ in SUMMARY_SECTIONS),
        "failed",
        result.error,
    ]


def format_sheet_rows(
    results: Iterable[BatchItemResult],
    *,
    include_header: bool = True,
) -> list[list[str]]:
    """
    Convert batch results into spreadsheet rows, failures included.
    """

    rows: list[list[str]] = [list(SHEET_HEADER)] if include_header else []
    for result in results:
        if isinstance(result, BatchItemSuccess):
            rows.append(_success_row(result))
        else:
            rows.append(_failure_row(result))
    return rows


def format_markdown_report(batch: BatchResult, *, generated_on: date | None = None) -> str:
    """
    Render the narrative report: overview, one section per analysed
    product, then every failed input with its error.
    """

    report_date = (generated_on or utc_now().date()).isoformat()
    successes = batch.successes()
    failures = batch.failures()

    lines = [
        "# Amazon Competitor Analysis Report",
        "",
        "## Overview",
        "",
        f"- Products analysed: {len(successes)}",
        f"- Report date: {report_date}",
        f"- Success rate: {len(successes)}/{len(batch.results)}",
        "",
        "---",
        "",
    ]

    for position, result in enumerate(successes, start=1):
        extracted = result.extracted
        analysis = result.analysis.content or extracted.full_analysis or "No analysis available."
        lines.extend(
            [
                f"## Product {position}: {result.identifier}",
                "",
                "### Basic Information",
                f"- Title: {extracted.title}",
                f"- Price: {extracted.price}",
                f"- Rating: {extracted.rating}",
                "",
                "### Detailed Analysis",
                "",
                analysis,
                "",
                "---",
                "",
            ]
        )

    if failures:
        lines.extend(["## Failed Products", ""])
        for failure in failures:
            lines.append(f"- **{failure.input}** ({failure.stage.value}): {failure.error}")
        lines.append("")

    return "\n".join(lines)
