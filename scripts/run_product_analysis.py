"""
Run batch product analysis from CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import httpx

from insight_pipeline.config import ConfigurationError, PipelineSettings, get_pipeline_settings
from insight_pipeline.domain import BatchItemFailure, BatchProgress, BatchResult
from insight_pipeline.reporting import format_markdown_report
from insight_pipeline.services import BatchObserver, build_batch_orchestrator
from insight_pipeline.sheets import (
    GoogleOAuthClient,
    JsonFileTokenStorage,
    SheetsAuthError,
    SheetsWriteError,
    SheetsWriter,
    TokenManager,
    parse_sheet_destination,
)
from insight_pipeline.validators import validate_product_fields

logger = logging.getLogger("run_product_analysis")


class ConsoleProgressObserver(BatchObserver):
    def on_progress(self, progress: BatchProgress) -> None:
        print(f"[{progress.current}/{progress.total}] Processing {progress.item}", file=sys.stderr)

    def on_item_failed(self, failure: BatchItemFailure) -> None:
        print(f"[{failure.index + 1}] Failed at {failure.stage.value}: {failure.error}", file=sys.stderr)


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _collect_inputs(args: argparse.Namespace) -> list[str]:
    inputs = [item for item in args.inputs if item.strip()]
    if args.input_file:
        lines = Path(args.input_file).read_text(encoding="utf-8").splitlines()
        inputs.extend(line.strip() for line in lines if line.strip() and not line.startswith("#"))
    return inputs


async def _run_batch(settings: PipelineSettings, inputs: list[str], chunk_size: int | None) -> BatchResult:
    async with httpx.AsyncClient(timeout=settings.scrape.timeout_seconds) as http_client:
        orchestrator = build_batch_orchestrator(
            settings,
            http_client=http_client,
            observers=[ConsoleProgressObserver()],
        )
        return await orchestrator.run(inputs, chunk_size=chunk_size)


def _write_to_sheets(settings: PipelineSettings, batch: BatchResult, destination_text: str | None) -> str:
    destination = parse_sheet_destination(
        destination_text,
        default_sheet_id=settings.sheets.sheet_id,
        default_sheet_name=settings.sheets.sheet_name,
    )
    if destination.sheet_id is None:
        raise ConfigurationError("No spreadsheet ID given; set GOOGLE_SHEETS_ID_DEFAULT or pass --sheet.")

    token_manager = TokenManager(
        storage=JsonFileTokenStorage(settings.sheets.token_path),
        oauth_client=GoogleOAuthClient.from_settings(settings.sheets),
    )
    writer = SheetsWriter(
        token_provider=token_manager,
        spreadsheet_id=destination.sheet_id,
        sheet_name=destination.sheet_name,
        value_input_option=settings.sheets.value_input_option,
        timeout_seconds=settings.sheets.timeout_seconds,
    )
    writer.write_batch(batch.results)
    return writer.spreadsheet_url


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Scrape, analyse and export Amazon products.")
    parser.add_argument("inputs", nargs="*", help="ASINs or product URLs.")
    parser.add_argument("--input-file", dest="input_file", default=None, help="File with one ASIN or URL per line.")
    parser.add_argument("--chunk-size", dest="chunk_size", type=int, default=None, help="Items processed concurrently.")
    parser.add_argument("--report", dest="report_path", default=None, help="Write the Markdown report to this path.")
    parser.add_argument("--sheet", dest="sheet", default=None, help="Sheet ID, Sheets URL or sheet name.")
    parser.add_argument("--no-sheets", dest="no_sheets", action="store_true", help="Skip the Google Sheets export.")
    args = parser.parse_args(argv)

    _configure_logging()
    inputs = _collect_inputs(args)
    if not inputs:
        parser.error("provide at least one ASIN or product URL")

    settings = get_pipeline_settings()
    try:
        settings.require_credentials()
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    batch = asyncio.run(_run_batch(settings, inputs, args.chunk_size))

    for success in batch.successes():
        report = validate_product_fields(success.identifier, success.extracted)
        if not report.is_valid:
            logger.warning("identifier=%s %s: %s", success.identifier, report.summary, "; ".join(report.issues))

    markdown = format_markdown_report(batch)
    if args.report_path:
        Path(args.report_path).write_text(markdown, encoding="utf-8")
    else:
        print(markdown)

    exit_code = 0
    spreadsheet_url = None
    if not args.no_sheets:
        try:
            spreadsheet_url = _write_to_sheets(settings, batch, args.sheet)
        except (ConfigurationError, SheetsAuthError, SheetsWriteError) as exc:
            print(f"Google Sheets export failed: {exc}", file=sys.stderr)
            exit_code = 1

    payload = {
        "total": batch.summary.total,
        "succeeded": batch.summary.succeeded,
        "failed": batch.summary.failed,
        "timestamp": batch.summary.timestamp.isoformat(),
        "spreadsheet": spreadsheet_url,
        "errors": [
            {"input": str(failure.input), "stage": failure.stage.value, "error": failure.error}
            for failure in batch.failures()
        ],
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False), file=sys.stderr)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
