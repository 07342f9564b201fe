"""
insight_pipeline/sheets/writer.py

Google Sheets values API writer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any
from urllib.parse import quote

import requests

from insight_pipeline.domain.batch import BatchItemResult
from insight_pipeline.reporting.formatter import SHEET_HEADER, format_sheet_rows
from insight_pipeline.sheets.token_store import AccessTokenProvider

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"

Row = Sequence[Any]


class SheetsWriteError(RuntimeError):
    """
    Raised when the Sheets API rejects or cannot receive a request.
    """


class SheetsWriter:
    """
    Appends or updates rows in one spreadsheet tab.
    """

    def __init__(
        self,
        *,
        token_provider: AccessTokenProvider,
        spreadsheet_id: str,
        sheet_name: str,
        value_input_option: str = "USER_ENTERED",
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._token_provider = token_provider
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name
        self._value_input_option = value_input_option
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds

    @property
    def spreadsheet_url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self._spreadsheet_id}"

    def write_rows(
        self,
        rows: Sequence[Row],
        *,
        append: bool = True,
        target_range: str | None = None,
    ) -> dict[str, Any]:
        """
        Append rows after the last table row, or overwrite ``target_range``.
        """

        target = target_range or f"{self._sheet_name}!A1"
        url = self._values_url(target)
        if append:
            method = "POST"
            url += ":append"
            params = {
                "valueInputOption": self._value_input_option,
                "insertDataOption": "INSERT_ROWS",
            }
        else:
            method = "PUT"
            params = {"valueInputOption": self._value_input_option}

        result = self._request(
            method,
            url,
            params=params,
            json={"values": [list(row) for row in rows]},
        )
        logger.info(
            "Wrote rows=%d mode=%s range=%s spreadsheet=%s",
            len(rows),
            "append" if append else "update",
            target,
            self.spreadsheet_url,
        )
        return result

    def batch_update(self, updates: Iterable[tuple[str, Sequence[Row]]]) -> dict[str, Any]:
        """
        Overwrite several ranges in one call.
        """

        data = [
            {"range": target, "values": [list(row) for row in rows]}
            for target, rows in updates
        ]
        result = self._request(
            "POST",
            f"{SHEETS_API_BASE}/{self._spreadsheet_id}/values:batchUpdate",
            json={"valueInputOption": self._value_input_option, "data": data},
        )
        logger.info("Batch updated ranges=%d spreadsheet=%s", len(data), self.spreadsheet_url)
        return result

    def read_range(self, target_range: str) -> list[list[Any]]:
        payload = self._request("GET", self._values_url(target_range))
        values = payload.get("values", [])
        return values if isinstance(values, list) else []

    def first_empty_row(self) -> int:
        """
        Return the 1-based row after the last filled cell in column A.
        """

        values = self.read_range(f"{self._sheet_name}!A:A")
        if values:
            return len(values) + 1
        return 2

    def has_header(self) -> bool:
        values = self.read_range(f"{self._sheet_name}!1:1")
        return bool(values) and any(str(cell).strip() for cell in values[0])

    def write_batch(
        self,
        results: Iterable[BatchItemResult],
        *,
        header: Sequence[str] = SHEET_HEADER,
    ) -> dict[str, Any]:
        """
        Write the header once per tab, then append one row per result.
        """

        if not self.has_header():
            self.write_rows([list(header)], append=False, target_range=f"{self._sheet_name}!A1")

        rows = format_sheet_rows(results, include_header=False)
        if not rows:
            return {}
        return self.write_rows(rows, append=True, target_range=f"{self._sheet_name}!A:A")

    def _values_url(self, target_range: str) -> str:
        return f"{SHEETS_API_BASE}/{self._spreadsheet_id}/values/{quote(target_range, safe='')}"

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        token = self._token_provider.get_valid_token()
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise SheetsWriteError(f"Google Sheets request failed: {exc}") from exc

        if not response.ok:
            logger.error(
                "Google Sheets request failed method=%s status=%s url=%s",
                method,
                response.status_code,
                url,
            )
            raise SheetsWriteError(
                f"Google Sheets API error: {response.status_code} - {response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
