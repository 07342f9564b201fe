"""
Google Sheets layer exports.
"""

from insight_pipeline.sheets.destination import SheetDestination, parse_sheet_destination
from insight_pipeline.sheets.oauth import GoogleOAuthClient, SheetsAuthError
from insight_pipeline.sheets.token_store import (
    AccessTokenProvider,
    InMemoryTokenStorage,
    JsonFileTokenStorage,
    TokenManager,
    TokenRecord,
    TokenStorage,
)
from insight_pipeline.sheets.writer import SheetsWriteError, SheetsWriter

__all__ = [
    "AccessTokenProvider",
    "GoogleOAuthClient",
    "InMemoryTokenStorage",
    "JsonFileTokenStorage",
    "SheetDestination",
    "SheetsAuthError",
    "SheetsWriteError",
    "SheetsWriter",
    "TokenManager",
    "TokenRecord",
    "TokenStorage",
    "parse_sheet_destination",
]
