"""
insight_pipeline/sheets/token_store.py

Persistent OAuth2 token cache with automatic refresh.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from insight_pipeline.sheets.oauth import GoogleOAuthClient, SheetsAuthError

logger = logging.getLogger(__name__)

EXPIRY_BUFFER_SECONDS = 60
# Assumed lifetime when a grant omits expires_in.
DEFAULT_EXPIRES_IN_SECONDS = 3600


class TokenRecord(BaseModel):
    """
    Stored token payload; ``expiry_date`` is an absolute epoch in milliseconds.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    expiry_date: Optional[int] = None

    def expires_within(self, seconds: float, *, now_ms: int) -> bool:
        if self.expiry_date is None:
            return True
        return self.expiry_date < now_ms + int(seconds * 1000)

    @classmethod
    def from_grant(
        cls,
        payload: dict[str, Any],
        *,
        now_ms: int,
        previous: "TokenRecord | None" = None,
    ) -> "TokenRecord":
        """
        Merge a token endpoint response over the previous record, keeping
        the old refresh token when the response omits one.
        """

        data: dict[str, Any] = previous.model_dump() if previous else {}
        data.update(payload)
        if not data.get("refresh_token") and previous is not None:
            data["refresh_token"] = previous.refresh_token
        expires_in = payload.get("expires_in")
        if expires_in is not None:
            data["expiry_date"] = now_ms + int(expires_in) * 1000
        else:
            data["expiry_date"] = now_ms + DEFAULT_EXPIRES_IN_SECONDS * 1000
        return cls.model_validate(data)


class TokenStorage(ABC):
    """
    Where token records live between runs.
    """

    @abstractmethod
    def load(self) -> TokenRecord | None:
        """
        Return the stored record, or None when nothing is stored.
        """

    @abstractmethod
    def save(self, record: TokenRecord) -> None:
        """
        Persist ``record``, replacing any previous one.
        """

    @abstractmethod
    def clear(self) -> None:
        """
        Remove the stored record.
        """


class JsonFileTokenStorage(TokenStorage):
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> TokenRecord | None:
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return TokenRecord.model_validate(raw)
        except (ValueError, ValidationError) as exc:
            raise SheetsAuthError(
                f"Stored token file is unreadable: {self._path}. Please re-authorize."
            ) from exc

    def save(self, record: TokenRecord) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(record.model_dump(exclude_none=True), indent=2),
            encoding="utf-8",
        )

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


class InMemoryTokenStorage(TokenStorage):
    def __init__(self, record: TokenRecord | None = None) -> None:
        self._record = record

    def load(self) -> TokenRecord | None:
        return self._record

    def save(self, record: TokenRecord) -> None:
        self._record = record

    def clear(self) -> None:
        self._record = None


class AccessTokenProvider(ABC):
    """
    Anything that can hand out a currently valid bearer token.
    """

    @abstractmethod
    def get_valid_token(self) -> str:
        """
        Return an access token valid for at least the expiry buffer.
        """


class TokenManager(AccessTokenProvider):
    """
    Reads the token cache and refreshes it when expired or expiring
    within ``EXPIRY_BUFFER_SECONDS``.

    Refreshes are not coordinated across processes; two writers sharing
    one storage can both refresh.
    """

    def __init__(
        self,
        *,
        storage: TokenStorage,
        oauth_client: GoogleOAuthClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._oauth_client = oauth_client
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get_valid_token(self) -> str:
        record = self._storage.load()
        if record is None:
            raise SheetsAuthError("Not authenticated. Please run authorization first.")

        if record.expires_within(EXPIRY_BUFFER_SECONDS, now_ms=self._now_ms()):
            logger.info("Access token expired or expiring soon, refreshing")
            record = self.refresh(record)
        return record.access_token

    def refresh(self, record: TokenRecord | None = None) -> TokenRecord:
        current = record or self._storage.load()
        if current is None or not current.refresh_token:
            raise SheetsAuthError("No refresh token available. Please re-authorize.")
        if self._oauth_client is None:
            raise SheetsAuthError("OAuth client is not configured; cannot refresh the access token.")

        payload = self._oauth_client.refresh(current.refresh_token)
        updated = TokenRecord.from_grant(payload, now_ms=self._now_ms(), previous=current)
        self._storage.save(updated)
        return updated

    def store_authorization_code(self, code: str) -> TokenRecord:
        """
        Exchange ``code`` and persist the resulting tokens.
        """

        if self._oauth_client is None:
            raise SheetsAuthError("OAuth client is not configured; cannot exchange the code.")
        payload = self._oauth_client.exchange_code(code)
        record = TokenRecord.from_grant(payload, now_ms=self._now_ms())
        self._storage.save(record)
        return record

    def clear(self) -> None:
        self._storage.clear()
