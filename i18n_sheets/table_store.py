"""Spreadsheet access for the sync operations.

The orchestrator only needs ``fetch`` and ``replace``; ``GoogleSheetTableStore``
implements them on top of the Google Sheets v4 API.
"""
import asyncio
import logging
from typing import Any, List, Optional, Protocol

import httplib2
from aiolimiter import AsyncLimiter
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from i18n_sheets.app_config import SheetConfig
from i18n_sheets.errors import TransportError

SCOPES = ['https://www.googleapis.com/auth/spreadsheets']

HEADER_BACKGROUND = {"red": 0.9, "green": 0.9, "blue": 0.9}

Table = List[List[Any]]

logger = logging.getLogger(__name__)


class TableStore(Protocol):
    async def fetch(self) -> Table:
        ...

    async def replace(self, rows: Table) -> None:
        ...


def sheet_title(sheet_range: str) -> Optional[str]:
    """Return the tab title of an A1 range (``'My Tab'!A:Z`` -> ``My Tab``), or None if the range names no tab."""
    if '!' not in sheet_range:
        return None
    title = sheet_range.rsplit('!', 1)[0]
    if len(title) >= 2 and title[0] == title[-1] == "'":
        title = title[1:-1].replace("''", "'")
    return title


def _describe_http_error(exc: HttpError) -> str:
    status = getattr(exc.resp, 'status', None)
    reason = exc.reason if hasattr(exc, 'reason') else str(exc)
    return f"HTTP {status}: {reason}" if status else str(reason)


class GoogleSheetTableStore:
    """Reads and replaces the translation table in one Google Sheet range."""

    def __init__(self, sheet_config: SheetConfig, service: Optional[Any] = None):
        self.config = sheet_config
        self._service = service
        # Sheets allows 60 requests per minute per user by default.
        self.rate_limiter = AsyncLimiter(sheet_config.requests_per_minute, 60)

    def _get_service(self, stage: str):
        if self._service is None:
            try:
                credentials = service_account.Credentials.from_service_account_info(
                    {
                        "type": "service_account",
                        "client_email": self.config.client_email,
                        "private_key": self.config.private_key,
                        "token_uri": "https://oauth2.googleapis.com/token",
                    },
                    scopes=SCOPES
                )
            except (ValueError, GoogleAuthError) as e:
                raise TransportError(stage, f"Invalid service account credentials: {e}") from e
            self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return self._service

    async def _execute(self, request) -> Any:
        async with self.rate_limiter:
            return await asyncio.to_thread(request.execute)

    async def fetch(self) -> Table:
        """Return every row in the range, header included. An empty sheet yields []."""
        values = self._get_service("download").spreadsheets().values()
        try:
            response = await self._execute(values.get(
                spreadsheetId=self.config.spreadsheet_id,
                range=self.config.sheet_range
            ))
        except HttpError as e:
            raise TransportError("download", f"Could not fetch the sheet: {_describe_http_error(e)}") from e
        except (OSError, GoogleAuthError, httplib2.HttpLib2Error) as e:
            raise TransportError("download", f"Could not fetch the sheet: {e}") from e

        rows = response.get('values', [])
        logger.info("Fetched %d row(s) from spreadsheet %s.", len(rows), self.config.spreadsheet_id)
        return rows

    async def replace(self, rows: Table) -> None:
        """
        Clear the range, write ``rows`` and format the header row.

        The clear and the write are separate API calls. If the write fails
        after the clear succeeded, the sheet is left empty and the raised
        error says so.
        """
        spreadsheets = self._get_service("upload").spreadsheets()
        cleared = False
        try:
            await self._execute(spreadsheets.values().clear(
                spreadsheetId=self.config.spreadsheet_id,
                range=self.config.sheet_range,
                body={}
            ))
            cleared = True
            logger.debug("Cleared range %s.", self.config.sheet_range)

            await self._execute(spreadsheets.values().update(
                spreadsheetId=self.config.spreadsheet_id,
                range=self.config.sheet_range,
                valueInputOption='RAW',
                body={"values": rows}
            ))
            logger.info("Wrote %d row(s) to spreadsheet %s.", len(rows), self.config.spreadsheet_id)
        except Exception as e:
            detail = _describe_http_error(e) if isinstance(e, HttpError) else str(e)
            if cleared:
                detail += " The sheet was cleared before the failure and is now empty; re-run the upload."
            raise TransportError("upload", f"Could not update the sheet: {detail}") from e

        # Formatting is cosmetic; a failure here leaves the data intact.
        try:
            sheet_id = await self._resolve_sheet_id(spreadsheets)
            await self._execute(spreadsheets.batchUpdate(
                spreadsheetId=self.config.spreadsheet_id,
                body={"requests": self._format_requests(sheet_id, len(rows[0]) if rows else 0)}
            ))
        except HttpError as e:
            logger.warning("Data was written but header formatting failed: %s", _describe_http_error(e))
        except Exception as e:
            logger.warning("Data was written but header formatting failed: %s", e)

    async def _resolve_sheet_id(self, spreadsheets) -> int:
        """Look up the numeric id of the tab named in the range, falling back to the first tab."""
        response = await self._execute(spreadsheets.get(
            spreadsheetId=self.config.spreadsheet_id,
            fields="sheets.properties"
        ))
        tabs = [sheet.get("properties", {}) for sheet in response.get("sheets", [])]
        title = sheet_title(self.config.sheet_range)
        for properties in tabs:
            if properties.get("title") == title:
                return properties.get("sheetId", 0)
        return tabs[0].get("sheetId", 0) if tabs else 0

    @staticmethod
    def _format_requests(sheet_id: int, column_count: int) -> List[dict]:
        return [
            {
                "repeatCell": {
                    "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                    "cell": {
                        "userEnteredFormat": {
                            "backgroundColor": HEADER_BACKGROUND,
                            "textFormat": {"bold": True},
                        }
                    },
                    "fields": "userEnteredFormat(backgroundColor,textFormat)",
                }
            },
            {
                "autoResizeDimensions": {
                    "dimensions": {
                        "sheetId": sheet_id,
                        "dimension": "COLUMNS",
                        "startIndex": 0,
                        "endIndex": column_count or 4,
                    }
                }
            },
        ]
