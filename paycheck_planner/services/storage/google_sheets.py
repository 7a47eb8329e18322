"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a remote backend because:
1. Non-technical users can look at their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Each read fetches the whole sheet (we only have a handful of rows)
- No transactions (a slot is one cell, so each write is atomic enough)

Slots are stored as rows of a two-column worksheet: key, value.
"""

from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from paycheck_planner.config import GoogleSheetsSettings, get_settings
from paycheck_planner.services.storage.interface import (
    ConnectionError,
    PreferenceStorageInterface,
    StorageError,
)


# Column layout of the Preferences sheet
PREFERENCE_COLUMNS = [
    "key",
    "value",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_preferences_sheet(self) -> gspread.Worksheet:
        """Get or create the Preferences worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.preferences_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.preferences_sheet_name,
                rows=100,
                cols=len(PREFERENCE_COLUMNS),
            )
            sheet.append_row(PREFERENCE_COLUMNS)
        return sheet


class GoogleSheetsPreferenceStorage(PreferenceStorageInterface):
    """
    Google Sheets implementation of slot storage.

    One slot per row. Values are the codec's UTF-8 text.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, rows: list[list[str]], key: str) -> Optional[int]:
        """Return the 1-based sheet row holding a key, skipping the header."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    def get(self, key: str) -> Optional[bytes]:
        try:
            rows = self._client.get_preferences_sheet().get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read slot '{key}': {e}")

        idx = self._find_row(rows, key)
        if idx is None:
            return None
        row = rows[idx - 1]
        value = row[1] if len(row) > 1 else ""
        return value.encode("utf-8")

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, key: str, text: str) -> None:
        sheet = self._client.get_preferences_sheet()
        idx = self._find_row(sheet.get_all_values(), key)
        if idx is None:
            sheet.append_row([key, text], value_input_option="RAW")
        else:
            # RAW keeps the text unparsed, same as append_row
            sheet.update(
                range_name=f"B{idx}",
                values=[[text]],
                value_input_option="RAW",
            )

    def set(self, key: str, value: bytes) -> None:
        """Overwrite a slot, appending a row the first time it is written."""
        try:
            text = bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(f"Slot '{key}' is not UTF-8 text: {e}")

        try:
            self._write_row(key, text)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write slot '{key}': {e}")

    def delete(self, key: str) -> bool:
        try:
            sheet = self._client.get_preferences_sheet()
            idx = self._find_row(sheet.get_all_values(), key)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete slot '{key}': {e}")

    def keys(self) -> list[str]:
        try:
            rows = self._client.get_preferences_sheet().get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list slots: {e}")
        return [row[0] for row in rows[1:] if row and row[0]]
