"""Google Sheets transport: values and batchUpdate calls made with the user's bearer token."""

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import gspread
import requests
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from gspread.exceptions import APIError

# Project imports
from tanklog.config.config import (
    SCOPES, VALUE_RENDER_OPTION, DATETIME_RENDER_OPTION, VALUE_INPUT_OPTION, INSERT_DATA_OPTION,
)
from tanklog.utils.error_utils import AuthRequiredError, TransportError

# Local imports
from .utils import encode_row

logger = logging.getLogger(__name__)


def _api_error_status(error: APIError) -> Optional[int]:
    response = getattr(error, 'response', None)
    status = getattr(response, 'status_code', None)
    if isinstance(status, int):
        return status
    code = getattr(error, 'code', None)
    return code if isinstance(code, int) else None


def _api_error_message(error: APIError) -> str:
    """Pulls error.message out of the Google JSON error body when there is one."""
    body = getattr(error, 'error', None)
    if not isinstance(body, dict) and error.args and isinstance(error.args[0], dict):
        body = error.args[0]
    if isinstance(body, dict) and body.get('message'):
        return str(body['message'])
    return str(error)


class SheetsTransport:
    """Async facade over gspread for one signed-in user.

    Every call asks the session manager for a valid token first, then runs the
    blocking gspread call in a worker thread. The gspread client is rebuilt
    whenever the token changes.
    """

    def __init__(self, session_manager, client_factory: Callable[[Credentials], gspread.Client] = gspread.authorize):
        self._session_manager = session_manager
        self._client_factory = client_factory
        self._client: Optional[gspread.Client] = None
        self._client_token: Optional[str] = None
        self._client_lock = threading.Lock()
        self._spreadsheet_cache: Dict[str, gspread.Spreadsheet] = {}
        self._spreadsheet_cache_lock = threading.Lock()
        self._auth_failure_listeners: List[Callable[[], None]] = []

    def add_auth_failure_listener(self, listener: Callable[[], None]):
        """Registers a callback fired after a 401, e.g. to drop ensured-table memos."""
        self._auth_failure_listeners.append(listener)

    # --- gspread client & spreadsheet cache ---

    def _get_client(self, token: str) -> gspread.Client:
        with self._client_lock:
            if self._client is None or self._client_token != token:
                logger.info("Authorizing gspread client with the current access token...")
                creds = Credentials(token=token, scopes=SCOPES)
                self._client = self._client_factory(creds)
                self._client_token = token
                with self._spreadsheet_cache_lock:
                    self._spreadsheet_cache.clear()
            return self._client

    def _open(self, token: str, spreadsheet_id: str) -> gspread.Spreadsheet:
        client = self._get_client(token)
        cached = self._spreadsheet_cache.get(spreadsheet_id)
        if cached is not None:
            return cached
        with self._spreadsheet_cache_lock:
            # Double-check cache inside lock
            cached = self._spreadsheet_cache.get(spreadsheet_id)
            if cached is not None:
                return cached
            logger.debug(f"Spreadsheet cache miss for {spreadsheet_id}. Opening...")
            spreadsheet = client.open_by_key(spreadsheet_id)
            self._spreadsheet_cache[spreadsheet_id] = spreadsheet
            return spreadsheet

    def reset(self):
        """Forgets the cached client and spreadsheets (e.g. after logout)."""
        with self._client_lock:
            self._client = None
            self._client_token = None
        with self._spreadsheet_cache_lock:
            self._spreadsheet_cache.clear()

    # --- call wrapper ---

    async def _handle_auth_failure(self, reason: str):
        logger.warning(f"Sheets API rejected the access token ({reason}). Clearing session.")
        self.reset()
        await self._session_manager.invalidate()
        for listener in list(self._auth_failure_listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Auth failure listener {listener!r} raised: {e}", exc_info=True)

    async def _call(self, spreadsheet_id: str, action: str, operation: Callable[[gspread.Spreadsheet], Any]) -> Any:
        token = await self._session_manager.get_valid_token()

        def run():
            return operation(self._open(token, spreadsheet_id))

        logger.debug(f"Sheets {action} on {spreadsheet_id}")
        try:
            return await asyncio.to_thread(run)
        except RefreshError as e:
            # A bare access token cannot be refreshed; google-auth raises this after a 401
            await self._handle_auth_failure(str(e))
            raise AuthRequiredError() from e
        except APIError as e:
            status = _api_error_status(e)
            if status == 401:
                await self._handle_auth_failure(_api_error_message(e))
                raise AuthRequiredError() from e
            message = _api_error_message(e)
            logger.error(f"Sheets {action} failed on {spreadsheet_id}: {status} {message}")
            raise TransportError(status, message) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error during Sheets {action} on {spreadsheet_id}: {e}", exc_info=True)
            raise TransportError(None, str(e)) from e

    # --- public API ---

    async def read_range(self, spreadsheet_id: str, range_a1: str) -> List[List[Any]]:
        """Reads a range as a list of rows (trailing blank cells/rows are omitted by the API)."""
        params = {
            'valueRenderOption': VALUE_RENDER_OPTION,
            'dateTimeRenderOption': DATETIME_RENDER_OPTION,
            'majorDimension': 'ROWS',
        }
        response = await self._call(spreadsheet_id, f"read {range_a1}",
                                    lambda sh: sh.values_get(range_a1, params=params))
        return (response or {}).get('values', []) or []

    async def write_range(self, spreadsheet_id: str, range_a1: str, values: List[List[Any]]) -> Dict[str, Any]:
        """Overwrites a range. None becomes an empty string; values are written RAW."""
        body = {'values': [encode_row(row) for row in values], 'majorDimension': 'ROWS'}
        params = {'valueInputOption': VALUE_INPUT_OPTION}
        return await self._call(spreadsheet_id, f"write {range_a1}",
                                lambda sh: sh.values_update(range_a1, params=params, body=body))

    async def append_rows(self, spreadsheet_id: str, range_a1: str, values: List[List[Any]]) -> Dict[str, Any]:
        """Appends rows after the last row of the table found in range_a1."""
        body = {'values': [encode_row(row) for row in values], 'majorDimension': 'ROWS'}
        params = {'valueInputOption': VALUE_INPUT_OPTION, 'insertDataOption': INSERT_DATA_OPTION}
        return await self._call(spreadsheet_id, f"append {range_a1}",
                                lambda sh: sh.values_append(range_a1, params=params, body=body))

    async def batch_update(self, spreadsheet_id: str, requests_: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Runs structural requests (addSheet, updateSheetProperties, deleteDimension)."""
        return await self._call(spreadsheet_id, f"batchUpdate x{len(requests_)}",
                                lambda sh: sh.batch_update({'requests': requests_}))

    async def get_sheet_properties(self, spreadsheet_id: str) -> List[Dict[str, Any]]:
        """Returns [{'sheetId': ..., 'title': ..., 'index': ...}, ...] for every tab."""
        params = {'fields': 'sheets.properties(sheetId,title,index)'}
        metadata = await self._call(spreadsheet_id, "metadata",
                                    lambda sh: sh.fetch_sheet_metadata(params=params))
        return [sheet.get('properties', {}) for sheet in (metadata or {}).get('sheets', [])]
