"""Module for storing records in Google Sheets.

Provides:
- SheetsTransport: async values/batchUpdate calls with the user's token.
- TableSchema: header layout and row codec of one table.
- RowStore: ensure-table, list, find, create, update, delete over one tab.
"""

# Public API for the sheets service

from .client import SheetsTransport
from .schema import TableSchema, markers_from_headers
from .rows import RowStore, find_sheet_id, require_spreadsheet_id
from .updater import add_sheet_request, rename_sheet_request, delete_rows_request

__all__ = [
    'SheetsTransport',
    'TableSchema',
    'markers_from_headers',
    'RowStore',
    'find_sheet_id',
    'require_spreadsheet_id',
    'add_sheet_request',
    'rename_sheet_request',
    'delete_rows_request',
]
