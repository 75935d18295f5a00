"""Builders for structural batchUpdate requests."""

from typing import Any, Dict, Iterable, List


def add_sheet_request(title: str) -> Dict[str, Any]:
    return {'addSheet': {'properties': {'title': title}}}


def rename_sheet_request(sheet_id: int, title: str) -> Dict[str, Any]:
    return {
        'updateSheetProperties': {
            'properties': {'sheetId': sheet_id, 'title': title},
            'fields': 'title',
        }
    }


def delete_rows_request(sheet_id: int, row_number: int, count: int = 1) -> Dict[str, Any]:
    """Deletes `count` rows starting at the 1-based row_number."""
    return {
        'deleteDimension': {
            'range': {
                'sheetId': sheet_id,
                'dimension': 'ROWS',
                'startIndex': row_number - 1,
                'endIndex': row_number - 1 + count,
            }
        }
    }


def delete_rows_requests(sheet_id: int, row_numbers: Iterable[int]) -> List[Dict[str, Any]]:
    """One deleteDimension per row, bottom-up so earlier deletes don't shift later ones."""
    return [delete_rows_request(sheet_id, n) for n in sorted(set(row_numbers), reverse=True)]
