"""Functions for reading table data out of a raw values grid."""

import logging
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from .schema import TableSchema
from .utils import cell_at, cell_to_string, is_row_empty

logger = logging.getLogger(__name__)


def data_start_index(schema: TableSchema, rows: Sequence[Sequence[Any]]) -> int:
    """0-based index of the first data row: 1 when row 1 is a recognizable header, else 0."""
    if rows and schema.looks_like_header(rows[0]):
        return 1
    return 0


def iter_data_rows(schema: TableSchema, rows: Sequence[Sequence[Any]]) -> Iterator[Tuple[int, Sequence[Any]]]:
    """Yields (1-based row number, row) for every non-blank data row."""
    for index in range(data_start_index(schema, rows), len(rows)):
        row = rows[index] or []
        if is_row_empty(row):
            continue
        yield index + 1, row


def count_data_rows(schema: TableSchema, rows: Sequence[Sequence[Any]]) -> int:
    """Rows below the header, blank ones included."""
    return max(0, len(rows) - data_start_index(schema, rows))


def decode_rows(schema: TableSchema, rows: Sequence[Sequence[Any]]) -> List[Any]:
    """Decodes every data row, dropping the ones the schema rejects."""
    records = []
    dropped = 0
    for row_number, row in iter_data_rows(schema, rows):
        try:
            record = schema.decode(row)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to decode {schema.title} row {row_number}: {e}")
            record = None
        if record is None:
            dropped += 1
            logger.debug(f"Skipping undecodable {schema.title} row {row_number}: {list(row)}")
            continue
        records.append(record)
    if dropped:
        logger.info(f"Skipped {dropped} invalid row(s) in {schema.title}")
    return records


def find_row_number(schema: TableSchema, rows: Sequence[Sequence[Any]], record_id: str) -> Optional[int]:
    """Linear scan of the first column. Returns the 1-based row number or None."""
    for row_number, row in iter_data_rows(schema, rows):
        if cell_to_string(cell_at(row, 0)) == record_id:
            logger.debug(f"Id {record_id} found at row {row_number} in {schema.title}")
            return row_number
    logger.debug(f"Id {record_id} not found in {schema.title}")
    return None
