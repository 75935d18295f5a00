"""RowStore: CRUD for one record type kept as rows of one sheet tab."""

import asyncio
import contextlib
import dataclasses
import logging
from typing import Any, Generic, Iterable, List, Optional, Set, Tuple, TypeVar

from tanklog.utils.error_utils import NotFoundError, SchemaError, ValidationError

# Local imports
from . import reader
from .schema import TableSchema
from .updater import add_sheet_request, delete_rows_requests
from .utils import generate_id

logger = logging.getLogger(__name__)

T = TypeVar('T')


def require_spreadsheet_id(spreadsheet_id: Optional[str]) -> str:
    if not spreadsheet_id or not str(spreadsheet_id).strip():
        raise ValidationError("Missing spreadsheet id.")
    return str(spreadsheet_id).strip()


def find_sheet_id(properties: Iterable[dict], title: str) -> Optional[int]:
    for props in properties:
        if props.get('title') == title and isinstance(props.get('sheetId'), int):
            return props['sheetId']
    return None


class RowStore(Generic[T]):
    """Maps records of one TableSchema onto rows.

    Row position is never cached: every mutation re-reads the table and scans
    for the id first. Without serialize_mutations two concurrent mutations can
    resolve the same row number and then act on a shifted table.
    """

    def __init__(self, transport, schema: TableSchema[T], serialize_mutations: bool = False):
        self.transport = transport
        self.schema = schema
        self._ensured: Set[str] = set()
        self._mutation_lock = asyncio.Lock() if serialize_mutations else None

    # --- table provisioning ---

    def invalidate(self, spreadsheet_id: Optional[str] = None):
        """Forgets that a table was ensured (all spreadsheets when no id is given)."""
        if spreadsheet_id is None:
            self._ensured.clear()
        else:
            self._ensured.discard(spreadsheet_id)

    def is_ensured(self, spreadsheet_id: str) -> bool:
        return spreadsheet_id in self._ensured

    async def ensure_table(self, spreadsheet_id: str):
        """Makes sure the tab exists and row 1 holds the canonical header. Memoized."""
        spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
        if spreadsheet_id in self._ensured:
            return
        # Mark first so concurrent callers don't repeat the work
        self._ensured.add(spreadsheet_id)
        try:
            properties = await self.transport.get_sheet_properties(spreadsheet_id)
            if find_sheet_id(properties, self.schema.title) is None:
                if not self.schema.create_if_missing:
                    raise SchemaError(f"The spreadsheet is missing the {self.schema.title} tab.")
                logger.info(f"Adding missing {self.schema.title} tab to {spreadsheet_id}")
                await self.transport.batch_update(spreadsheet_id, [add_sheet_request(self.schema.title)])
            await self.transport.write_range(spreadsheet_id, self.schema.header_range(), [list(self.schema.headers)])
        except Exception:
            self._ensured.discard(spreadsheet_id)
            raise

    async def get_sheet_id(self, spreadsheet_id: str) -> int:
        properties = await self.transport.get_sheet_properties(spreadsheet_id)
        sheet_id = find_sheet_id(properties, self.schema.title)
        if sheet_id is None:
            raise SchemaError(f"Missing {self.schema.title} sheet id.")
        return sheet_id

    # --- reads ---

    async def read_rows(self, spreadsheet_id: str) -> List[List[Any]]:
        """Raw values of the whole table, header included."""
        await self.ensure_table(spreadsheet_id)
        return await self.transport.read_range(spreadsheet_id, self.schema.full_range())

    async def list(self, spreadsheet_id: str) -> List[T]:
        spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
        rows = await self.read_rows(spreadsheet_id)
        records = reader.decode_rows(self.schema, rows)
        if self.schema.sort:
            self.schema.sort(records)
        return records

    async def find_row_number(self, spreadsheet_id: str, record_id: str) -> int:
        spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
        rows = await self.read_rows(spreadsheet_id)
        row_number = reader.find_row_number(self.schema, rows, record_id)
        if row_number is None:
            raise NotFoundError(f"{self.schema.entity} not found.")
        return row_number

    async def get(self, spreadsheet_id: str, record_id: str) -> Tuple[int, T]:
        """Returns (row number, decoded record). Raises ValidationError if the row no longer decodes."""
        row_number = await self.find_row_number(spreadsheet_id, record_id)
        values = await self.transport.read_range(spreadsheet_id, self.schema.row_range(row_number))
        row = values[0] if values else None
        if not row:
            raise NotFoundError(f"{self.schema.entity} not found.")
        record = self.schema.decode(row)
        if record is None:
            raise ValidationError(f"{self.schema.entity} is invalid.")
        return row_number, record

    # --- mutations ---

    def mutation(self):
        """Context manager guarding resolve-then-mutate when serialize_mutations is on."""
        if self._mutation_lock is not None:
            return self._mutation_lock
        return contextlib.nullcontext()

    def _require_id(self, record_id: Optional[str]) -> str:
        if not record_id or not str(record_id).strip():
            raise ValidationError(f"Missing {self.schema.entity.lower()} id.")
        return str(record_id).strip()

    async def create(self, spreadsheet_id: str, record: T) -> T:
        """Validates the record, assigns a fresh id and appends it."""
        spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
        record = self.schema.validate(record)
        if self.schema.id_prefix:
            record = dataclasses.replace(record, id=generate_id(self.schema.id_prefix))
        await self.append(spreadsheet_id, [record])
        return record

    async def append(self, spreadsheet_id: str, records: List[T]):
        """Appends already-validated records in one call."""
        spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
        if not records:
            return
        await self.ensure_table(spreadsheet_id)
        await self.transport.append_rows(
            spreadsheet_id, self.schema.full_range(), [self.schema.encode(r) for r in records])
        logger.info(f"Appended {len(records)} row(s) to {self.schema.title}")

    async def update(self, spreadsheet_id: str, record_id: str, record: T) -> T:
        """Validates and overwrites the row holding record_id."""
        spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
        record_id = self._require_id(record_id)
        record = self.schema.validate(record)
        record = dataclasses.replace(record, id=record_id)
        async with self.mutation():
            row_number = await self.find_row_number(spreadsheet_id, record_id)
            await self.write_row(spreadsheet_id, row_number, record)
        return record

    async def write_row(self, spreadsheet_id: str, row_number: int, record: T):
        await self.transport.write_range(
            spreadsheet_id, self.schema.row_range(row_number), [self.schema.encode(record)])
        logger.info(f"Updated {self.schema.title} row {row_number}")

    async def delete(self, spreadsheet_id: str, record_id: str):
        spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
        record_id = self._require_id(record_id)
        async with self.mutation():
            row_number = await self.find_row_number(spreadsheet_id, record_id)
            await self.delete_row_numbers(spreadsheet_id, [row_number])

    async def delete_row_numbers(self, spreadsheet_id: str, row_numbers: List[int]):
        """Deletes rows in one batchUpdate, highest row first."""
        if not row_numbers:
            return
        sheet_id = await self.get_sheet_id(spreadsheet_id)
        await self.transport.batch_update(spreadsheet_id, delete_rows_requests(sheet_id, row_numbers))
        logger.info(f"Deleted {len(row_numbers)} row(s) from {self.schema.title}")
