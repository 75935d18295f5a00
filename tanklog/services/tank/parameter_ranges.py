"""Per-parameter thresholds kept in the PARAMETER_RANGES tab.

Rows have no id column: a range is identified by (parameter, status), with
the parameter compared case-insensitively. Writes always rewrite the whole
table so the sheet stays deduplicated and sorted.
"""

import dataclasses
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tanklog.config.config import PARAMETER_RANGES_SHEET
from tanklog.services.sheets import RowStore, TableSchema
from tanklog.services.sheets import reader
from tanklog.services.sheets.utils import cell_at, cell_to_number, cell_to_string, normalize_optional_text
from tanklog.utils.error_utils import NotFoundError, ValidationError

from .models import PARAMETER_RANGE_STATUSES, TANK_TYPES, ParameterRange
from .parameter_defaults import get_default_parameter_ranges
from .validators import require_text

logger = logging.getLogger(__name__)

PARAMETER_RANGES_HEADERS = ('parameter', 'min_value', 'max_value', 'unit', 'status', 'color')

_HEX_COLOR_RE = re.compile(r'^#([0-9a-f]{3}|[0-9a-f]{4}|[0-9a-f]{6}|[0-9a-f]{8})$')
_STATUS_ORDER = {status: index for index, status in enumerate(PARAMETER_RANGE_STATUSES)}
# Preference when one range has to stand for the whole parameter
_EFFECTIVE_ORDER = ('acceptable', 'optimal', 'critical')


def normalize_parameter_key(parameter: str) -> str:
    return (parameter or '').strip().lower()


def range_key(parameter_range: ParameterRange) -> Tuple[str, str]:
    return normalize_parameter_key(parameter_range.parameter), parameter_range.status


def normalize_color(value: Optional[str]) -> Optional[str]:
    text = normalize_optional_text(value)
    if not text:
        return None
    text = text.lower()
    return text if _HEX_COLOR_RE.match(text) else None


def _status_from_cell(value: Optional[str]) -> Optional[str]:
    """Blank and legacy tank-type values mean 'acceptable'; unknown text is rejected."""
    if not value:
        return 'acceptable'
    lowered = value.lower()
    if lowered in PARAMETER_RANGE_STATUSES:
        return lowered
    if lowered in TANK_TYPES:
        return 'acceptable'
    return None


def decode_range_row(row: Sequence[Any]) -> Optional[ParameterRange]:
    parameter = cell_to_string(cell_at(row, 0))
    min_value = cell_to_number(cell_at(row, 1))
    max_value = cell_to_number(cell_at(row, 2))
    unit = cell_to_string(cell_at(row, 3))
    status = _status_from_cell(cell_to_string(cell_at(row, 4)))
    if not parameter or not unit or status is None:
        return None
    if min_value is None and max_value is None:
        return None
    return ParameterRange(
        parameter=parameter,
        unit=unit,
        min_value=min_value,
        max_value=max_value,
        status=status,
        color=normalize_color(cell_to_string(cell_at(row, 5))),
    )


def encode_range(r: ParameterRange) -> List[Any]:
    return [r.parameter, r.min_value, r.max_value, r.unit, r.status, r.color]


def _optional_bound(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"Invalid {label} value.")
    return value


def validate_range(r: ParameterRange) -> ParameterRange:
    min_value = _optional_bound(r.min_value, 'minimum')
    max_value = _optional_bound(r.max_value, 'maximum')
    if min_value is None and max_value is None:
        raise ValidationError("Enter a minimum or a maximum.")
    if min_value is not None and max_value is not None and min_value > max_value:
        raise ValidationError("Minimum is greater than maximum.")
    status = normalize_optional_text(r.status) or 'acceptable'
    if status not in PARAMETER_RANGE_STATUSES:
        raise ValidationError("Invalid range status.")
    return dataclasses.replace(
        r,
        parameter=require_text(r.parameter, "Parameter is required."),
        unit=require_text(r.unit, "Unit is required."),
        min_value=min_value,
        max_value=max_value,
        status=status,
        color=normalize_color(r.color),
    )


def sort_ranges(ranges: List[ParameterRange]):
    ranges.sort(key=lambda r: (r.parameter.lower(), _STATUS_ORDER.get(r.status, 99)))


def unique_ranges(ranges: Iterable[ParameterRange]) -> List[ParameterRange]:
    """First range seen per (parameter, status) wins."""
    seen = set()
    result = []
    for r in ranges:
        key = range_key(r)
        if key in seen:
            continue
        seen.add(key)
        result.append(r)
    return result


def order_ranges(ranges: List[ParameterRange]):
    """In place: drops later duplicates, then sorts."""
    ranges[:] = unique_ranges(ranges)
    sort_ranges(ranges)


def dedupe_ranges(ranges: Iterable[ParameterRange]) -> List[ParameterRange]:
    """Keeps the first range per (parameter, status); invalid entries are dropped."""
    valid = []
    for candidate in ranges:
        try:
            valid.append(validate_range(candidate))
        except ValidationError as e:
            logger.debug(f"Dropping parameter range {candidate}: {e}")
    return unique_ranges(valid)


def pick_preferred_color(ranges: Sequence[ParameterRange]) -> Optional[str]:
    for status in _EFFECTIVE_ORDER:
        for r in ranges:
            if r.status == status and r.color:
                return r.color
    return next((r.color for r in ranges if r.color), None)


def pick_effective_range(ranges: Sequence[ParameterRange]) -> Optional[ParameterRange]:
    for status in _EFFECTIVE_ORDER:
        for r in ranges:
            if r.status == status:
                return r
    return None


def effective_ranges(ranges: Iterable[ParameterRange]) -> List[ParameterRange]:
    """One range per parameter (acceptable > optimal > critical), borrowing a color from siblings."""
    by_parameter: Dict[str, List[ParameterRange]] = {}
    for r in ranges:
        by_parameter.setdefault(normalize_parameter_key(r.parameter), []).append(r)

    effective = []
    for group in by_parameter.values():
        selected = pick_effective_range(group)
        if selected is None:
            continue
        effective.append(dataclasses.replace(selected, color=selected.color or pick_preferred_color(group)))
    effective.sort(key=lambda r: (r.parameter.lower(), r.parameter))
    return effective


PARAMETER_RANGES_SCHEMA = TableSchema(
    title=PARAMETER_RANGES_SHEET,
    headers=PARAMETER_RANGES_HEADERS,
    header_markers={
        0: ('parameter',),
        1: ('min_value',),
        2: ('max_value',),
        3: ('unit',),
        4: ('status', 'tank_type'),
    },
    decode=decode_range_row,
    encode=encode_range,
    validate=validate_range,
    sort=order_ranges,
    entity='Parameter range',
)


class ParameterRangesService:
    def __init__(self, transport, serialize_mutations: bool = False):
        self.store = RowStore(transport, PARAMETER_RANGES_SCHEMA, serialize_mutations=serialize_mutations)

    async def list_parameter_ranges(self, spreadsheet_id: str) -> List[ParameterRange]:
        """All valid ranges sorted by parameter, then optimal < acceptable < critical."""
        return await self.store.list(spreadsheet_id)

    async def read_parameter_ranges_sheet(self, spreadsheet_id: str) -> Tuple[List[ParameterRange], int]:
        """Returns (sorted ranges, number of data rows currently in the sheet, blanks included)."""
        rows = await self.store.read_rows(spreadsheet_id)
        ranges = reader.decode_rows(self.store.schema, rows)
        order_ranges(ranges)
        return ranges, reader.count_data_rows(self.store.schema, rows)

    async def list_effective_parameter_ranges(self, spreadsheet_id: str) -> List[ParameterRange]:
        return effective_ranges(await self.list_parameter_ranges(spreadsheet_id))

    async def _write_all(self, spreadsheet_id: str, ranges: Iterable[ParameterRange]) -> int:
        schema = self.store.schema
        rows = await self.store.read_rows(spreadsheet_id)
        existing_row_count = reader.count_data_rows(schema, rows)

        final = dedupe_ranges(ranges)
        sort_ranges(final)
        values = [list(schema.headers)] + [schema.encode(r) for r in final]
        # Blank out rows left over from a longer previous table
        blanks = max(0, existing_row_count - len(final))
        values += [[None] * schema.column_count for _ in range(blanks)]

        await self.store.transport.write_range(spreadsheet_id, schema.rows_range(1, len(values)), values)
        logger.info(f"Saved {len(final)} parameter range(s) ({blanks} leftover row(s) cleared)")
        return len(final)

    async def save_parameter_ranges(self, spreadsheet_id: str, ranges: Iterable[ParameterRange]) -> int:
        """Replaces the whole table with the given ranges. Returns how many were saved."""
        ranges = list(ranges)
        async with self.store.mutation():
            return await self._write_all(spreadsheet_id, ranges)

    async def apply_preset(self, spreadsheet_id: str, tank_type: str) -> int:
        if tank_type not in TANK_TYPES:
            raise ValidationError(f"Unknown tank type '{tank_type}'.")
        return await self.save_parameter_ranges(spreadsheet_id, get_default_parameter_ranges(tank_type))

    async def create_parameter_range(self, spreadsheet_id: str, parameter_range: ParameterRange) -> ParameterRange:
        new_range = validate_range(parameter_range)
        async with self.store.mutation():
            current, _ = await self.read_parameter_ranges_sheet(spreadsheet_id)
            if any(range_key(r) == range_key(new_range) for r in current):
                raise ValidationError(
                    f"A {new_range.status} range for {new_range.parameter} already exists.")
            await self._write_all(spreadsheet_id, current + [new_range])
        return new_range

    async def update_parameter_range(self, spreadsheet_id: str, parameter: str, status: str,
                                     parameter_range: ParameterRange) -> ParameterRange:
        """Replaces the range stored under (parameter, status)."""
        updated = validate_range(parameter_range)
        key = (normalize_parameter_key(parameter), status)
        async with self.store.mutation():
            current, _ = await self.read_parameter_ranges_sheet(spreadsheet_id)
            index = next((i for i, r in enumerate(current) if range_key(r) == key), None)
            if index is None:
                raise NotFoundError("Parameter range not found.")
            if range_key(updated) != key and any(range_key(r) == range_key(updated) for r in current):
                raise ValidationError(
                    f"A {updated.status} range for {updated.parameter} already exists.")
            current[index] = updated
            await self._write_all(spreadsheet_id, current)
        return updated

    async def delete_parameter_range(self, spreadsheet_id: str, parameter: str, status: str):
        key = (normalize_parameter_key(parameter), status)
        async with self.store.mutation():
            current, _ = await self.read_parameter_ranges_sheet(spreadsheet_id)
            remaining = [r for r in current if range_key(r) != key]
            if len(remaining) == len(current):
                raise NotFoundError("Parameter range not found.")
            await self._write_all(spreadsheet_id, remaining)
        logger.info(f"Deleted {status} range for {parameter}")
