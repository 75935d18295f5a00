"""Utility functions for Google Sheets interactions: cell codec, ids, A1 ranges and dates."""

import logging
import math
import re
import secrets
import string
import time
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Union

import gspread

logger = logging.getLogger(__name__)

# What the values API can hand back for a single cell with UNFORMATTED_VALUE
CellValue = Union[str, int, float, bool, None]

_SAFE_PREFIX_RE = re.compile(r'[^a-z0-9_-]', re.IGNORECASE)
_DATE_ONLY_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_BASE36_DIGITS = string.digits + string.ascii_lowercase


# --- Cell decoding ---

def normalize_optional_text(value: Optional[str]) -> Optional[str]:
    """Strips a string; whitespace-only or missing text becomes None."""
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def cell_to_string(value: Any) -> Optional[str]:
    """Converts a raw cell into trimmed text, or None when the cell is blank."""
    if value is None:
        return None
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (int, float)):
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            if value.is_integer():
                return str(int(value))
        return str(value)
    if isinstance(value, str):
        return normalize_optional_text(value)
    return None


def cell_to_number(value: Any) -> Optional[float]:
    """Converts a raw cell into a number. Accepts '7,5' as well as '7.5'."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    normalized = value.strip().replace(',', '.', 1)
    if not normalized:
        return None
    try:
        parsed = float(normalized)
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    return int(parsed) if parsed.is_integer() else parsed


def cell_at(row: Sequence[Any], index: int) -> Any:
    """Returns the cell at index, or None for short rows (the API trims trailing blanks)."""
    return row[index] if index < len(row) else None


def is_row_empty(row: Optional[Sequence[Any]]) -> bool:
    if not row:
        return True
    return all(cell is None or (isinstance(cell, str) and not cell.strip()) for cell in row)


# --- Cell encoding ---

def encode_cell(value: Any) -> Any:
    """Converts a Python value into something the RAW value input accepts."""
    if value is None:
        return ''
    if isinstance(value, datetime):
        return to_iso_instant(value)
    return value


def encode_row(values: Sequence[Any]) -> List[Any]:
    return [encode_cell(v) for v in values]


# --- Identifiers ---

def _to_base36(number: int) -> str:
    if number <= 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return ''.join(reversed(digits))


def generate_id(prefix: str) -> str:
    """Builds a fresh record id like 'ev_<uuid4>'.

    Falls back to '<prefix>_<base36 millis>_<random>' if the uuid source fails.
    """
    safe_prefix = _SAFE_PREFIX_RE.sub('', (prefix or '').strip()) or 'id'
    try:
        return f"{safe_prefix}_{uuid.uuid4()}"
    except Exception as e:  # os.urandom can fail on exotic platforms
        logger.warning(f"uuid4 unavailable ({e}), using time based id for prefix '{safe_prefix}'")
        time_part = _to_base36(int(time.time() * 1000))
        random_part = ''.join(secrets.choice(_BASE36_DIGITS) for _ in range(8))
        return f"{safe_prefix}_{time_part}_{random_part}"


# --- A1 helpers ---

def column_letter(col_num_1based: int) -> str:
    """1 -> 'A', 8 -> 'H', 27 -> 'AA'."""
    cell_a1 = gspread.utils.rowcol_to_a1(1, col_num_1based)
    return cell_a1.rstrip('0123456789')


def sheet_range(title: str, range_a1: str) -> str:
    """Prefixes an A1 range with a quoted sheet title: "'EVENTS'!A:H"."""
    return gspread.utils.absolute_range_name(title, range_a1)


# --- Dates ---

def is_date_only(value: Optional[str]) -> bool:
    return bool(value) and bool(_DATE_ONLY_RE.match(value.strip()))


def parse_date_only(value: str):
    """Parses 'YYYY-MM-DD' into a date, or None."""
    match = _DATE_ONLY_RE.match((value or '').strip())
    if not match:
        return None
    try:
        return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3))).date()
    except ValueError:
        return None


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """Parses an ISO-8601 instant into an aware datetime.

    A trailing 'Z' is accepted. Date-only strings are read as UTC midnight,
    naive timestamps as local time.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        if is_date_only(value):
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone()
    return parsed


def to_iso_instant(dt: datetime) -> str:
    """Formats a datetime as '2024-01-25T10:00:00.000Z'. Naive values are taken as local time."""
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def normalize_instant(value: Union[str, datetime, None]) -> Optional[str]:
    """Normalizes a datetime or ISO string into the canonical UTC instant text."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_iso_instant(value)
    parsed = parse_instant(value)
    return to_iso_instant(parsed) if parsed else None


def to_epoch(value: Optional[str]) -> Optional[float]:
    """Epoch seconds for sorting; None when the text is not a parsable date."""
    parsed = parse_instant(value)
    return parsed.timestamp() if parsed else None
