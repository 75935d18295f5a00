"""Table schema: how one record type is laid out across the columns of one sheet tab."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

from .utils import cell_at, column_letter, sheet_range

T = TypeVar('T')


@dataclass(frozen=True)
class TableSchema(Generic[T]):
    """Describes one table.

    Attributes:
        title: Sheet tab title, e.g. 'EVENTS'.
        headers: Canonical header row written to row 1.
        header_markers: 0-based column index -> accepted lowercase header texts.
            Row 1 is treated as a header only if every marker matches.
        decode: Raw row -> record, or None when the row is not a valid record.
        encode: Record -> list of cell values in column order.
        validate: Normalizes a record or raises ValidationError.
        id_prefix: Prefix for generated ids. None for tables without an id column.
        sort: Optional in-place ordering applied by list().
        create_if_missing: Add the tab when absent; otherwise ensure fails with SchemaError.
        entity: Human name used in error messages.
    """
    title: str
    headers: Tuple[str, ...]
    header_markers: Dict[int, Tuple[str, ...]]
    decode: Callable[[Sequence[Any]], Optional[T]]
    encode: Callable[[T], List[Any]]
    validate: Callable[[T], T]
    id_prefix: Optional[str] = None
    sort: Optional[Callable[[List[T]], None]] = None
    create_if_missing: bool = True
    entity: str = field(default='Record')

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def last_column(self) -> str:
        return column_letter(self.column_count)

    def full_range(self) -> str:
        """Every row of the table: "'EVENTS'!A:H"."""
        return sheet_range(self.title, f"A:{self.last_column}")

    def row_range(self, row_number: int) -> str:
        """One row, 1-based: "'EVENTS'!A5:H5"."""
        return sheet_range(self.title, f"A{row_number}:{self.last_column}{row_number}")

    def rows_range(self, first_row: int, last_row: int) -> str:
        return sheet_range(self.title, f"A{first_row}:{self.last_column}{last_row}")

    def header_range(self) -> str:
        return self.row_range(1)

    def looks_like_header(self, row: Optional[Sequence[Any]]) -> bool:
        """Structural header check against the marker columns."""
        if not row:
            return False
        for index, accepted in self.header_markers.items():
            cell = cell_at(row, index)
            if not isinstance(cell, str) or cell.strip().lower() not in accepted:
                return False
        return True


def markers_from_headers(headers: Sequence[str], indexes: Sequence[int]) -> Dict[int, Tuple[str, ...]]:
    """Builds header markers that expect the canonical header text at the given columns."""
    return {index: (headers[index],) for index in indexes}
