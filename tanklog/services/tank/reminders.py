"""Maintenance reminders kept in the REMINDERS tab.

next_due is either a calendar day ('2024-01-10') or a full instant. A
calendar day counts as due until the end of that day in local time.
"""

import dataclasses
import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Sequence, Union

from tanklog.config.config import REMINDERS_SHEET
from tanklog.services.sheets import RowStore, TableSchema, markers_from_headers
from tanklog.services.sheets.utils import (
    cell_at, cell_to_number, cell_to_string, is_date_only, normalize_instant, normalize_optional_text,
    parse_date_only, parse_instant, to_iso_instant,
)
from tanklog.utils.error_utils import ValidationError

from .models import TankReminder
from .validators import require_text

logger = logging.getLogger(__name__)

REMINDERS_HEADERS = ('id', 'title', 'next_due', 'repeat_every_days', 'last_done', 'notes')


def normalize_due(value: Union[str, date, datetime, None]) -> Optional[str]:
    """Date-only values stay as 'YYYY-MM-DD'; anything else becomes a UTC instant."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_iso_instant(value)
    if isinstance(value, date):
        return value.isoformat()
    text = value.strip()
    if is_date_only(text):
        parsed = parse_date_only(text)
        return parsed.isoformat() if parsed else None
    return normalize_instant(text)


def due_datetime(value: Optional[str]) -> Optional[datetime]:
    """Moment a reminder becomes overdue: end of the local day for date-only values."""
    if not value:
        return None
    if is_date_only(value):
        day = parse_date_only(value)
        if day is None:
            return None
        return datetime(day.year, day.month, day.day, 23, 59, 59, 999000).astimezone()
    return parse_instant(value)


def add_days_local(dt: datetime, days: int) -> datetime:
    """Adds calendar days on the local wall clock (keeps the time of day across DST)."""
    local_naive = dt.astimezone().replace(tzinfo=None)
    return (local_naive + timedelta(days=days)).astimezone()


def _repeat_from_cell(value: Any) -> Optional[int]:
    number = cell_to_number(value)
    if number is None or number <= 0 or not float(number).is_integer():
        return None
    return int(number)


def decode_reminder_row(row: Sequence[Any]) -> Optional[TankReminder]:
    reminder_id = cell_to_string(cell_at(row, 0))
    title = cell_to_string(cell_at(row, 1))
    raw_next_due = cell_to_string(cell_at(row, 2))
    if not reminder_id or not title or not raw_next_due:
        return None
    next_due = normalize_due(raw_next_due)
    if not next_due:
        return None
    raw_last_done = cell_to_string(cell_at(row, 4))
    last_done = normalize_instant(raw_last_done) if raw_last_done else None
    if raw_last_done and not last_done:
        return None
    return TankReminder(
        id=reminder_id,
        title=title,
        next_due=next_due,
        repeat_every_days=_repeat_from_cell(cell_at(row, 3)),
        last_done=last_done,
        notes=cell_to_string(cell_at(row, 5)),
    )


def encode_reminder(reminder: TankReminder) -> List[Any]:
    return [reminder.id, reminder.title, reminder.next_due,
            reminder.repeat_every_days, reminder.last_done, reminder.notes]


def _validate_repeat(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("Invalid repeat interval.")
    if not math.isfinite(value) or value <= 0 or not float(value).is_integer():
        raise ValidationError("Invalid repeat interval.")
    return int(value)


def validate_reminder(reminder: TankReminder) -> TankReminder:
    title = require_text(reminder.title, "Title is required.")
    if reminder.next_due is None or (isinstance(reminder.next_due, str) and not reminder.next_due.strip()):
        raise ValidationError("Next due date is required.")
    next_due = normalize_due(reminder.next_due)
    if not next_due:
        raise ValidationError("Invalid next due date.")
    last_done = None
    if reminder.last_done is not None:
        last_done = normalize_instant(reminder.last_done)
        if not last_done:
            raise ValidationError("Invalid last done date.")
    return dataclasses.replace(
        reminder,
        title=title,
        next_due=next_due,
        repeat_every_days=_validate_repeat(reminder.repeat_every_days),
        last_done=last_done,
        notes=normalize_optional_text(reminder.notes),
    )


def sort_reminders(reminders: List[TankReminder]):
    def key(reminder: TankReminder) -> float:
        due = due_datetime(reminder.next_due)
        return due.timestamp() if due else math.inf
    reminders.sort(key=key)


def next_due_after(reminder: TankReminder, done_at: datetime) -> str:
    """Steps next_due forward by the repeat interval until it lies after done_at."""
    base = due_datetime(reminder.next_due) or done_at
    next_due = add_days_local(base, reminder.repeat_every_days)
    while next_due <= done_at:
        next_due = add_days_local(next_due, reminder.repeat_every_days)
    if is_date_only(reminder.next_due):
        return next_due.date().isoformat()
    return to_iso_instant(next_due)


REMINDERS_SCHEMA = TableSchema(
    title=REMINDERS_SHEET,
    headers=REMINDERS_HEADERS,
    header_markers=markers_from_headers(REMINDERS_HEADERS, (0, 1, 2)),
    decode=decode_reminder_row,
    encode=encode_reminder,
    validate=validate_reminder,
    id_prefix='r',
    sort=sort_reminders,
    entity='Reminder',
)


class RemindersService:
    def __init__(self, transport, serialize_mutations: bool = False):
        self.store = RowStore(transport, REMINDERS_SCHEMA, serialize_mutations=serialize_mutations)

    async def list_reminders(self, spreadsheet_id: str) -> List[TankReminder]:
        """All reminders, soonest due first."""
        return await self.store.list(spreadsheet_id)

    async def create_reminder(self, spreadsheet_id: str, title: str, next_due,
                              repeat_every_days: Optional[int] = None,
                              notes: Optional[str] = None) -> TankReminder:
        reminder = TankReminder(id='', title=title, next_due=next_due,
                                repeat_every_days=repeat_every_days, notes=notes)
        created = await self.store.create(spreadsheet_id, reminder)
        logger.info(f"Created reminder {created.id} due {created.next_due}")
        return created

    async def update_reminder(self, spreadsheet_id: str, reminder_id: str, title: str, next_due,
                              repeat_every_days: Optional[int] = None, last_done=None,
                              notes: Optional[str] = None) -> TankReminder:
        reminder = TankReminder(id=reminder_id, title=title, next_due=next_due,
                                repeat_every_days=repeat_every_days, last_done=last_done, notes=notes)
        return await self.store.update(spreadsheet_id, reminder_id, reminder)

    async def delete_reminder(self, spreadsheet_id: str, reminder_id: str):
        await self.store.delete(spreadsheet_id, reminder_id)
        logger.info(f"Deleted reminder {reminder_id}")

    async def mark_reminder_done(self, spreadsheet_id: str, reminder_id: str,
                                 done_at: Optional[datetime] = None) -> TankReminder:
        """Records completion and, for repeating reminders, rolls next_due forward."""
        if not reminder_id:
            raise ValidationError("Missing reminder id.")
        done_at = (done_at or datetime.now()).astimezone()
        async with self.store.mutation():
            row_number, reminder = await self.store.get(spreadsheet_id, reminder_id)
            updated = dataclasses.replace(reminder, last_done=to_iso_instant(done_at))
            if reminder.repeat_every_days is not None:
                updated = dataclasses.replace(updated, next_due=next_due_after(reminder, done_at))
            await self.store.write_row(spreadsheet_id, row_number, updated)
        logger.info(f"Reminder {reminder_id} done; next due {updated.next_due}")
        return updated

    async def set_reminder_done(self, spreadsheet_id: str, reminder_id: str, done: bool) -> TankReminder:
        """Sets last_done to now, or clears it. next_due is left alone."""
        if not reminder_id:
            raise ValidationError("Missing reminder id.")
        async with self.store.mutation():
            row_number, reminder = await self.store.get(spreadsheet_id, reminder_id)
            last_done = to_iso_instant(datetime.now().astimezone()) if done else None
            updated = dataclasses.replace(reminder, last_done=last_done)
            await self.store.write_row(spreadsheet_id, row_number, updated)
        return updated
