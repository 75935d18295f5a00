"""Tank events (water changes, dosing, maintenance...) kept in the EVENTS tab."""

import dataclasses
import logging
import math
from typing import Any, List, Optional, Sequence

from tanklog.config.config import EVENTS_SHEET
from tanklog.services.sheets import RowStore, TableSchema, markers_from_headers
from tanklog.services.sheets.utils import cell_at, cell_to_number, cell_to_string, normalize_optional_text, to_epoch

from .models import EVENT_TYPES, TankEvent
from .validators import optional_non_negative_number, require_choice, require_instant, require_text

logger = logging.getLogger(__name__)

EVENTS_HEADERS = ('id', 'date', 'type', 'description', 'quantity', 'unit', 'product', 'note')


def decode_event_row(row: Sequence[Any]) -> Optional[TankEvent]:
    event_id = cell_to_string(cell_at(row, 0))
    date = cell_to_string(cell_at(row, 1))
    event_type = cell_to_string(cell_at(row, 2))
    description = cell_to_string(cell_at(row, 3))
    if not event_id or not date or not event_type or not description:
        return None
    if event_type not in EVENT_TYPES:
        return None
    return TankEvent(
        id=event_id,
        date=date,
        type=event_type,
        description=description,
        quantity=cell_to_number(cell_at(row, 4)),
        unit=cell_to_string(cell_at(row, 5)),
        product=cell_to_string(cell_at(row, 6)),
        note=cell_to_string(cell_at(row, 7)),
    )


def encode_event(event: TankEvent) -> List[Any]:
    return [event.id, event.date, event.type, event.description,
            event.quantity, event.unit, event.product, event.note]


def validate_event(event: TankEvent) -> TankEvent:
    return dataclasses.replace(
        event,
        date=require_instant(event.date, "Invalid event date."),
        type=require_choice(event.type, EVENT_TYPES, "Invalid event type."),
        description=require_text(event.description, "Description is required."),
        quantity=optional_non_negative_number(event.quantity, "Invalid quantity."),
        unit=normalize_optional_text(event.unit),
        product=normalize_optional_text(event.product),
        note=normalize_optional_text(event.note),
    )


def newest_first_key(date: Optional[str]) -> float:
    """Sort key putting recent dates first and unparsable ones last."""
    epoch = to_epoch(date)
    return -epoch if epoch is not None else math.inf


def sort_events(events: List[TankEvent]):
    events.sort(key=lambda e: newest_first_key(e.date))


EVENTS_SCHEMA = TableSchema(
    title=EVENTS_SHEET,
    headers=EVENTS_HEADERS,
    header_markers=markers_from_headers(EVENTS_HEADERS, (0, 1, 2, 3)),
    decode=decode_event_row,
    encode=encode_event,
    validate=validate_event,
    id_prefix='ev',
    sort=sort_events,
    entity='Event',
)


class EventsService:
    def __init__(self, transport, serialize_mutations: bool = False):
        self.store = RowStore(transport, EVENTS_SCHEMA, serialize_mutations=serialize_mutations)

    async def ensure_events_sheet(self, spreadsheet_id: str):
        await self.store.ensure_table(spreadsheet_id)

    async def list_events(self, spreadsheet_id: str) -> List[TankEvent]:
        """All events, newest first."""
        return await self.store.list(spreadsheet_id)

    async def get_event(self, spreadsheet_id: str, event_id: str) -> TankEvent:
        _, event = await self.store.get(spreadsheet_id, event_id)
        return event

    async def create_event(self, spreadsheet_id: str, date, event_type: str, description: str,
                           quantity: Optional[float] = None, unit: Optional[str] = None,
                           product: Optional[str] = None, note: Optional[str] = None) -> TankEvent:
        event = TankEvent(id='', date=date, type=event_type, description=description,
                          quantity=quantity, unit=unit, product=product, note=note)
        created = await self.store.create(spreadsheet_id, event)
        logger.info(f"Created event {created.id} ({created.type})")
        return created

    async def update_event(self, spreadsheet_id: str, event_id: str, date, event_type: str, description: str,
                           quantity: Optional[float] = None, unit: Optional[str] = None,
                           product: Optional[str] = None, note: Optional[str] = None) -> TankEvent:
        event = TankEvent(id=event_id, date=date, type=event_type, description=description,
                          quantity=quantity, unit=unit, product=product, note=note)
        return await self.store.update(spreadsheet_id, event_id, event)

    async def delete_event(self, spreadsheet_id: str, event_id: str):
        await self.store.delete(spreadsheet_id, event_id)
        logger.info(f"Deleted event {event_id}")
