"""Livestock inventory kept in the LIVESTOCK tab.

The LIVESTOCK tab is created by tank provisioning (it replaces the default
first sheet); this module never adds it on its own.
"""

import dataclasses
import logging
from typing import Any, List, Optional, Sequence

from tanklog.config.config import LIVESTOCK_SHEET
from tanklog.services.sheets import RowStore, TableSchema, markers_from_headers
from tanklog.services.sheets.utils import cell_at, cell_to_string, normalize_optional_text

from .models import (
    LIVESTOCK_CATEGORIES, LIVESTOCK_ORIGINS, LIVESTOCK_STATUSES, LIVESTOCK_TANK_ZONES, TankLivestock,
)
from .validators import optional_choice, optional_date_only, require_choice, require_date_only, require_text

logger = logging.getLogger(__name__)

LIVESTOCK_HEADERS = (
    'livestock_id', 'name_common', 'name_scientific', 'category', 'sub_category',
    'tank_zone', 'origin', 'date_added', 'date_removed', 'status', 'notes',
)


def _known_or_none(value: Optional[str], choices: Sequence[str]) -> Optional[str]:
    return value if value in choices else None


def decode_livestock_row(row: Sequence[Any]) -> Optional[TankLivestock]:
    livestock_id = cell_to_string(cell_at(row, 0))
    name_common = cell_to_string(cell_at(row, 1))
    category = cell_to_string(cell_at(row, 3))
    date_added = cell_to_string(cell_at(row, 7))
    status = cell_to_string(cell_at(row, 9))
    if not livestock_id or not name_common or not category or not date_added or not status:
        return None
    if category not in LIVESTOCK_CATEGORIES or status not in LIVESTOCK_STATUSES:
        return None
    return TankLivestock(
        id=livestock_id,
        name_common=name_common,
        name_scientific=cell_to_string(cell_at(row, 2)),
        category=category,
        sub_category=cell_to_string(cell_at(row, 4)),
        # Unknown optional zone/origin is dropped, not fatal
        tank_zone=_known_or_none(cell_to_string(cell_at(row, 5)), LIVESTOCK_TANK_ZONES),
        origin=_known_or_none(cell_to_string(cell_at(row, 6)), LIVESTOCK_ORIGINS),
        date_added=date_added,
        date_removed=cell_to_string(cell_at(row, 8)),
        status=status,
        notes=cell_to_string(cell_at(row, 10)),
    )


def encode_livestock(animal: TankLivestock) -> List[Any]:
    return [
        animal.id, animal.name_common, animal.name_scientific, animal.category, animal.sub_category,
        animal.tank_zone, animal.origin, animal.date_added, animal.date_removed, animal.status, animal.notes,
    ]


def validate_livestock(animal: TankLivestock) -> TankLivestock:
    return dataclasses.replace(
        animal,
        name_common=require_text(animal.name_common, "Common name is required."),
        name_scientific=normalize_optional_text(animal.name_scientific),
        category=require_choice(animal.category, LIVESTOCK_CATEGORIES, "Invalid category."),
        sub_category=normalize_optional_text(animal.sub_category),
        tank_zone=optional_choice(animal.tank_zone, LIVESTOCK_TANK_ZONES, "Invalid tank zone."),
        origin=optional_choice(animal.origin, LIVESTOCK_ORIGINS, "Invalid origin."),
        date_added=require_date_only(animal.date_added, "Invalid date added."),
        date_removed=optional_date_only(animal.date_removed, "Invalid date removed."),
        status=require_choice(animal.status, LIVESTOCK_STATUSES, "Invalid status."),
        notes=normalize_optional_text(animal.notes),
    )


LIVESTOCK_SCHEMA = TableSchema(
    title=LIVESTOCK_SHEET,
    headers=LIVESTOCK_HEADERS,
    header_markers=markers_from_headers(LIVESTOCK_HEADERS, (0, 1, 3, 7, 9)),
    decode=decode_livestock_row,
    encode=encode_livestock,
    validate=validate_livestock,
    id_prefix='ls',
    create_if_missing=False,
    entity='Livestock',
)


class LivestockService:
    def __init__(self, transport, serialize_mutations: bool = False):
        self.store = RowStore(transport, LIVESTOCK_SCHEMA, serialize_mutations=serialize_mutations)

    async def list_livestock(self, spreadsheet_id: str) -> List[TankLivestock]:
        """All animals and plants in sheet order."""
        return await self.store.list(spreadsheet_id)

    async def get_livestock(self, spreadsheet_id: str, livestock_id: str) -> TankLivestock:
        _, animal = await self.store.get(spreadsheet_id, livestock_id)
        return animal

    async def create_livestock(self, spreadsheet_id: str, name_common: str, category: str, date_added,
                               status: str = 'active', name_scientific: Optional[str] = None,
                               sub_category: Optional[str] = None, tank_zone: Optional[str] = None,
                               origin: Optional[str] = None, date_removed=None,
                               notes: Optional[str] = None) -> TankLivestock:
        animal = TankLivestock(
            id='', name_common=name_common, category=category, date_added=date_added, status=status,
            name_scientific=name_scientific, sub_category=sub_category, tank_zone=tank_zone,
            origin=origin, date_removed=date_removed, notes=notes,
        )
        created = await self.store.create(spreadsheet_id, animal)
        logger.info(f"Added livestock {created.id} ({created.name_common})")
        return created

    async def update_livestock(self, spreadsheet_id: str, livestock_id: str, name_common: str, category: str,
                               date_added, status: str = 'active', name_scientific: Optional[str] = None,
                               sub_category: Optional[str] = None, tank_zone: Optional[str] = None,
                               origin: Optional[str] = None, date_removed=None,
                               notes: Optional[str] = None) -> TankLivestock:
        animal = TankLivestock(
            id=livestock_id, name_common=name_common, category=category, date_added=date_added, status=status,
            name_scientific=name_scientific, sub_category=sub_category, tank_zone=tank_zone,
            origin=origin, date_removed=date_removed, notes=notes,
        )
        return await self.store.update(spreadsheet_id, livestock_id, animal)

    async def delete_livestock(self, spreadsheet_id: str, livestock_id: str):
        await self.store.delete(spreadsheet_id, livestock_id)
        logger.info(f"Deleted livestock {livestock_id}")
