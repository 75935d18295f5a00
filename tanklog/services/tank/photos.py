"""Photo index kept in the PHOTOS tab. The image bytes live in Drive; only references are stored here."""

import dataclasses
import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence

from tanklog.config.config import PHOTOS_SHEET, DRIVE_VIEW_URL_TEMPLATE
from tanklog.services.sheets import RowStore, TableSchema, markers_from_headers
from tanklog.services.sheets.utils import cell_at, cell_to_string, normalize_optional_text
from tanklog.utils.error_utils import ValidationError

from .events import newest_first_key
from .models import PHOTO_RELATED_TYPES, TankPhoto
from .validators import require_choice, require_instant, require_text

logger = logging.getLogger(__name__)

PHOTOS_HEADERS = ('id', 'date', 'related_type', 'related_id', 'drive_file_id', 'drive_url', 'note')


def drive_view_url(file_id: str) -> str:
    return DRIVE_VIEW_URL_TEMPLATE.format(file_id=file_id)


def decode_photo_row(row: Sequence[Any]) -> Optional[TankPhoto]:
    photo_id = cell_to_string(cell_at(row, 0))
    date = cell_to_string(cell_at(row, 1))
    related_type = cell_to_string(cell_at(row, 2))
    related_id = cell_to_string(cell_at(row, 3))
    drive_file_id = cell_to_string(cell_at(row, 4))
    drive_url = cell_to_string(cell_at(row, 5))
    if not photo_id or not date or not related_type or not drive_file_id or not drive_url:
        return None
    if related_type not in PHOTO_RELATED_TYPES:
        return None
    if related_type == 'tank' and related_id:
        return None
    if related_type == 'animal' and not related_id:
        return None
    return TankPhoto(
        id=photo_id,
        date=date,
        related_type=related_type,
        related_id=related_id,
        drive_file_id=drive_file_id,
        drive_url=drive_url,
        note=cell_to_string(cell_at(row, 6)),
    )


def encode_photo(photo: TankPhoto) -> List[Any]:
    return [photo.id, photo.date, photo.related_type, photo.related_id,
            photo.drive_file_id, photo.drive_url, photo.note]


def validate_photo(photo: TankPhoto) -> TankPhoto:
    related_type = require_choice(photo.related_type, PHOTO_RELATED_TYPES, "Invalid photo type.")
    related_id = normalize_optional_text(photo.related_id)
    if related_type == 'tank' and related_id:
        raise ValidationError("Tank photos cannot reference an animal.")
    if related_type == 'animal' and not related_id:
        raise ValidationError("Animal photos need the livestock id.")
    drive_file_id = require_text(photo.drive_file_id, "Missing Drive file id.")
    return dataclasses.replace(
        photo,
        date=require_instant(photo.date, "Invalid photo date."),
        related_type=related_type,
        related_id=related_id,
        drive_file_id=drive_file_id,
        drive_url=normalize_optional_text(photo.drive_url) or drive_view_url(drive_file_id),
        note=normalize_optional_text(photo.note),
    )


def sort_photos(photos: List[TankPhoto]):
    photos.sort(key=lambda p: newest_first_key(p.date))


PHOTOS_SCHEMA = TableSchema(
    title=PHOTOS_SHEET,
    headers=PHOTOS_HEADERS,
    header_markers=markers_from_headers(PHOTOS_HEADERS, (0, 1, 2, 4)),
    decode=decode_photo_row,
    encode=encode_photo,
    validate=validate_photo,
    id_prefix='p',
    sort=sort_photos,
    entity='Photo',
)


class PhotosService:
    def __init__(self, transport, serialize_mutations: bool = False):
        self.store = RowStore(transport, PHOTOS_SCHEMA, serialize_mutations=serialize_mutations)

    async def list_photos(self, spreadsheet_id: str) -> List[TankPhoto]:
        """Every photo reference, newest first."""
        return await self.store.list(spreadsheet_id)

    async def list_tank_photos(self, spreadsheet_id: str) -> List[TankPhoto]:
        return [p for p in await self.list_photos(spreadsheet_id) if p.related_type == 'tank']

    async def list_animal_photos(self, spreadsheet_id: str, livestock_id: str) -> List[TankPhoto]:
        return [p for p in await self.list_photos(spreadsheet_id)
                if p.related_type == 'animal' and p.related_id == livestock_id]

    async def create_photo(self, spreadsheet_id: str, drive_file_id: str, related_type: str = 'tank',
                           related_id: Optional[str] = None, drive_url: Optional[str] = None,
                           date=None, note: Optional[str] = None) -> TankPhoto:
        """Records an already uploaded Drive file. Date defaults to now."""
        photo = TankPhoto(
            id='', date=date if date is not None else datetime.now().astimezone(), related_type=related_type,
            drive_file_id=drive_file_id, drive_url=drive_url, related_id=related_id, note=note,
        )
        created = await self.store.create(spreadsheet_id, photo)
        logger.info(f"Recorded {created.related_type} photo {created.id}")
        return created

    async def update_photo(self, spreadsheet_id: str, photo_id: str, drive_file_id: str, date,
                           related_type: str = 'tank', related_id: Optional[str] = None,
                           drive_url: Optional[str] = None, note: Optional[str] = None) -> TankPhoto:
        photo = TankPhoto(
            id=photo_id, date=date, related_type=related_type, drive_file_id=drive_file_id,
            drive_url=drive_url, related_id=related_id, note=note,
        )
        return await self.store.update(spreadsheet_id, photo_id, photo)

    async def delete_photo(self, spreadsheet_id: str, photo_id: str):
        await self.store.delete(spreadsheet_id, photo_id)
        logger.info(f"Deleted photo {photo_id}")
