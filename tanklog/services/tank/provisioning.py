"""Turns a fresh spreadsheet into a tank log: tabs, header rows and default ranges."""

import logging
from typing import Any, Dict, List

from tanklog.config.config import LIVESTOCK_SHEET
from tanklog.services.sheets import add_sheet_request, rename_sheet_request, require_spreadsheet_id
from tanklog.utils.error_utils import ValidationError

from .events import EVENTS_SCHEMA
from .livestock import LIVESTOCK_SCHEMA
from .models import TANK_TYPES
from .parameter_defaults import get_default_parameter_ranges
from .parameter_ranges import PARAMETER_RANGES_SCHEMA, ParameterRangesService
from .photos import PHOTOS_SCHEMA
from .reminders import REMINDERS_SCHEMA
from .water_tests import WATER_TESTS_SCHEMA

logger = logging.getLogger(__name__)

# LIVESTOCK first: it takes over the spreadsheet's default first tab
TANK_SCHEMAS = (
    LIVESTOCK_SCHEMA,
    EVENTS_SCHEMA,
    WATER_TESTS_SCHEMA,
    REMINDERS_SCHEMA,
    PHOTOS_SCHEMA,
    PARAMETER_RANGES_SCHEMA,
)


async def provision_tank_spreadsheet(transport, spreadsheet_id: str, tank_type: str = 'freshwater',
                                     ranges_service: ParameterRangesService = None) -> Dict[str, Any]:
    """Creates the missing tabs, writes every header row and seeds default ranges into an empty table.

    Safe to run again on an existing tank: present tabs are kept and ranges
    are only seeded when PARAMETER_RANGES has no data rows.
    """
    spreadsheet_id = require_spreadsheet_id(spreadsheet_id)
    if tank_type not in TANK_TYPES:
        raise ValidationError(f"Unknown tank type '{tank_type}'. Choose one of: {', '.join(TANK_TYPES)}.")

    properties = await transport.get_sheet_properties(spreadsheet_id)
    titles = {p.get('title') for p in properties}
    known_titles = {schema.title for schema in TANK_SCHEMAS}
    requests: List[Dict[str, Any]] = []
    renamed = None

    if LIVESTOCK_SHEET not in titles:
        ordered = sorted(properties, key=lambda p: p.get('index', 0))
        first = ordered[0] if ordered else None
        if first is not None and first.get('title') not in known_titles and isinstance(first.get('sheetId'), int):
            renamed = first.get('title')
            logger.info(f"Renaming default tab '{renamed}' to {LIVESTOCK_SHEET}")
            requests.append(rename_sheet_request(first['sheetId'], LIVESTOCK_SHEET))
        else:
            requests.append(add_sheet_request(LIVESTOCK_SHEET))

    added = [schema.title for schema in TANK_SCHEMAS
             if schema.title not in titles and schema.title != LIVESTOCK_SHEET]
    requests.extend(add_sheet_request(title) for title in added)
    if renamed is None and LIVESTOCK_SHEET not in titles:
        added.insert(0, LIVESTOCK_SHEET)

    if requests:
        await transport.batch_update(spreadsheet_id, requests)

    for schema in TANK_SCHEMAS:
        await transport.write_range(spreadsheet_id, schema.header_range(), [list(schema.headers)])

    ranges_service = ranges_service or ParameterRangesService(transport)
    seeded = 0
    existing, _ = await ranges_service.read_parameter_ranges_sheet(spreadsheet_id)
    if not existing:
        seeded = await ranges_service.save_parameter_ranges(
            spreadsheet_id, get_default_parameter_ranges(tank_type))

    summary = {
        'spreadsheet_id': spreadsheet_id,
        'tank_type': tank_type,
        'renamed_tab': renamed,
        'added_tabs': added,
        'seeded_ranges': seeded,
    }
    logger.info(f"Provisioned tank spreadsheet {spreadsheet_id}: {summary}")
    return summary
