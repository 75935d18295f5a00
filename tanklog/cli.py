"""Command line interface for TankLog.

Every command prints JSON to stdout. Dates accept anything dateparser
understands ('yesterday', '3 days ago', '2024-01-10 18:00').

Examples:
    tanklog login
    tanklog provision --tank-type reef
    tanklog events add --type water_change --description "20% change" --quantity 40 --unit l
    tanklog tests add --measure pH=8.1 --measure KH=7,5 --measure NO3=5:mg/l
    tanklog reminders done r_1234
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import re
import sys
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import dateparser

from tanklog.app import AppContext, create_app_context, setup_logging
from tanklog.config.config import PROMPT_CONSENT, PROMPT_SELECT_ACCOUNT
from tanklog.config.config_loader import get_config
from tanklog.services.sheets.utils import cell_to_number
from tanklog.services.tank import (
    EVENT_TYPES, LIVESTOCK_CATEGORIES, LIVESTOCK_ORIGINS, LIVESTOCK_STATUSES, LIVESTOCK_TANK_ZONES,
    PARAMETER_RANGE_STATUSES, TANK_TYPES, ParameterRange, provision_tank_spreadsheet,
)
from tanklog.utils.error_utils import TankLogError, ValidationError, describe_error, log_error

logger = logging.getLogger(__name__)

_DATE_ONLY_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


# --- argument parsing helpers ---

def parse_when(text: Optional[str], prefer: str = 'past') -> datetime:
    """Parses human date input. Missing input means now."""
    if not text:
        return datetime.now().astimezone()
    parsed_dt = dateparser.parse(text, settings={'PREFER_DATES_FROM': prefer, 'STRICT_PARSING': False})
    if parsed_dt is None:
        raise ValidationError(f"Could not understand the date '{text}'.")
    return parsed_dt


def parse_day(text: Optional[str], prefer: str = 'past') -> Optional[date]:
    """Parses human input into a calendar day."""
    if text is None:
        return None
    if _DATE_ONLY_RE.match(text.strip()):
        try:
            return date.fromisoformat(text.strip())
        except ValueError:
            raise ValidationError(f"Invalid date '{text}'.")
    return parse_when(text, prefer).date()


def parse_number(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    number = cell_to_number(text)
    if number is None:
        raise ValidationError(f"'{text}' is not a number.")
    return number


def parse_measure(text: str) -> Dict[str, Any]:
    """'KH=7,5' or 'NO3=5:mg/l' -> {'parameter': 'KH', 'value': 7.5, 'unit': None}."""
    if '=' not in text:
        raise ValidationError(f"Measurement '{text}' must look like PARAM=VALUE[:UNIT].")
    parameter, _, rest = text.partition('=')
    value_text, _, unit = rest.partition(':')
    return {'parameter': parameter.strip(), 'value': parse_number(value_text.strip()), 'unit': unit.strip() or None}


def to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def print_json(result: Any):
    print(json.dumps(to_jsonable(result), indent=2, default=str, ensure_ascii=False))


def require_sheet(ctx: AppContext, args) -> str:
    spreadsheet_id = args.spreadsheet or ctx.config.spreadsheet_id
    if not spreadsheet_id:
        raise ValidationError("No spreadsheet id. Pass --spreadsheet or set TANKLOG_SPREADSHEET_ID.")
    return spreadsheet_id


# --- auth commands ---

async def cmd_login(ctx: AppContext, args):
    prompt = PROMPT_CONSENT if args.consent else PROMPT_SELECT_ACCOUNT
    session = await ctx.session_manager.login(prompt=prompt, hint=args.hint)
    return {'signed_in': True, 'user': session.user, 'expires_at': datetime.fromtimestamp(session.expires_at)}


async def cmd_logout(ctx: AppContext, args):
    await ctx.session_manager.logout(revoke=args.revoke)
    ctx.transport.reset()
    return {'signed_in': False}


async def cmd_whoami(ctx: AppContext, args):
    manager = ctx.session_manager
    session = manager.session
    return {
        'authenticated': manager.is_authenticated,
        'needs_user_interaction': manager.needs_user_interaction,
        'user': manager.user,
        'expires_at': datetime.fromtimestamp(session.expires_at) if session else None,
        'spreadsheet_id': args.spreadsheet or ctx.config.spreadsheet_id,
        'drive_folder_id': ctx.config.drive_root_folder_id,
    }


async def cmd_provision(ctx: AppContext, args):
    return await provision_tank_spreadsheet(
        ctx.transport, require_sheet(ctx, args), args.tank_type, ranges_service=ctx.parameter_ranges)


def _keep_stored(given: Dict[str, Any], stored: Dict[str, Any]) -> Dict[str, Any]:
    """Fields not given on the command line keep their stored value."""
    return {k: stored[k] if v is None else v for k, v in given.items()}


# --- events ---

async def cmd_events(ctx: AppContext, args):
    sheet = require_sheet(ctx, args)
    events = ctx.events
    if args.action == 'list':
        return await events.list_events(sheet)
    if args.action == 'delete':
        await events.delete_event(sheet, args.id)
        return {'deleted': args.id}
    fields = dict(date=parse_when(args.date) if args.date else None, event_type=args.type,
                  description=args.description, quantity=parse_number(args.quantity), unit=args.unit,
                  product=args.product, note=args.note)
    if args.action == 'add':
        fields['date'] = fields['date'] or parse_when(None)
        return await events.create_event(sheet, **fields)
    current = await events.get_event(sheet, args.id)
    stored = dict(date=current.date, event_type=current.type, description=current.description,
                  quantity=current.quantity, unit=current.unit, product=current.product, note=current.note)
    return await events.update_event(sheet, args.id, **_keep_stored(fields, stored))


# --- livestock ---

async def cmd_livestock(ctx: AppContext, args):
    sheet = require_sheet(ctx, args)
    service = ctx.livestock
    if args.action == 'list':
        return await service.list_livestock(sheet)
    if args.action == 'delete':
        await service.delete_livestock(sheet, args.id)
        return {'deleted': args.id}
    fields = dict(name_common=args.name, category=args.category, date_added=parse_day(args.added),
                  status=args.status, name_scientific=args.scientific, sub_category=args.sub_category,
                  tank_zone=args.zone, origin=args.origin, date_removed=parse_day(args.removed), notes=args.notes)
    if args.action == 'add':
        fields['date_added'] = fields['date_added'] or date.today()
        fields['status'] = fields['status'] or 'active'
        return await service.create_livestock(sheet, **fields)
    current = await service.get_livestock(sheet, args.id)
    stored = {k: getattr(current, k) for k in fields}
    return await service.update_livestock(sheet, args.id, **_keep_stored(fields, stored))


# --- water tests ---

async def cmd_tests(ctx: AppContext, args):
    sheet = require_sheet(ctx, args)
    service = ctx.water_tests
    if args.action == 'list':
        return await service.list_water_test_sessions(sheet)
    if args.action == 'add':
        measurements = [parse_measure(m) for m in args.measure]
        return await service.create_water_test_session(
            sheet, parse_when(args.date), measurements, method=args.method, note=args.note)
    if args.action == 'update-measurement':
        return await service.update_measurement(
            sheet, args.id, value=parse_number(args.value), unit=args.unit, method=args.method, note=args.note)
    if args.action == 'delete-measurement':
        await service.delete_measurement(sheet, args.id)
        return {'deleted': args.id}
    removed = await service.delete_water_test_session(sheet, args.id)
    return {'deleted': args.id, 'rows': removed}


# --- reminders ---

async def cmd_reminders(ctx: AppContext, args):
    sheet = require_sheet(ctx, args)
    service = ctx.reminders
    if args.action == 'list':
        return await service.list_reminders(sheet)
    if args.action == 'add':
        return await service.create_reminder(
            sheet, args.title, parse_day(args.due, prefer='future'),
            repeat_every_days=args.every, notes=args.notes)
    if args.action == 'done':
        done_at = parse_when(args.at) if args.at else None
        return await service.mark_reminder_done(sheet, args.id, done_at=done_at)
    if args.action == 'undo':
        return await service.set_reminder_done(sheet, args.id, done=False)
    await service.delete_reminder(sheet, args.id)
    return {'deleted': args.id}


# --- photos ---

async def cmd_photos(ctx: AppContext, args):
    sheet = require_sheet(ctx, args)
    service = ctx.photos
    if args.action == 'list':
        if args.animal:
            return await service.list_animal_photos(sheet, args.animal)
        return await service.list_tank_photos(sheet)
    if args.action == 'add':
        related_type = 'animal' if args.animal else 'tank'
        return await service.create_photo(
            sheet, args.file_id, related_type=related_type, related_id=args.animal,
            drive_url=args.url, date=parse_when(args.date), note=args.note)
    await service.delete_photo(sheet, args.id)
    return {'deleted': args.id}


# --- parameter ranges ---

async def cmd_ranges(ctx: AppContext, args):
    sheet = require_sheet(ctx, args)
    service = ctx.parameter_ranges
    if args.action == 'list':
        return await service.list_parameter_ranges(sheet)
    if args.action == 'effective':
        return await service.list_effective_parameter_ranges(sheet)
    if args.action == 'preset':
        return {'saved': await service.apply_preset(sheet, args.tank_type)}
    if args.action == 'delete':
        await service.delete_parameter_range(sheet, args.parameter, args.status)
        return {'deleted': {'parameter': args.parameter, 'status': args.status}}

    new_range = ParameterRange(parameter=args.parameter, unit=args.unit, min_value=parse_number(args.min),
                               max_value=parse_number(args.max), status=args.status, color=args.color)
    existing = await service.list_parameter_ranges(sheet)
    key = (args.parameter.strip().lower(), args.status)
    if any((r.parameter.lower(), r.status) == key for r in existing):
        return await service.update_parameter_range(sheet, args.parameter, args.status, new_range)
    return await service.create_parameter_range(sheet, new_range)


# --- parser ---

def _add_event_fields(parser: argparse.ArgumentParser, updating: bool = False):
    parser.add_argument('--date', help="When it happened (default: now, or unchanged on update)")
    parser.add_argument('--type', required=not updating, choices=EVENT_TYPES)
    parser.add_argument('--description', required=not updating)
    parser.add_argument('--quantity')
    parser.add_argument('--unit')
    parser.add_argument('--product')
    parser.add_argument('--note')


def _add_livestock_fields(parser: argparse.ArgumentParser, updating: bool = False):
    parser.add_argument('--name', required=not updating, help="Common name")
    parser.add_argument('--category', required=not updating, choices=LIVESTOCK_CATEGORIES)
    parser.add_argument('--scientific')
    parser.add_argument('--sub-category')
    parser.add_argument('--zone', choices=LIVESTOCK_TANK_ZONES)
    parser.add_argument('--origin', choices=LIVESTOCK_ORIGINS)
    parser.add_argument('--added', help="Date added (default: today, or unchanged on update)")
    parser.add_argument('--removed', help="Date removed")
    parser.add_argument('--status', choices=LIVESTOCK_STATUSES, help="Default: active")
    parser.add_argument('--notes')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='tanklog', description="Aquarium log stored in Google Sheets.")
    parser.add_argument('--debug', action='store_true', help="Enable DEBUG-level logging")
    parser.add_argument('--spreadsheet', help="Spreadsheet id (default: TANKLOG_SPREADSHEET_ID)")
    parser.add_argument('--serialize', action='store_true',
                        help="Serialize row lookups and writes per table")
    commands = parser.add_subparsers(dest='command', required=True)

    login = commands.add_parser('login', help="Sign in with Google")
    login.add_argument('--consent', action='store_true', help="Force the consent screen")
    login.add_argument('--hint', help="Email to preselect")
    login.set_defaults(handler=cmd_login)

    logout = commands.add_parser('logout', help="Forget the stored session")
    logout.add_argument('--revoke', action='store_true', help="Also revoke the token at Google")
    logout.set_defaults(handler=cmd_logout)

    commands.add_parser('whoami', help="Show the current session").set_defaults(handler=cmd_whoami)

    provision = commands.add_parser('provision', help="Create tabs, headers and default ranges")
    provision.add_argument('--tank-type', default='freshwater', choices=TANK_TYPES)
    provision.set_defaults(handler=cmd_provision)

    # events
    events = commands.add_parser('events', help="Water changes, dosing, maintenance...")
    events.set_defaults(handler=cmd_events)
    actions = events.add_subparsers(dest='action', required=True)
    actions.add_parser('list')
    _add_event_fields(actions.add_parser('add'))
    update = actions.add_parser('update')
    update.add_argument('id')
    _add_event_fields(update, updating=True)
    actions.add_parser('delete').add_argument('id')

    # livestock
    livestock = commands.add_parser('livestock', help="Fish, corals, invertebrates and plants")
    livestock.set_defaults(handler=cmd_livestock)
    actions = livestock.add_subparsers(dest='action', required=True)
    actions.add_parser('list')
    _add_livestock_fields(actions.add_parser('add'))
    update = actions.add_parser('update')
    update.add_argument('id')
    _add_livestock_fields(update, updating=True)
    actions.add_parser('delete').add_argument('id')

    # water tests
    tests = commands.add_parser('tests', help="Water test results")
    tests.set_defaults(handler=cmd_tests)
    actions = tests.add_subparsers(dest='action', required=True)
    actions.add_parser('list')
    add = actions.add_parser('add')
    add.add_argument('--date')
    add.add_argument('--measure', action='append', required=True, help="PARAM=VALUE[:UNIT], repeatable")
    add.add_argument('--method')
    add.add_argument('--note')
    update = actions.add_parser('update-measurement')
    update.add_argument('id')
    update.add_argument('--value')
    update.add_argument('--unit')
    update.add_argument('--method')
    update.add_argument('--note')
    actions.add_parser('delete-measurement').add_argument('id')
    actions.add_parser('delete', help="Delete a whole test by group id").add_argument('id')

    # reminders
    reminders = commands.add_parser('reminders', help="Maintenance reminders")
    reminders.set_defaults(handler=cmd_reminders)
    actions = reminders.add_subparsers(dest='action', required=True)
    actions.add_parser('list')
    add = actions.add_parser('add')
    add.add_argument('--title', required=True)
    add.add_argument('--due', required=True, help="Next due day")
    add.add_argument('--every', type=int, help="Repeat every N days")
    add.add_argument('--notes')
    done = actions.add_parser('done')
    done.add_argument('id')
    done.add_argument('--at', help="Completion time (default: now)")
    actions.add_parser('undo', help="Clear last done").add_argument('id')
    actions.add_parser('delete').add_argument('id')

    # photos
    photos = commands.add_parser('photos', help="Photo references (files already in Drive)")
    photos.set_defaults(handler=cmd_photos)
    actions = photos.add_subparsers(dest='action', required=True)
    listing = actions.add_parser('list')
    listing.add_argument('--animal', help="Livestock id")
    add = actions.add_parser('add')
    add.add_argument('file_id', help="Drive file id")
    add.add_argument('--animal', help="Livestock id (omit for a tank photo)")
    add.add_argument('--url')
    add.add_argument('--date')
    add.add_argument('--note')
    actions.add_parser('delete').add_argument('id')

    # parameter ranges
    ranges = commands.add_parser('ranges', help="Parameter thresholds")
    ranges.set_defaults(handler=cmd_ranges)
    actions = ranges.add_subparsers(dest='action', required=True)
    actions.add_parser('list')
    actions.add_parser('effective')
    preset = actions.add_parser('preset', help="Replace all ranges with a tank type preset")
    preset.add_argument('tank_type', choices=TANK_TYPES)
    set_range = actions.add_parser('set', help="Create or replace one range")
    set_range.add_argument('parameter')
    set_range.add_argument('--unit', required=True)
    set_range.add_argument('--min')
    set_range.add_argument('--max')
    set_range.add_argument('--status', default='acceptable', choices=PARAMETER_RANGE_STATUSES)
    set_range.add_argument('--color')
    delete = actions.add_parser('delete')
    delete.add_argument('parameter')
    delete.add_argument('--status', default='acceptable', choices=PARAMETER_RANGE_STATUSES)

    return parser


async def run_command(ctx: AppContext, args) -> Any:
    return await args.handler(ctx, args)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = get_config()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    setup_logging('DEBUG' if args.debug else config.log_level)

    try:
        ctx = create_app_context(config, serialize_mutations=args.serialize)
        result = asyncio.run(run_command(ctx, args))
    except TankLogError as e:
        log_error("Command failed", error=e, command=args.command, exc_info=args.debug)
        print(describe_error(e), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130

    print_json(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
