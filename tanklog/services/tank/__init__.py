"""Tank record tables: events, livestock, water tests, reminders, photos and parameter ranges."""

from .models import (
    TankEvent, TankLivestock, WaterTestMeasurement, WaterTestSession, TankReminder, TankPhoto, ParameterRange,
    EVENT_TYPES, LIVESTOCK_CATEGORIES, LIVESTOCK_STATUSES, LIVESTOCK_TANK_ZONES, LIVESTOCK_ORIGINS,
    PHOTO_RELATED_TYPES, PARAMETER_RANGE_STATUSES, TANK_TYPES,
)
from .events import EventsService
from .livestock import LivestockService
from .water_tests import WaterTestsService
from .reminders import RemindersService
from .photos import PhotosService
from .parameter_ranges import ParameterRangesService
from .parameter_defaults import get_default_parameter_ranges, get_default_color_for_parameter
from .provisioning import provision_tank_spreadsheet

__all__ = [
    'TankEvent', 'TankLivestock', 'WaterTestMeasurement', 'WaterTestSession', 'TankReminder', 'TankPhoto',
    'ParameterRange',
    'EVENT_TYPES', 'LIVESTOCK_CATEGORIES', 'LIVESTOCK_STATUSES', 'LIVESTOCK_TANK_ZONES', 'LIVESTOCK_ORIGINS',
    'PHOTO_RELATED_TYPES', 'PARAMETER_RANGE_STATUSES', 'TANK_TYPES',
    'EventsService', 'LivestockService', 'WaterTestsService', 'RemindersService', 'PhotosService',
    'ParameterRangesService',
    'get_default_parameter_ranges', 'get_default_color_for_parameter',
    'provision_tank_spreadsheet',
]
