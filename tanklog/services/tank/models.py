"""Record types stored in the tank spreadsheet."""

from dataclasses import dataclass, field
from typing import List, Optional

# --- Allowed values ---
EVENT_TYPES = ('water_change', 'dosing', 'maintenance', 'livestock_addition', 'livestock_removal')

LIVESTOCK_CATEGORIES = ('fish', 'coral', 'invertebrate', 'plant')
LIVESTOCK_STATUSES = ('active', 'removed', 'dead')
LIVESTOCK_TANK_ZONES = ('top', 'mid', 'bottom', 'rock', 'sand')
LIVESTOCK_ORIGINS = ('wild', 'captive', 'frag')

PHOTO_RELATED_TYPES = ('tank', 'animal')

PARAMETER_RANGE_STATUSES = ('optimal', 'acceptable', 'critical')
TANK_TYPES = ('freshwater', 'marine', 'reef', 'planted')


@dataclass(frozen=True)
class TankEvent:
    id: str
    date: str
    type: str
    description: str
    quantity: Optional[float] = None
    unit: Optional[str] = None
    product: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class TankLivestock:
    id: str
    name_common: str
    category: str
    date_added: str
    status: str = 'active'
    name_scientific: Optional[str] = None
    sub_category: Optional[str] = None
    tank_zone: Optional[str] = None
    origin: Optional[str] = None
    date_removed: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class WaterTestMeasurement:
    id: str
    test_group_id: str
    date: str
    parameter: str
    value: float
    unit: str
    method: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class WaterTestSession:
    """Measurements taken together, joined by test_group_id."""
    test_group_id: str
    date: str
    measurements: List[WaterTestMeasurement] = field(default_factory=list)
    method: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class TankReminder:
    id: str
    title: str
    next_due: str
    repeat_every_days: Optional[int] = None
    last_done: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class TankPhoto:
    id: str
    date: str
    related_type: str
    drive_file_id: str
    drive_url: str
    related_id: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class ParameterRange:
    parameter: str
    unit: str
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    status: str = 'acceptable'
    color: Optional[str] = None
