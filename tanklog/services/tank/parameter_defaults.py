"""Suggested parameter ranges per tank type.

Starting points for hobbyist tanks, not hard limits. They seed PARAMETER_RANGES
once when a tank is provisioned and can be re-applied from the CLI; existing
user edits are never overwritten automatically.
"""

from typing import Dict, List, Optional, Tuple

from .models import ParameterRange, TANK_TYPES

DEFAULT_CHART_COLOR = '#2563eb'

PARAMETER_COLOR_ALIASES = {
    'temperature': 'temp',
    'calcium': 'ca',
    'magnesium': 'mg',
}

DEFAULT_PARAMETER_COLORS = {
    'temp': '#f97316',
    'salinity': '#06b6d4',
    'ph': '#a855f7',
    'kh': '#3b82f6',
    'gh': '#6366f1',
    'ca': '#ec4899',
    'mg': '#10b981',
    'nh3': '#f59e0b',
    'no2': '#ef4444',
    'no3': '#22c55e',
    'po4': '#14b8a6',
    'fe': '#eab308',
}

Bounds = Tuple[float, float]
# (parameter, unit, optimal, acceptable, critical)
PresetRow = Tuple[str, str, Bounds, Bounds, Bounds]

_PRESETS: Dict[str, List[PresetRow]] = {
    'reef': [
        ('Temp', '°C', (24, 26), (23, 27), (22, 28)),
        ('Salinity', 'ppt', (34.5, 35.5), (34, 36), (33, 37)),
        ('pH', 'pH', (8.1, 8.3), (7.8, 8.4), (7.7, 8.5)),
        ('KH', 'dKH', (7, 9), (6.5, 10), (5.5, 11.5)),
        ('Ca', 'ppm', (400, 440), (380, 460), (350, 480)),
        ('Mg', 'ppm', (1250, 1350), (1200, 1450), (1100, 1500)),
        ('NH3', 'mg/l', (0, 0), (0, 0.02), (0, 0.05)),
        ('NO2', 'mg/l', (0, 0), (0, 0.05), (0, 0.1)),
        ('NO3', 'mg/l', (2, 10), (0, 20), (0, 50)),
        ('PO4', 'mg/l', (0.02, 0.1), (0, 0.2), (0, 0.4)),
    ],
    'marine': [
        ('Temp', '°C', (24, 26), (23, 27), (22, 28)),
        ('Salinity', 'ppt', (34, 36), (33, 37), (32, 38)),
        ('pH', 'pH', (8.0, 8.3), (7.8, 8.4), (7.6, 8.5)),
        ('KH', 'dKH', (7, 10), (6, 11), (5, 12.5)),
        ('Ca', 'ppm', (400, 440), (380, 460), (350, 480)),
        ('Mg', 'ppm', (1250, 1350), (1200, 1450), (1100, 1500)),
        ('NH3', 'mg/l', (0, 0), (0, 0.02), (0, 0.05)),
        ('NO2', 'mg/l', (0, 0), (0, 0.1), (0, 0.2)),
        ('NO3', 'mg/l', (0, 20), (0, 40), (0, 80)),
        ('PO4', 'mg/l', (0, 0.2), (0, 0.3), (0, 0.5)),
    ],
    'planted': [
        ('Temp', '°C', (23, 26), (22, 28), (20, 30)),
        ('pH', 'pH', (6.2, 7.0), (5.8, 7.5), (5.5, 8.0)),
        ('KH', 'dKH', (2, 6), (1, 8), (0.5, 10)),
        ('GH', 'dGH', (4, 10), (3, 14), (2, 18)),
        ('NH3', 'mg/l', (0, 0), (0, 0.02), (0, 0.05)),
        ('NO2', 'mg/l', (0, 0), (0, 0.1), (0, 0.2)),
        ('NO3', 'mg/l', (5, 20), (0, 30), (0, 50)),
        ('PO4', 'mg/l', (0.2, 1.5), (0.05, 2.0), (0, 3.0)),
        ('Fe', 'ppm', (0.05, 0.2), (0.02, 0.3), (0, 0.5)),
    ],
    'freshwater': [
        ('Temp', '°C', (24, 26), (22, 28), (20, 30)),
        ('pH', 'pH', (7.0, 7.5), (6.5, 8.0), (6.0, 8.5)),
        ('KH', 'dKH', (4, 8), (3, 10), (1, 12)),
        ('GH', 'dGH', (6, 12), (4, 16), (2, 20)),
        ('NH3', 'mg/l', (0, 0), (0, 0.02), (0, 0.05)),
        ('NO2', 'mg/l', (0, 0), (0, 0.1), (0, 0.2)),
        ('NO3', 'mg/l', (0, 20), (0, 40), (0, 80)),
        ('PO4', 'mg/l', (0, 1.0), (0, 2.0), (0, 5.0)),
    ],
}


def get_default_color_for_parameter(parameter: str) -> Optional[str]:
    key = (parameter or '').strip().lower()
    if not key:
        return None
    key = PARAMETER_COLOR_ALIASES.get(key, key)
    return DEFAULT_PARAMETER_COLORS.get(key)


def get_default_parameter_ranges(tank_type: str) -> List[ParameterRange]:
    """Preset rows for a tank type. Unknown types get the freshwater preset."""
    preset = _PRESETS.get(tank_type if tank_type in TANK_TYPES else 'freshwater')
    ranges = []
    for parameter, unit, *bounds in preset:
        color = get_default_color_for_parameter(parameter)
        for status, (low, high) in zip(('optimal', 'acceptable', 'critical'), bounds):
            ranges.append(ParameterRange(parameter=parameter, unit=unit, min_value=low,
                                         max_value=high, status=status, color=color))
    return ranges
