"""Input checks shared by the tank record schemas. All raise ValidationError."""

import math
from datetime import date, datetime
from typing import Any, Optional, Sequence, Union

from tanklog.services.sheets.utils import normalize_instant, normalize_optional_text, parse_date_only
from tanklog.utils.error_utils import ValidationError


def require_text(value: Optional[str], message: str) -> str:
    text = normalize_optional_text(value)
    if not text:
        raise ValidationError(message)
    return text


def require_choice(value: Optional[str], choices: Sequence[str], message: str) -> str:
    text = normalize_optional_text(value)
    if text not in choices:
        raise ValidationError(message)
    return text


def optional_choice(value: Optional[str], choices: Sequence[str], message: str) -> Optional[str]:
    text = normalize_optional_text(value)
    if text is None:
        return None
    if text not in choices:
        raise ValidationError(message)
    return text


def optional_non_negative_number(value: Any, message: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(message)
    if not math.isfinite(value) or value < 0:
        raise ValidationError(message)
    return value


def require_non_negative_number(value: Any, message: str) -> float:
    number = optional_non_negative_number(value, message)
    if number is None:
        raise ValidationError(message)
    return number


def require_instant(value: Union[str, datetime, None], message: str) -> str:
    """Returns the canonical UTC instant text for a datetime or ISO string."""
    instant = normalize_instant(value) if value is not None else None
    if not instant:
        raise ValidationError(message)
    return instant


def require_date_only(value: Union[str, date, None], message: str) -> str:
    """Returns 'YYYY-MM-DD' for a date or a date-only string."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    parsed = parse_date_only(value) if isinstance(value, str) else None
    if parsed is None:
        raise ValidationError(message)
    return parsed.isoformat()


def optional_date_only(value: Union[str, date, None], message: str) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_date_only(value, message)
