import re
from typing import Optional

_DRIVE_FOLDER_ID_RE = re.compile(r'^[a-zA-Z0-9_-]+$')
_DRIVE_FOLDER_URL_RE = re.compile(r'/folders/([a-zA-Z0-9_-]+)')
_DRIVE_ID_PARAM_RE = re.compile(r'[?&]id=([a-zA-Z0-9_-]+)')


def sanitize_token(token: Optional[str]) -> Optional[str]:
    """Sanitize the token by removing whitespace and non-printable characters."""
    if token:
        # Keep printable ASCII only, then drop surrounding spaces
        cleaned = ''.join(c for c in token if 32 <= ord(c) <= 126).strip()
        return cleaned or None
    return None


def normalize_drive_folder_id(value: Optional[str]) -> Optional[str]:
    """Accepts a raw Drive folder id or a folder URL and returns the bare id.

    Returns None when nothing id-shaped can be extracted.
    """
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None

    match = _DRIVE_FOLDER_URL_RE.search(trimmed) or _DRIVE_ID_PARAM_RE.search(trimmed)
    candidate = match.group(1) if match else trimmed
    if _DRIVE_FOLDER_ID_RE.match(candidate):
        return candidate
    return None
