"""User profile lookups: OpenID userinfo endpoint and unverified ID token payloads."""

import logging
from typing import Optional

import requests
from google.auth import jwt

from tanklog.config.config import GOOGLE_USERINFO_URL

# Local imports
from .session import UserProfile

logger = logging.getLogger(__name__)


def fetch_user_profile(access_token: str, url: str = GOOGLE_USERINFO_URL, timeout: float = 10) -> Optional[UserProfile]:
    """Calls the userinfo endpoint. Blocking; run it in a thread from async code."""
    logger.debug(f"Fetching user profile from {url}")
    response = requests.get(url, headers={'Authorization': f'Bearer {access_token}'}, timeout=timeout)
    response.raise_for_status()
    return UserProfile.from_dict(response.json())


def decode_id_token_profile(credential: str) -> Optional[UserProfile]:
    """Reads the profile claims of an ID token WITHOUT verifying its signature.

    Only for display; never use the result for authorization.
    """
    if not credential:
        return None
    try:
        payload = jwt.decode(credential, verify=False)
    except (ValueError, TypeError) as e:
        logger.warning(f"Could not decode identity assertion: {e}")
        return None
    return UserProfile.from_dict(payload)
