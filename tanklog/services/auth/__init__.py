"""Google sign-in and access token lifecycle."""

from .session import Session, UserProfile
from .storage import JsonFileStorage, MemoryStorage
from .identity import GoogleIdentityProvider, IdentityProvider, TokenResponse
from .manager import SessionManager

__all__ = [
    'Session',
    'UserProfile',
    'JsonFileStorage',
    'MemoryStorage',
    'GoogleIdentityProvider',
    'IdentityProvider',
    'TokenResponse',
    'SessionManager',
]
