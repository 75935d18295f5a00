"""Session and user profile value objects plus their JSON shape checks."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from tanklog.config.config import EXPIRY_SKEW_SECONDS


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class UserProfile:
    """Display-only identity of the signed-in user."""
    sub: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'sub': self.sub, 'email': self.email, 'name': self.name, 'picture': self.picture}

    @classmethod
    def from_dict(cls, data: Any) -> Optional['UserProfile']:
        if not isinstance(data, dict):
            return None
        profile = cls(
            sub=_optional_str(data.get('sub')),
            email=_optional_str(data.get('email')),
            name=_optional_str(data.get('name')),
            picture=_optional_str(data.get('picture')),
        )
        if not any((profile.sub, profile.email, profile.name)):
            return None
        return profile


@dataclass(frozen=True)
class Session:
    """A cached bearer token. Times are epoch seconds."""
    access_token: str
    token_type: str
    scope: str
    created_at: float
    expires_at: float
    user: Optional[UserProfile] = None

    def is_fresh(self, now: float) -> bool:
        return self.expires_at > now + EXPIRY_SKEW_SECONDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'access_token': self.access_token,
            'token_type': self.token_type,
            'scope': self.scope,
            'created_at': self.created_at,
            'expires_at': self.expires_at,
            'user': self.user.to_dict() if self.user else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional['Session']:
        """Rebuilds a persisted session, or returns None when the shape is wrong."""
        if not is_valid_session_data(data):
            return None
        return cls(
            access_token=data['access_token'],
            token_type=data['token_type'],
            scope=data['scope'],
            created_at=float(data['created_at']),
            expires_at=float(data['expires_at']),
            user=UserProfile.from_dict(data.get('user')),
        )


def is_valid_session_data(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    if not isinstance(data.get('access_token'), str) or not data['access_token']:
        return False
    if not isinstance(data.get('token_type'), str) or not isinstance(data.get('scope'), str):
        return False
    if not _is_number(data.get('created_at')) or not _is_number(data.get('expires_at')):
        return False
    user = data.get('user')
    return user is None or isinstance(user, dict)
