"""Identity providers: where access tokens come from.

GoogleIdentityProvider runs the installed-app consent flow for interactive
prompts and refreshes with the stored refresh token for silent ones.
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

import requests
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from tanklog.config.config import (
    SCOPES, GOOGLE_REVOKE_URL, PROMPT_SILENT, DEFAULT_TOKEN_TYPE,
)
from tanklog.utils.error_utils import IdentityError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    expires_in: int
    scope: str
    token_type: str = DEFAULT_TOKEN_TYPE
    id_token: Optional[str] = None


class IdentityProvider(Protocol):
    ready: bool

    async def load(self) -> None:
        ...

    async def request_token(self, prompt: str, hint: Optional[str] = None) -> TokenResponse:
        ...

    async def revoke(self, token: str) -> None:
        ...

    def forget(self) -> None:
        ...


def refresh_error_code(error: RefreshError) -> str:
    """Extracts the OAuth error code ('invalid_grant', ...) from a google-auth RefreshError."""
    for arg in error.args[1:]:
        if isinstance(arg, dict) and isinstance(arg.get('error'), str):
            return arg['error']
    message = str(error.args[0]) if error.args else ''
    head = message.split(':', 1)[0].strip()
    if head and ' ' not in head:
        return head
    return 'refresh_failed'


class GoogleIdentityProvider:
    """Google OAuth client for a desktop/CLI app."""

    def __init__(self, client_config: Optional[Dict[str, Any]], token_path: str,
                 scopes: Optional[List[str]] = None,
                 flow_factory: Callable[..., InstalledAppFlow] = InstalledAppFlow.from_client_config,
                 request_factory: Callable[[], Request] = Request):
        self.client_config = client_config
        self.token_path = os.path.expanduser(token_path)
        self.scopes = list(scopes or SCOPES)
        self.ready = False
        self._flow_factory = flow_factory
        self._request_factory = request_factory
        self._authorized_user_info: Optional[Dict[str, Any]] = None

    # --- loading ---

    def _load(self):
        if not self.client_config:
            raise IdentityError('identity_unavailable', "No OAuth client configured.")
        section = self.client_config.get('installed') or self.client_config.get('web')
        if not isinstance(section, dict) or not section.get('client_id'):
            raise IdentityError('identity_unavailable', "OAuth client config has no client_id.")

        if os.path.exists(self.token_path):
            try:
                with open(self.token_path, 'r', encoding='utf-8') as f:
                    self._authorized_user_info = json.load(f)
                logger.debug(f"Loaded stored refresh token from {self.token_path}")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
                self._authorized_user_info = None
        self.ready = True

    async def load(self):
        await asyncio.to_thread(self._load)

    # --- refresh token persistence ---

    def _store_credentials(self, creds: Credentials):
        if not creds.refresh_token:
            logger.debug("Consent flow returned no refresh token; keeping the stored one.")
            return
        info = json.loads(creds.to_json())
        directory = os.path.dirname(self.token_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.token_path, 'w', encoding='utf-8') as f:
            json.dump(info, f)
        self._authorized_user_info = info
        logger.info(f"Refresh token saved to {self.token_path}")

    def forget(self):
        """Drops the stored refresh token so the next silent request needs consent."""
        self._authorized_user_info = None
        try:
            os.remove(self.token_path)
            logger.info(f"Removed stored refresh token {self.token_path}")
        except FileNotFoundError:
            pass

    # --- token requests ---

    def _to_response(self, creds: Credentials) -> TokenResponse:
        expires_in = DEFAULT_EXPIRES_IN
        if creds.expiry is not None:
            # google-auth keeps expiry as naive UTC
            now = datetime.now(timezone.utc).replace(tzinfo=None)
            expires_in = max(0, int((creds.expiry - now).total_seconds()))
        granted = getattr(creds, 'granted_scopes', None) or creds.scopes or self.scopes
        return TokenResponse(
            access_token=creds.token,
            expires_in=expires_in,
            scope=' '.join(granted),
            token_type=DEFAULT_TOKEN_TYPE,
            id_token=getattr(creds, 'id_token', None),
        )

    def _request_silent(self) -> TokenResponse:
        if not self._authorized_user_info or not self._authorized_user_info.get('refresh_token'):
            raise IdentityError('login_required', "No stored refresh token.")
        creds = Credentials.from_authorized_user_info(self._authorized_user_info, self.scopes)
        try:
            creds.refresh(self._request_factory())
        except RefreshError as e:
            code = refresh_error_code(e)
            logger.warning(f"Silent token refresh refused: {code}")
            if code == 'invalid_grant':
                self.forget()
            raise IdentityError(code, str(e)) from e
        return self._to_response(creds)

    def _request_interactive(self, prompt: str, hint: Optional[str]) -> TokenResponse:
        flow = self._flow_factory(self.client_config, scopes=self.scopes)
        kwargs: Dict[str, Any] = {'port': 0}
        if prompt:
            kwargs['prompt'] = prompt
        if hint:
            kwargs['login_hint'] = hint
        try:
            creds = flow.run_local_server(**kwargs)
        except OAuth2Error as e:
            logger.warning(f"Consent flow failed: {e.error}")
            raise IdentityError(e.error or 'access_denied', str(e)) from e
        except OSError as e:
            raise IdentityError('popup_failed_to_open', str(e)) from e
        self._store_credentials(creds)
        return self._to_response(creds)

    async def request_token(self, prompt: str, hint: Optional[str] = None) -> TokenResponse:
        if not self.ready:
            raise IdentityError('identity_unavailable')
        if prompt == PROMPT_SILENT:
            return await asyncio.to_thread(self._request_silent)
        return await asyncio.to_thread(self._request_interactive, prompt, hint)

    # --- revocation ---

    def _revoke(self, token: str):
        response = requests.post(
            GOOGLE_REVOKE_URL,
            params={'token': token},
            headers={'content-type': 'application/x-www-form-urlencoded'},
            timeout=10,
        )
        response.raise_for_status()

    async def revoke(self, token: str):
        try:
            await asyncio.to_thread(self._revoke, token)
        except requests.exceptions.RequestException as e:
            raise IdentityError('revoke_failed', str(e)) from e
        logger.info("Access token revoked.")
