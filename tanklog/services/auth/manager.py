"""Session lifecycle: acquire, cache, refresh and drop the user's bearer token."""

import asyncio
import dataclasses
import logging
import time
from typing import Callable, Optional

from tanklog.config.config import (
    SESSION_STORAGE_KEY, INTERACTION_REQUIRED_CODES, DEFAULT_TOKEN_TYPE,
    PROMPT_SELECT_ACCOUNT, PROMPT_SILENT,
    IDENTITY_READY_TIMEOUT_SECONDS, IDENTITY_READY_POLL_INTERVAL_SECONDS,
)
from tanklog.utils.error_utils import AuthRequiredError, IdentityError

# Local imports
from .identity import IdentityProvider
from .profile import decode_id_token_profile, fetch_user_profile
from .session import Session, UserProfile

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the current Session.

    States: no session -> request pending -> valid -> stale (within the expiry
    skew) -> cleared. Only one token request is in flight at a time; concurrent
    callers await the same task.
    """

    def __init__(self, provider: IdentityProvider, storage,
                 clock: Callable[[], float] = time.time,
                 profile_fetcher: Callable[[str], Optional[UserProfile]] = fetch_user_profile,
                 ready_timeout: float = IDENTITY_READY_TIMEOUT_SECONDS,
                 poll_interval: float = IDENTITY_READY_POLL_INTERVAL_SECONDS):
        self.provider = provider
        self.storage = storage
        self._clock = clock
        self._profile_fetcher = profile_fetcher
        self._ready_timeout = ready_timeout
        self._poll_interval = poll_interval

        self._session: Optional[Session] = None
        self._user: Optional[UserProfile] = None
        self._hydrated = False
        self._pending: Optional[asyncio.Task] = None
        self._load_task: Optional[asyncio.Task] = None
        self.needs_user_interaction = False

    # --- read-only state ---

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[UserProfile]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._has_fresh_session()

    def _has_fresh_session(self) -> bool:
        return self._session is not None and self._session.is_fresh(self._clock())

    # --- persistence ---

    def hydrate(self):
        """Restores the persisted session once. Invalid data is discarded and the key cleared."""
        if self._hydrated:
            return
        self._hydrated = True
        raw = self.storage.get(SESSION_STORAGE_KEY)
        if raw is None:
            return
        session = Session.from_dict(raw)
        if session is None:
            logger.warning("Discarding persisted session with an invalid shape.")
            self.storage.remove(SESSION_STORAGE_KEY)
            return
        self._session = session
        self._user = session.user
        logger.info(f"Restored session (fresh={session.is_fresh(self._clock())})")

    def _set_session(self, session: Session):
        self._session = session
        try:
            self.storage.set(SESSION_STORAGE_KEY, session.to_dict())
        except OSError as e:
            logger.error(f"Failed to persist session: {e}", exc_info=True)

    def clear_session(self):
        self._session = None
        try:
            self.storage.remove(SESSION_STORAGE_KEY)
        except OSError as e:
            logger.error(f"Failed to remove persisted session: {e}", exc_info=True)

    # --- identity provider readiness ---

    async def ensure_identity_ready(self):
        """Loads the provider once and waits (bounded) until it reports ready."""
        if self.provider.ready:
            return
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self.provider.load())

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._ready_timeout
        while not self.provider.ready:
            if self._load_task.done() and self._load_task.exception() is not None:
                error = self._load_task.exception()
                # Allow a later call to retry the load
                self._load_task = None
                logger.error(f"Identity provider failed to load: {error}")
                raise IdentityError('identity_unavailable', str(error)) from error
            if loop.time() >= deadline:
                raise IdentityError('identity_unavailable', "Identity provider did not become ready in time.")
            await asyncio.sleep(self._poll_interval)

    # --- token acquisition ---

    async def _request_session(self, prompt: str, hint: Optional[str]) -> Session:
        await self.ensure_identity_ready()
        logger.info(f"Requesting access token (prompt={prompt or 'default'})")
        response = await self.provider.request_token(prompt, hint)
        if not response.access_token:
            raise IdentityError('missing_access_token')

        if self._user is None and response.id_token:
            self._user = decode_id_token_profile(response.id_token)

        now = self._clock()
        session = Session(
            access_token=response.access_token,
            token_type=response.token_type or DEFAULT_TOKEN_TYPE,
            scope=response.scope or '',
            created_at=now,
            expires_at=now + float(response.expires_in),
            user=self._user,
        )
        self._set_session(session)
        self.needs_user_interaction = False
        return session

    def _clear_pending(self, task: asyncio.Task):
        if self._pending is task:
            self._pending = None

    async def acquire_token(self, prompt: str, hint: Optional[str] = None) -> Session:
        """Single-flight token request. Callers arriving while one is pending share its result."""
        if self._pending is None:
            task = asyncio.ensure_future(self._request_session(prompt, hint))
            task.add_done_callback(self._clear_pending)
            self._pending = task
        else:
            logger.debug("Token request already in flight; joining it.")
        return await asyncio.shield(self._pending)

    async def try_silent_refresh(self) -> Optional[Session]:
        """Returns a fresh session, refreshing silently if needed.

        Returns None when the provider says the user has to interact; any other
        failure clears the session and propagates.
        """
        if self._has_fresh_session():
            return self._session

        hint = self._user.email if self._user else None
        try:
            return await self.acquire_token(PROMPT_SILENT, hint)
        except IdentityError as e:
            self.clear_session()
            if e.code in INTERACTION_REQUIRED_CODES:
                logger.info(f"Silent refresh needs user interaction: {e.code}")
                self.needs_user_interaction = True
                return None
            logger.error(f"Silent refresh failed: {e.code}")
            raise
        except Exception as e:
            logger.error(f"Silent refresh failed: {e}", exc_info=True)
            self.clear_session()
            raise

    async def get_valid_token(self) -> str:
        if self._has_fresh_session():
            return self._session.access_token
        session = await self.try_silent_refresh()
        if session is None:
            raise AuthRequiredError()
        return session.access_token

    # --- user actions ---

    async def login(self, prompt: str = PROMPT_SELECT_ACCOUNT, hint: Optional[str] = None) -> Session:
        """Interactive sign-in. Fetches the profile (best effort) when none is known yet."""
        session = await self.acquire_token(prompt, hint)
        if session.user is None:
            try:
                profile = await asyncio.to_thread(self._profile_fetcher, session.access_token)
            except Exception as e:
                logger.warning(f"Could not fetch user profile: {e}")
                profile = None
            if profile is not None:
                self._user = profile
                session = dataclasses.replace(session, user=profile)
                self._set_session(session)
        logger.info(f"Signed in as {session.user.email if session.user else 'unknown user'}")
        return session

    async def logout(self, revoke: bool = False):
        """Forgets the session, profile and stored refresh token. Revocation is best effort."""
        token = self._session.access_token if self._session else None
        self.clear_session()
        self._user = None
        self.needs_user_interaction = False
        try:
            self.provider.forget()
        except OSError as e:
            logger.warning(f"Could not remove stored refresh token: {e}")
        if revoke and token:
            try:
                await self.provider.revoke(token)
            except Exception as e:
                logger.warning(f"Token revocation failed (ignored): {e}")
        logger.info("Signed out.")

    async def handle_identity_assertion(self, credential: str) -> Optional[UserProfile]:
        """Takes an ID token from a one-tap style prompt, shows who it is, then tries a silent refresh."""
        profile = decode_id_token_profile(credential)
        if profile is not None:
            self._user = profile
            if self._session is not None:
                self._set_session(dataclasses.replace(self._session, user=profile))
        try:
            await self.try_silent_refresh()
        except Exception as e:
            logger.info(f"Silent refresh after identity assertion failed: {e}")
        return profile

    async def invalidate(self):
        """Called when the API rejects the token: drop it and ask for interaction."""
        logger.info("Session invalidated by the API.")
        self.clear_session()
        self.needs_user_interaction = True
