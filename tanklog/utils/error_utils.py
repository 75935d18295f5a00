import logging
from typing import Optional

logger = logging.getLogger(__name__)


class TankLogError(Exception):
    """Base class for every error raised by tanklog."""


class ValidationError(TankLogError):
    """Input rejected before any network call was made."""


class NotFoundError(TankLogError):
    """A record id could not be located in its table."""


class SchemaError(TankLogError):
    """The spreadsheet layout is missing something that cannot be created automatically."""


class AuthRequiredError(TankLogError):
    """No usable bearer token; the user has to sign in again."""

    def __init__(self, message: str = "Sign-in required."):
        super().__init__(message)


class TransportError(TankLogError):
    """A Sheets API call failed with a non-auth HTTP status."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(f"Sheets API error ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class IdentityError(TankLogError):
    """The identity provider refused or failed a token request.

    `code` carries the upstream OAuth error code (e.g. 'login_required').
    """

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code)
        self.code = code


# Basic error logging (can be expanded)
def log_error(message: str, error: Optional[BaseException] = None, command: Optional[str] = None, exc_info=False):
    """Logs an error message, optionally including the CLI command and error type."""
    log_message = f"ERROR: {message}"
    if command:
        log_message += f" | Command: {command}"
    if error is not None:
        log_message += f" | {type(error).__name__}: {error}"

    # Use logger.error which handles exc_info automatically if True
    logger.error(log_message, exc_info=exc_info)


def describe_error(error: BaseException) -> str:
    """Short user-facing text for an error, used by the CLI output."""
    if isinstance(error, AuthRequiredError):
        return "Not signed in. Run 'tanklog login' first."
    if isinstance(error, IdentityError):
        return f"Sign-in failed: {error.code}"
    if isinstance(error, TransportError):
        return f"Google Sheets request failed ({error.status_code}): {error.message}"
    return str(error) or type(error).__name__
