import os
import logging
import json
from typing import Optional, Dict, Any
import threading # For singleton lock

from tanklog.utils import sanitize_token, normalize_drive_folder_id

from .config import DEFAULT_STATE_DIR, SESSION_FILE_NAME, REFRESH_TOKEN_FILE_NAME, GOOGLE_AUTH_URI, GOOGLE_TOKEN_URI

logger = logging.getLogger(__name__)

# Singleton instance and lock
_config_instance = None
_config_lock = threading.Lock()

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AppConfig:
    """Holds the application configuration, loaded once as a singleton."""
    def __init__(self):
        logger.debug("Initializing AppConfig instance...")

        # --- OAuth client ---
        self.google_client_config: Optional[Dict[str, Any]] = None

        # --- Spreadsheet / Drive ---
        self.spreadsheet_id: Optional[str] = None
        self.drive_root_folder_id: Optional[str] = None

        # --- Local state ---
        self.state_dir: str = os.path.expanduser(DEFAULT_STATE_DIR)
        self.log_level: str = "INFO"

    @property
    def session_file(self) -> str:
        return os.path.join(self.state_dir, SESSION_FILE_NAME)

    @property
    def refresh_token_file(self) -> str:
        return os.path.join(self.state_dir, REFRESH_TOKEN_FILE_NAME)

    def _load_client_config(self):
        """Loads the OAuth client configuration.

        Priority: TANKLOG_GOOGLE_CLIENT_SECRET_FILE (installed-app JSON downloaded
        from the Cloud Console), then TANKLOG_GOOGLE_CLIENT_ID + TANKLOG_GOOGLE_CLIENT_SECRET.
        A missing client is not fatal here: sheets calls still work with a
        restored session, only login needs it.
        """
        secret_path = os.environ.get("TANKLOG_GOOGLE_CLIENT_SECRET_FILE")
        client_id = sanitize_token(os.environ.get("TANKLOG_GOOGLE_CLIENT_ID"))
        client_secret = sanitize_token(os.environ.get("TANKLOG_GOOGLE_CLIENT_SECRET"))

        if secret_path:
            logger.info(f"Loading OAuth client secrets from file: {secret_path}")
            try:
                with open(os.path.expanduser(secret_path), 'r') as f:
                    raw = json.load(f)
            except FileNotFoundError:
                logger.error(f"OAuth client secrets file not found: {secret_path}")
                raise ValueError(f"OAuth client secrets file not found: {secret_path}")
            except json.JSONDecodeError as e:
                logger.error(f"Error decoding OAuth client secrets file {secret_path}: {e}")
                raise ValueError(f"Invalid JSON in OAuth client secrets file: {secret_path}")

            if not isinstance(raw, dict) or not ("installed" in raw or "web" in raw):
                raise ValueError("OAuth client secrets must contain an 'installed' or 'web' section.")
            self.google_client_config = raw
        elif client_id and client_secret:
            logger.info("Using TANKLOG_GOOGLE_CLIENT_ID/TANKLOG_GOOGLE_CLIENT_SECRET for the OAuth client.")
            self.google_client_config = {
                "installed": {
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "auth_uri": GOOGLE_AUTH_URI,
                    "token_uri": GOOGLE_TOKEN_URI,
                    "redirect_uris": ["http://localhost"],
                }
            }
        else:
            logger.warning("No OAuth client configured. Set TANKLOG_GOOGLE_CLIENT_SECRET_FILE or TANKLOG_GOOGLE_CLIENT_ID/TANKLOG_GOOGLE_CLIENT_SECRET to enable login.")
            self.google_client_config = None

    def _load_storage_config(self):
        """Loads spreadsheet, drive folder and local state settings."""
        self.spreadsheet_id = sanitize_token(os.environ.get("TANKLOG_SPREADSHEET_ID")) or None

        raw_folder = os.environ.get("TANKLOG_DRIVE_FOLDER")
        if raw_folder:
            self.drive_root_folder_id = normalize_drive_folder_id(raw_folder)
            if not self.drive_root_folder_id:
                logger.warning(f"TANKLOG_DRIVE_FOLDER '{raw_folder}' is not a valid Drive folder id or URL. Ignoring.")

        state_dir = os.environ.get("TANKLOG_STATE_DIR")
        if state_dir:
            self.state_dir = os.path.expanduser(state_dir)

        log_level = os.environ.get("TANKLOG_LOG_LEVEL", "INFO").upper()
        if log_level not in VALID_LOG_LEVELS:
            logger.warning(f"Invalid TANKLOG_LOG_LEVEL '{log_level}'. Defaulting to INFO.")
            log_level = "INFO"
        self.log_level = log_level

    def load(self):
        """Load all configurations."""
        logger.info("Loading application configuration...")
        self._load_client_config()
        self._load_storage_config()
        logger.info("Configuration loading complete.")


def get_config() -> AppConfig:
    """Gets the singleton AppConfig instance, loading it on first call."""
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            # Double-check locking
            if _config_instance is None:
                logger.info("Creating and loading singleton AppConfig instance.")
                temp_instance = AppConfig()
                try:
                    temp_instance.load()
                    _config_instance = temp_instance
                except Exception as e:
                    logger.critical(f"Failed to load configuration during singleton creation: {e}", exc_info=True)
                    raise
    return _config_instance


def reset_config():
    """Drops the cached singleton so the next get_config() re-reads the environment."""
    global _config_instance
    with _config_lock:
        _config_instance = None
