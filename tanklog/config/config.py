"""Configuration settings for TankLog."""

import os
from dotenv import load_dotenv

load_dotenv()

# --- Google OAuth Configuration ---
# Scopes requested for the user's bearer token
SCOPES = [
    'openid',
    'https://www.googleapis.com/auth/userinfo.email',
    'https://www.googleapis.com/auth/userinfo.profile',
    'https://www.googleapis.com/auth/spreadsheets',
    'https://www.googleapis.com/auth/drive.metadata.readonly',
    'https://www.googleapis.com/auth/drive.file',
]

GOOGLE_TOKEN_URI = 'https://oauth2.googleapis.com/token'
GOOGLE_AUTH_URI = 'https://accounts.google.com/o/oauth2/auth'
GOOGLE_USERINFO_URL = os.getenv('TANKLOG_USERINFO_URL', 'https://openidconnect.googleapis.com/v1/userinfo')
GOOGLE_REVOKE_URL = 'https://oauth2.googleapis.com/revoke'
DRIVE_VIEW_URL_TEMPLATE = 'https://drive.google.com/file/d/{file_id}/view'

# --- Session Configuration ---
SESSION_STORAGE_KEY = 'tanklog.auth.session.v1'
EXPIRY_SKEW_SECONDS = 30
DEFAULT_TOKEN_TYPE = 'Bearer'

# Identity provider readiness polling
IDENTITY_READY_TIMEOUT_SECONDS = 10.0
IDENTITY_READY_POLL_INTERVAL_SECONDS = 0.05

# Error codes that mean the user has to go through the consent UI again
INTERACTION_REQUIRED_CODES = frozenset({
    'interaction_required',
    'login_required',
    'consent_required',
    'invalid_grant',
    'access_denied',
})

# Prompt levels understood by the identity provider
PROMPT_SELECT_ACCOUNT = 'select_account'
PROMPT_CONSENT = 'consent'
PROMPT_SILENT = 'none'

# --- Spreadsheet Configuration ---
# Sheet tab titles, one per record table
EVENTS_SHEET = 'EVENTS'
LIVESTOCK_SHEET = 'LIVESTOCK'
WATER_TESTS_SHEET = 'WATER_TESTS'
REMINDERS_SHEET = 'REMINDERS'
PHOTOS_SHEET = 'PHOTOS'
PARAMETER_RANGES_SHEET = 'PARAMETER_RANGES'

# Render/input options used for every values call
VALUE_RENDER_OPTION = 'UNFORMATTED_VALUE'
DATETIME_RENDER_OPTION = 'FORMATTED_STRING'
VALUE_INPUT_OPTION = 'RAW'
INSERT_DATA_OPTION = 'INSERT_ROWS'

# --- Local State ---
DEFAULT_STATE_DIR = os.path.join('~', '.tanklog')
SESSION_FILE_NAME = 'session.json'
REFRESH_TOKEN_FILE_NAME = 'google_token.json'
