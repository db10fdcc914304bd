# ╔════════════════════════════════════════════════════════════════════════════╗
# ║                          GOOGLE API SERVICE MODULE                         ║
# ║    Builds the Google Calendar API service from either an OAuth client      ║
# ║    plus refresh token or a service account file.                           ║
# ╚════════════════════════════════════════════════════════════════════════════╝

"""
google_api.py: Google Calendar API setup and service initialization.

Unlike a module-level service, build_service() returns a fresh object that the
caller owns and hands to GoogleCalendarSource.
"""
import json
import os

import google_auth_httplib2
import httplib2
from google.oauth2 import credentials as user_credentials
from google.oauth2 import service_account
from googleapiclient.discovery import build

from utils.environ import (
    CAL_REFRESH_TOKEN,
    GOOGLE_APPLICATION_CREDENTIALS,
    GOOGLE_OAUTH_CONFIG,
    HTTP_TIMEOUT_SECONDS,
)
from utils.logging import logger

SCOPES = ["https://www.googleapis.com/auth/calendar"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

# --- load_credentials ---
# Prefers an installed-app OAuth client with a refresh token (the bot's own
# calendar account); falls back to a service account file.
# Returns: A google.auth credentials object.
# Raises: FileNotFoundError / ValueError when no usable credentials exist.
def load_credentials(oauth_config_path=GOOGLE_OAUTH_CONFIG,
                     refresh_token=CAL_REFRESH_TOKEN,
                     service_account_path=GOOGLE_APPLICATION_CREDENTIALS):
    if oauth_config_path and refresh_token:
        with open(oauth_config_path, "r", encoding="utf-8") as f:
            client_config = json.load(f)
        client = client_config.get("installed") or client_config.get("web") or {}
        logger.info("Using OAuth client credentials with refresh token")
        return user_credentials.Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client.get("client_id"),
            client_secret=client.get("client_secret"),
            token_uri=client.get("token_uri", TOKEN_URI),
            scopes=SCOPES,
        )
    if not os.path.exists(service_account_path):
        raise FileNotFoundError(f"Google service account file not found: {service_account_path}")
    logger.info(f"Using service account credentials from {service_account_path}")
    return service_account.Credentials.from_service_account_file(service_account_path, scopes=SCOPES)

# --- make_http_factory ---
# httplib2.Http is not thread-safe, and requests run on worker threads, so
# each request gets its own authorized transport with a socket timeout.
# Returns: A zero-argument callable producing AuthorizedHttp objects.
def make_http_factory(credentials, timeout=HTTP_TIMEOUT_SECONDS):
    def new_http():
        return google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    return new_http

# --- build_service ---
# Builds the Calendar v3 service.
# Args:
#     credentials: Credentials to use; loaded from the environment when None.
#     timeout: Socket timeout in seconds for the per-request transports.
# Returns: (service, http_factory) for GoogleCalendarSource.
def build_service(credentials=None, timeout=HTTP_TIMEOUT_SECONDS):
    if credentials is None:
        credentials = load_credentials()
    http_factory = make_http_factory(credentials, timeout)
    service = build("calendar", "v3", http=http_factory(), cache_discovery=False)
    logger.info("Google Calendar service initialized.")
    return service, http_factory
