# ╔════════════════════════════════════════════════════════════════════════════╗
# ║                       ENVIRONMENT CONFIGURATION                            ║
# ║    Centralized access and type conversion for environment variables.       ║
# ║       Includes helpers for boolean, integer, and string values.            ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# Standard library imports
import os
from pathlib import Path
from typing import Optional

# ╔════════════════════════════════════════════════════════════════════════════╗
# ║ HELPER FUNCTIONS                                                           ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# --- get_bool_env ---
# Retrieves an environment variable and interprets it as a boolean.
# Considers '1', 'true', 'yes' (case-insensitive) as True.
# Args:
#     var_name: The name of the environment variable.
#     default: The default boolean value if the variable is not set.
# Returns: The boolean value of the environment variable or the default.
def get_bool_env(var_name: str, default: bool = False) -> bool:
    val = os.getenv(var_name, str(default)).lower()
    return val in ("1", "true", "yes")

# --- get_int_env ---
# Retrieves an environment variable and converts it to an integer.
# Args:
#     var_name: The name of the environment variable.
#     default: The default integer value if the variable is not set or invalid.
# Returns: The integer value of the environment variable or the default.
def get_int_env(var_name: str, default: int = 0) -> int:
    val_str = os.getenv(var_name)
    if val_str is None:
        return default
    try:
        return int(val_str)
    except ValueError:
        return default

# --- get_float_env ---
# Same as get_int_env, for timeouts expressed in (fractional) seconds.
def get_float_env(var_name: str, default: float = 0.0) -> float:
    val_str = os.getenv(var_name)
    if val_str is None:
        return default
    try:
        return float(val_str)
    except ValueError:
        return default

# --- get_str_env ---
# Retrieves an environment variable as a string.
# Args:
#     var_name: The name of the environment variable.
#     default: The default string value if the variable is not set.
# Returns: The string value of the environment variable or the default.
def get_str_env(var_name: str, default: str = "") -> str:
    return os.getenv(var_name, default)

# --- get_default_service_account_path ---
# Determines the default path for the Google service account JSON file.
# Checks potential locations in order: Docker volume, project root, current directory.
# Returns: A string representing the determined file path.
def get_default_service_account_path() -> str:
    docker_path = "/app/service_account.json"
    if os.path.exists(docker_path):
        return docker_path
    project_root = Path(__file__).resolve().parent.parent
    local_path = project_root / "service_account.json"
    if local_path.exists():
        return str(local_path)
    return "./service_account.json"

# ╔════════════════════════════════════════════════════════════════════════════╗
# ║ CORE CONFIGURATION VARIABLES                                               ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# Debug mode flag (controls verbose logging)
DEBUG: bool = get_bool_env("DEBUG", False)

# Service account JSON for the Google Calendar API.
# Auto-detects path if not explicitly set via environment variable.
GOOGLE_APPLICATION_CREDENTIALS: str = get_str_env(
    "GOOGLE_APPLICATION_CREDENTIALS", get_default_service_account_path()
)

# OAuth client config plus a long-lived refresh token. When both are set they
# take precedence over the service account.
GOOGLE_OAUTH_CONFIG: Optional[str] = get_str_env("GOOGLE_OAUTH_CONFIG", None)
CAL_REFRESH_TOKEN: Optional[str] = get_str_env("CAL_REFRESH_TOKEN", None)

# Timezone used for date-only (all-day) event boundaries
DEFAULT_TIMEZONE: str = get_str_env("DEFAULT_TIMEZONE", "UTC")

# Directory for rotating log files (falls back to local/tmp dirs)
LOG_DIR: str = get_str_env("LOG_DIR", "/data/logs")

# ╔════════════════════════════════════════════════════════════════════════════╗
# ║ AGGREGATION TUNING                                                         ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# Calendar directory refresh interval (seconds)
DIRECTORY_TTL_SECONDS: int = get_int_env("DIRECTORY_TTL_SECONDS", 300)

# Upper bound on calendar list pages fetched per refresh
DIRECTORY_MAX_PAGES: int = get_int_env("DIRECTORY_MAX_PAGES", 50)

# Default deadline for one aggregate query (seconds)
QUERY_TIMEOUT_SECONDS: float = get_float_env("QUERY_TIMEOUT_SECONDS", 10.0)

# Per-calendar requests allowed in flight at once
MAX_CONCURRENT_QUERIES: int = get_int_env("MAX_CONCURRENT_QUERIES", 16)

# How far back the ongoing view looks for events that have not ended
ONGOING_LOOKBACK_DAYS: int = get_int_env("ONGOING_LOOKBACK_DAYS", 10)

# Socket timeout for the Google HTTP transport (seconds)
HTTP_TIMEOUT_SECONDS: int = get_int_env("HTTP_TIMEOUT_SECONDS", 15)

# Attempts per Google API request before giving up
API_MAX_RETRIES: int = get_int_env("API_MAX_RETRIES", 3)
