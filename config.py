"""
Configuration

All settings come from environment variables. flask_app loads this module
with app.config.from_object(), so only UPPERCASE names are picked up.
"""

import os


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name, default):
    value = os.getenv(name)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


# --- Webhook auth ---
GHL_WEBHOOK_SECRET = os.getenv("GHL_WEBHOOK_SECRET")
GHL_WEBHOOK_REQUIRE_SECRET = _env_bool("GHL_WEBHOOK_REQUIRE_SECRET")

# --- GoHighLevel REST ---
GHL_API_KEY = os.getenv("GHL_API_KEY")
GHL_BASE_URL = os.getenv("GHL_BASE_URL", "https://rest.gohighlevel.com/v1")
GHL_API_VERSION = os.getenv("GHL_API_VERSION", "2021-07-28")

# --- Firestore ---
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH")
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
DEALS_COLLECTION = os.getenv("DEALS_COLLECTION", "deals")

# --- Matching ---
# Empty list disables the address-hint tier of the deal matcher
ADDRESS_HINT_KEYWORDS = _env_list("ADDRESS_HINT_KEYWORDS", ["address", "property"])

# --- Runtime ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 5000))
