"""Static configuration for riftwatch.

All user-editable settings (polling, stats, notifications, commands, logging)
live in a single JSON file for quick edits without touching Python. Secrets
stay in the environment (.env).
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database.
DB_PATH = os.path.join(PROJECT_ROOT, "riftwatch.db")

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Database location can be overridden, relative paths resolve from the root.
_db_path = _CONFIG.get("database", {}).get("path")
if _db_path:
    DB_PATH = _db_path if os.path.isabs(_db_path) else os.path.join(PROJECT_ROOT, _db_path)

# Polling cadence and catch-up window.
# - INTERVAL_MINUTES: time between the end of one cycle and the next
# - LOOKBACK: how many recent match ids are fetched per identity (K)
# - MAX_CONCURRENCY: identities reconciled at once (1 = sequential)
# - REQUEST_TIMEOUT_SECONDS: hard limit for each Riot API call
_polling = _CONFIG.get("polling", {})
POLL_INTERVAL_MINUTES = float(_polling.get("interval_minutes", 5))
LOOKBACK = int(_polling.get("lookback", 5))
MAX_CONCURRENCY = int(_polling.get("max_concurrency", 1))
REQUEST_TIMEOUT_SECONDS = float(_polling.get("request_timeout_seconds", 30))

# Regional routing host for account-v1 and match-v5.
_riot = _CONFIG.get("riot", {})
RIOT_ROUTING = _riot.get("routing", "americas")

# Default trailing window for stats commands.
STATS_DEFAULT_DAYS = int(_CONFIG.get("stats", {}).get("default_days", 7))

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "saved_messages")
# Bot chat id is only required when notification_method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")

# Chat commands are read from these chats while the watcher runs.
_commands = _CONFIG.get("commands", {})
COMMANDS_ENABLED = bool(_commands.get("enabled", True))
COMMAND_CHATS = list(_commands.get("chats", ["me"]))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
