"""Static configuration for wallrelay.

Non-secret settings (timings, caption format, control plane, logging) live in
a single JSON file for quick edits without touching Python. Tokens and ids
come from the environment / ``.env``.
"""

import json
import os
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_FILENAME = "config.json"


def resolve_config_path(override: Optional[str], cwd: str, project_root: str) -> str:
    """Pick the config file: WALLRELAY_CONFIG, then ./config.json, then the checkout's.

    The checkout fallback only exists for editable installs; an installed
    package has no config.json next to its modules.
    """

    if override:
        return os.path.abspath(override)
    local = os.path.join(cwd, CONFIG_FILENAME)
    if os.path.exists(local):
        return os.path.abspath(local)
    return os.path.join(project_root, CONFIG_FILENAME)


CONFIG_PATH = resolve_config_path(os.getenv("WALLRELAY_CONFIG"), os.getcwd(), PROJECT_ROOT)
# Relative paths inside the config (log files) resolve against its directory.
CONFIG_DIR = os.path.dirname(CONFIG_PATH)


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


load_dotenv()
_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Feed paging. Page size is independent of the poll interval.
_feed = _CONFIG.get("feed", {})
PAGE_SIZE = int(_feed.get("page_size", 10))
VK_API_VERSION = str(_feed.get("api_version", "5.199"))
VK_TIMEOUT_SECONDS = float(_feed.get("timeout_seconds", 10))

# Poll cadence and the pacing between delivery calls.
_polling = _CONFIG.get("polling", {})
POLL_INTERVAL_SECONDS = float(_polling.get("interval_seconds", 30))
PACING_DELAY_SECONDS = float(_polling.get("pacing_delay_seconds", 1.0))
RESTART_DELAY_SECONDS = float(_polling.get("restart_delay_seconds", 1.0))

_captions = _CONFIG.get("captions", {})
CAPTION_CHARS = int(_captions.get("max_chars", 200))
CAPTION_PLACEHOLDER = _captions.get("placeholder", "No description")

# Start forwarding as soon as the process is up.
AUTOSTART = bool(_CONFIG.get("autostart", True))

_control = _CONFIG.get("control", {})
_http = _control.get("http", {})
HTTP_ENABLED = bool(_http.get("enabled", True))
HTTP_HOST = _http.get("host", "0.0.0.0")
# PORT is honoured for hosting platforms that assign one.
HTTP_PORT = int(os.getenv("PORT") or _http.get("port", 3000))
CONTROL_BOT_ENABLED = bool(_control.get("telegram", {}).get("enabled", True))

# Secrets and identifiers.
VK_TOKEN = os.getenv("VK_TOKEN")
VK_GROUP_ID = os.getenv("VK_GROUP_ID")
TG_TOKEN = os.getenv("TG_TOKEN")
TG_CHANNEL_ID = os.getenv("TG_CHANNEL_ID")
TG_CONTROLLER_TOKEN = os.getenv("TG_CONTROLLER_TOKEN")
TG_ADMIN_ID = os.getenv("TG_ADMIN_ID")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
