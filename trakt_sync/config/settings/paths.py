"""Where trakt-sync reads its configuration from."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _CONFIG_DIR.parents[2]

# a checkout-level .env first, then one in the working directory; real env wins
load_dotenv(_REPO_ROOT / ".env")
load_dotenv()

SERVICE_SETTINGS_FILE = _CONFIG_DIR / "traktservicesettings.json"
USER_SETTINGS_ENV = "TRAKT_SYNC_SETTINGS_FILE"
DEFAULT_USER_SETTINGS_FILE = Path("~/.config/trakt-sync/settings.json")

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def expand_env(value: Any) -> Any:
    """Replace ``${VAR}`` references anywhere inside strings, lists and dicts."""

    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.getenv(m.group(1), ""), value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    return value


def read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def get_service_settings_path() -> Path:
    return SERVICE_SETTINGS_FILE


def get_user_settings_path() -> Path:
    # resolved per call so the override can change between reloads
    raw = os.getenv(USER_SETTINGS_ENV) or str(DEFAULT_USER_SETTINGS_FILE)
    return Path(raw).expanduser()


__all__ = [
    "DEFAULT_USER_SETTINGS_FILE",
    "SERVICE_SETTINGS_FILE",
    "USER_SETTINGS_ENV",
    "expand_env",
    "get_service_settings_path",
    "get_user_settings_path",
    "read_json",
]
