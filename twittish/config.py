"""Runtime settings: environment (.env) plus stored config.json.

Environment (read after loading `.env` from the working directory):

    TWITTISH_DATA_DIR    where snapshots and config.json live (default ./data)
    TWITTISH_STORE_KEY   snapshot key inside the data dir
    TWITTISH_LOG_LEVEL   logging level name for the CLI (default WARNING)

Stored settings ({data_dir}/config.json) are merged over defaults by
get_config(); update_config() applies partial updates and persists them.
"""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import ValidationError
from .kv import valid_key
from .persistence import DEFAULT_KEY

load_dotenv(Path.cwd() / ".env")

DEFAULT_DATA_DIR = Path("data")

_CONFIG_DEFAULTS: dict[str, Any] = {
    "max_post_length": 280,
    "enforce_max_length": False,
    "allow_placeholder_claim": False,
    "media_only": False,
}


def data_dir() -> Path:
    return Path(os.getenv("TWITTISH_DATA_DIR", str(DEFAULT_DATA_DIR)))


def store_key() -> str:
    key = os.getenv("TWITTISH_STORE_KEY", DEFAULT_KEY)
    if not valid_key(key):
        raise ValidationError(f"TWITTISH_STORE_KEY {key!r} may only contain letters, digits, _ . -")
    return key


def log_level() -> str:
    return os.getenv("TWITTISH_LOG_LEVEL", "WARNING").upper()


def default_config() -> dict[str, Any]:
    return dict(_CONFIG_DEFAULTS)


def _config_path(base: Path) -> Path:
    return base / "config.json"


def get_config(base: Path) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = dict(_CONFIG_DEFAULTS)
    path = _config_path(base)
    if path.is_file():
        stored = json.loads(path.read_text())
        for key in _CONFIG_DEFAULTS:
            if key in stored:
                config[key] = stored[key]
    return config


def _coerce(key: str, value: Any) -> Any:
    """Convert `value` to the type of the key's default, or raise ValidationError."""
    default = _CONFIG_DEFAULTS[key]
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValidationError(f"{key} must be true or false, got {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{key} must be a positive whole number, got {value!r}")
    return value


def update_config(base: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge known fields into config and persist. Returns full config.

    Every value is checked before anything is written, so one bad field
    leaves the stored config unchanged.
    """
    config = get_config(base)
    for key, value in fields.items():
        if key in _CONFIG_DEFAULTS:
            config[key] = _coerce(key, value)
    base.mkdir(parents=True, exist_ok=True)
    _config_path(base).write_text(json.dumps(config, indent=2))
    return config
