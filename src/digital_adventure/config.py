"""Settings from config.toml, with environment overrides."""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("config.toml")
DEFAULT_DB_PATH = "saves/campaign.db"
DEFAULT_LOG_LEVEL = "WARNING"

ENV_DB_PATH = "DIGITAL_ADVENTURE_DB"
ENV_LOG_LEVEL = "DIGITAL_ADVENTURE_LOG_LEVEL"


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load config.toml (if present) and apply environment overrides.

    Always returns the [storage] and [logging] tables with defaults filled in.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    config: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            config = tomllib.load(f)

    storage = config.setdefault("storage", {})
    storage.setdefault("db_path", DEFAULT_DB_PATH)
    logging_cfg = config.setdefault("logging", {})
    logging_cfg.setdefault("level", DEFAULT_LOG_LEVEL)

    if os.environ.get(ENV_DB_PATH):
        storage["db_path"] = os.environ[ENV_DB_PATH]
    if os.environ.get(ENV_LOG_LEVEL):
        logging_cfg["level"] = os.environ[ENV_LOG_LEVEL]
    return config
