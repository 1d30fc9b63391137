import copy
from pathlib import Path

import yaml

from .defaults import DEFAULT_CONFIG
from snfkpi.config.engine_config import load_engine_config


# -------------------------------------------------
# MAIN CONFIG LOADER
# -------------------------------------------------
def load_config(path: str | None) -> dict:
    """
    Load and merge user config with defaults.

    Rules:
    - Defaults ALWAYS win if the user omits fields
    - every section is OPTIONAL
    - output_dir and database.path MUST always exist
    """

    # -------------------------------------------------
    # 1. Load user config (if provided)
    # -------------------------------------------------
    user_config = {}

    if path:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f) or {}

        if not isinstance(user_config, dict):
            raise ValueError("Config file must contain a YAML dictionary")

    # -------------------------------------------------
    # 2. Merge with defaults
    # -------------------------------------------------
    config = copy.deepcopy(DEFAULT_CONFIG)

    for key, value in user_config.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value

    # -------------------------------------------------
    # 3. Enforce required invariants
    # -------------------------------------------------
    config.setdefault("output_dir", "exports")
    config.setdefault("metadata", {})

    if not isinstance(config.get("database"), dict):
        config["database"] = {}
    config["database"].setdefault("path", DEFAULT_CONFIG["database"]["path"])

    # -------------------------------------------------
    # 4. Typed engine config
    # -------------------------------------------------
    config["engine"] = load_engine_config(config)

    return config
