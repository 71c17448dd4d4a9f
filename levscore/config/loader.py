from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    ArticleColumnMapping,
    DatabaseConfig,
    ImportConfig,
    ImportLimits,
    ScoringThresholds,
)

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/levscore.yml``)
- Validate it against the JSON schema shipped next to this module
- Apply defaults and build the frozen dataclasses from ``models.config_models``
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "build_config",
]

DEFAULT_CONFIG_PATH = Path("config/levscore.yml")
SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the data
            violates it (missing keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def build_config(data: dict[str, Any]) -> ImportConfig:
    """Validate a parsed config mapping and build ImportConfig from it."""
    _validate_config_schema(data)

    raw_mapping = data.get("raw_mapping")
    return ImportConfig(
        organization_id=data["organization_id"],
        uploader=data["uploader"],
        source_directory=data["source_directory"],
        mode=data.get("mode", "scored"),
        full_refresh=data.get("full_refresh", False),
        derive_missing_fields=data.get("derive_missing_fields", True),
        limits=ImportLimits(**data.get("limits", {})),
        scoring=ScoringThresholds(**data.get("scoring", {})),
        raw_mapping=ArticleColumnMapping(**raw_mapping) if raw_mapping else None,
        database=DatabaseConfig(**data.get("database", {})),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return build_config(data)
