from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Literal, Mapping

from pydantic import BaseModel, ConfigDict, field_validator

ENV_PREFIX = "SQLASSEMBLY_"


class BuilderSettings(BaseModel):
    exclude_aliases: bool = False
    named_placeholder_prefix: str = "dcValue"
    default_order_direction: Literal["ASC", "DESC"] = "ASC"

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("named_placeholder_prefix")
    @classmethod
    def validate_prefix(cls, value: str) -> str:
        value = value.strip().lstrip(":")
        if not value.isidentifier():
            raise ValueError("named_placeholder_prefix must be an identifier, e.g. dcValue")
        return value

    @field_validator("default_order_direction", mode="before")
    @classmethod
    def upper_direction(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value


def _settings_table(path: Path) -> Dict[str, Any]:
    """Read a dedicated settings file or the ``[tool.sqlassembly]`` table of a pyproject."""
    with path.open("rb") as f:
        data = tomllib.load(f)
    table = data.get("tool", {}).get("sqlassembly")
    if isinstance(table, dict):
        data = table
    return {key: value for key, value in data.items() if key in BuilderSettings.model_fields}


def _settings_from_env(environ: Mapping[str, str]) -> Dict[str, str]:
    # One variable per field: SQLASSEMBLY_EXCLUDE_ALIASES, SQLASSEMBLY_NAMED_PLACEHOLDER_PREFIX, ...
    found: Dict[str, str] = {}
    for field in BuilderSettings.model_fields:
        value = environ.get(ENV_PREFIX + field.upper())
        if value is not None:
            found[field] = value
    return found


def load_settings(
    *,
    config_path: Path | None = None,
    overrides: Dict[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> BuilderSettings:
    """Layer a TOML file, ``SQLASSEMBLY_*`` variables and overrides over the defaults."""
    layers = []
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found at {config_path}")
        layers.append(_settings_table(path))
    layers.append(_settings_from_env(os.environ if environ is None else environ))
    layers.append(dict(overrides or {}))

    merged: Dict[str, Any] = {}
    for layer in layers:
        merged.update(layer)
    return BuilderSettings(**merged)


__all__ = ["BuilderSettings", "ENV_PREFIX", "load_settings"]
