"""Configuration: defaults, an optional YAML file, then ``CHATWS_*`` environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CHATWS_"
DEFAULT_CONFIG_PATH = Path("~/.config/chat-workspace/config.yaml")

# YAML section -> {key in section: Settings field}
_SECTIONS: Mapping[str, Mapping[str, str]] = {
    "storage": {"db_path": "db_path"},
    "presence": {
        "root": "presence_root",
        "reconnect_debounce_seconds": "reconnect_debounce_seconds",
        "focus_debounce_seconds": "focus_debounce_seconds",
        "activity_debounce_seconds": "activity_debounce_seconds",
        "away_timeout_seconds": "away_timeout_seconds",
    },
    "search": {
        "fanout_limit": "search_fanout_limit",
        "user_batch_size": "user_batch_size",
        "guest_user_name": "guest_user_name",
    },
}


class Settings(BaseModel):
    """Runtime settings for presence timing, search fan-out and local storage."""

    db_path: Path = Field(default=Path.home() / ".chat-workspace" / "workspace.db")
    presence_root: str = "presence"
    reconnect_debounce_seconds: float = Field(default=1.0, ge=0)
    focus_debounce_seconds: float = Field(default=0.5, ge=0)
    activity_debounce_seconds: float = Field(default=1.0, ge=0)
    away_timeout_seconds: float = Field(default=30.0, gt=0)
    search_fanout_limit: int = Field(default=16, ge=1)
    user_batch_size: int = Field(default=10, ge=1)
    guest_user_name: str = "Guest"

    model_config = {"validate_assignment": True, "extra": "ignore"}

    @field_validator("db_path", mode="before")
    @classmethod
    def _coerce_db_path(cls, value: Any) -> Path:
        if not isinstance(value, (str, Path)):
            raise TypeError("db_path must be a path or string")
        return Path(value).expanduser()

    @field_validator("presence_root")
    @classmethod
    def _strip_presence_root(cls, value: str) -> str:
        stripped = value.strip("/")
        if not stripped:
            raise ValueError("presence_root must name a path segment")
        return stripped

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        data: dict[str, Any] = {}
        source = config_path(path)
        if source is not None and source.is_file():
            raw = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, Mapping):
                raise ValueError(f"{source} must contain a mapping")
            data.update(_fields_from_sections(raw))
        data.update(_fields_from_env(os.environ))
        return cls(**data)


def config_path(explicit: Path | None = None) -> Path | None:
    """Explicit path, then ``CHATWS_CONFIG``, then the default location if it exists."""
    if explicit is not None:
        return explicit.expanduser()
    from_env = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if from_env:
        return Path(from_env).expanduser()
    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.exists() else None


def _fields_from_sections(raw: Mapping[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in raw.items():
        section = _SECTIONS.get(key)
        if section is not None and isinstance(value, Mapping):
            fields.update({section[name]: item for name, item in value.items() if name in section})
        elif key in Settings.model_fields:
            # Flat keys are accepted at the top level too.
            fields[key] = value
    return fields


def _fields_from_env(environ: Mapping[str, str]) -> dict[str, str]:
    return {
        name: value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX) and (name := key[len(ENV_PREFIX) :].lower()) in Settings.model_fields
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings", "config_path"]
