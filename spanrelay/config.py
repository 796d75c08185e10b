"""Configuration loading: explicit overrides > environment > TOML file > defaults."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from spanrelay.context.propagators import BUILTIN_CODECS
from spanrelay.errors import ConfigError

CONFIG_FILE_NAME = "spanrelay.toml"


class TracerSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Start root spans instead of children of the active span
    ignore_active_span: bool = False


class PropagationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    formats: List[str] = Field(default_factory=lambda: list(BUILTIN_CODECS))
    text_map_prefix: str = "ot-"
    state_keys: List[str] = Field(default_factory=lambda: ["sampling.priority"])

    @field_validator("formats")
    @classmethod
    def _known_formats(cls, value: List[str]) -> List[str]:
        unknown = [name for name in value if name not in BUILTIN_CODECS]
        if unknown:
            raise ValueError(
                f"unknown propagation formats {unknown}; built-in formats are {sorted(BUILTIN_CODECS)}"
            )
        return value

    @field_validator("text_map_prefix")
    @classmethod
    def _non_empty_prefix(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text_map_prefix must not be empty")
        return value


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    debug: bool = False
    log_spans: bool = False


class SpanRelayConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tracer: TracerSettings = Field(default_factory=TracerSettings)
    propagation: PropagationSettings = Field(default_factory=PropagationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# env var -> (section, key, parser)
ENV_VARS = {
    "SPANRELAY_IGNORE_ACTIVE_SPAN": ("tracer", "ignore_active_span", str),
    "SPANRELAY_FORMATS": ("propagation", "formats", _split_list),
    "SPANRELAY_TEXT_MAP_PREFIX": ("propagation", "text_map_prefix", str),
    "SPANRELAY_STATE_KEYS": ("propagation", "state_keys", _split_list),
    "SPANRELAY_DEBUG": ("logging", "debug", str),
    "SPANRELAY_LOG_SPANS": ("logging", "log_spans", str),
}


def find_config_file() -> Optional[str]:
    """Look for spanrelay.toml in the current directory, then ~/.spanrelay.toml."""
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / f".{CONFIG_FILE_NAME}",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file.

    Returns an empty dict when the file does not exist.

    Raises:
        ConfigError: if the file is not valid TOML
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}", {"error": str(exc)}) from exc


def load_env_config() -> Dict[str, Any]:
    """Collect SPANRELAY_* environment variables into the nested config shape."""
    loaded: Dict[str, Any] = {}
    for env_name, (section, key, parse) in ENV_VARS.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        loaded.setdefault(section, {})[key] = parse(raw)
    return loaded


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SpanRelayConfig:
    """
    Build the effective configuration.

    Raises:
        ConfigError: if the file is unreadable or the merged values are invalid
    """
    path = config_file or find_config_file()
    data = load_toml_config(path) if path else {}
    data = _merge(data, load_env_config())
    data = _merge(data, overrides or {})
    try:
        return SpanRelayConfig.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise ConfigError("Invalid spanrelay configuration", {"errors": problems}) from exc


def validate_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Tuple[bool, str, Optional[SpanRelayConfig]]:
    """Return (is_valid, message, config) without raising."""
    try:
        config = load_config(config_file=config_file, overrides=overrides)
    except ConfigError as exc:
        return False, str(exc), None
    return True, "Configuration is valid", config
