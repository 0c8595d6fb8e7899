from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from facet_explorer.config.model import SessionConfig
from facet_explorer.core.exceptions import ConfigError
from facet_explorer.validation import config_validation

logger = logging.getLogger(__name__)

# environment variable -> SessionConfig field
ENV_OVERRIDES = {
    "FACET_EXPLORER_SESSION_TYPE": "session_type",
    "FACET_EXPLORER_ADDRESS": "address",
    "FACET_EXPLORER_LOCKED_DOWN": "is_locked_down",
    "FACET_EXPLORER_ZONE": "default_zone",
    "FACET_EXPLORER_LOG_FORMAT": "log_format",
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _parse_bool(name: str, value: str) -> bool:
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{value}'")


def _read_file(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"File not found at {path}")

    try:
        with path.open() as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return raw


def load_session_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SessionConfig:
    """
    Load the session configuration.

    Selection order per field:
        1) environment variable (FACET_EXPLORER_*)
        2) value in the JSON file at `path`, if given
        3) SessionConfig default

    :param path: optional JSON file with SessionConfig fields
    :param environ: mapping to read overrides from, defaults to os.environ
    :return: a validated SessionConfig
    :raises ConfigError: if the file is missing, not JSON, or holds a bad boolean
    :raises ValidationError: if the resulting config is invalid
    """
    environ = os.environ if environ is None else environ

    raw: Dict[str, Any] = {}
    if path is not None:
        logger.info("Loading session config", extra={"config_path": str(path)})
        raw = _read_file(Path(path))

    for name, field in ENV_OVERRIDES.items():
        if name not in environ:
            continue
        value: Any = environ[name]
        if field == "is_locked_down":
            value = _parse_bool(name, value)
        elif field == "log_format":
            value = value.lower()
        raw[field] = value

    config = SessionConfig.from_raw(raw)
    config_validation.validate_session_config(config)

    logger.info(
        "Session config loaded",
        extra={"session_type": config.session_type, "locked_down": config.is_locked_down},
    )
    return config
