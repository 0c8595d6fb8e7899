from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

from pythonjsonlogger import jsonlogger

if TYPE_CHECKING:
    from facet_explorer.config.model import SessionConfig

LOG_FORMAT_ENV = "FACET_EXPLORER_LOG_FORMAT"

_PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _select_format(force_format: Optional[str], config: Optional[SessionConfig]) -> str:
    if force_format is not None:
        return force_format.lower()
    if config is not None:
        return config.log_format.lower()
    return os.getenv(LOG_FORMAT_ENV, "json").lower()


def configure_logging(
        level: int = logging.INFO,
        force_format: Optional[str] = None,
        config: Optional[SessionConfig] = None,
) -> logging.Handler:
    """
    Configure the root logger for exploration sessions.

    JSON lines are the default, plain text is for local debugging. Context
    passed through `extra=` ends up as JSON keys.

    Selection order:
        1) force_format argument ("json" or "plain") if provided
        2) config.log_format, if a SessionConfig is given
        3) env var FACET_EXPLORER_LOG_FORMAT
        4) "json"

    :return: the installed handler
    """
    format_mode = _select_format(force_format, config)

    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()
    if format_mode == "plain":
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    else:
        handler.setFormatter(jsonlogger.JsonFormatter(_JSON_FIELDS, rename_fields={"levelname": "level"}))

    # one handler only, reconfiguring must not duplicate lines
    root.handlers.clear()
    root.addHandler(handler)
    return handler
