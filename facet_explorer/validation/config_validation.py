from __future__ import annotations

import pandas as pd

from facet_explorer.config.model import LOG_FORMATS, SESSION_TYPES, SessionConfig
from facet_explorer.core.values import resolve_zone
from facet_explorer.validation.errors import ValidationIssue, ValidationError


def _is_known_zone(zone: str) -> bool:
    try:
        pd.Timestamp(0, tz=resolve_zone(zone))
    except (KeyError, ValueError, TypeError):
        return False
    return True


def validate_session_config(config: SessionConfig) -> None:
    """
    Validate a SessionConfig before a session is built from it.
    Collects every problem, then raises one ValidationError.
    """
    issues: list[ValidationIssue] = []

    if config.session_type not in SESSION_TYPES:
        issues.append(ValidationIssue(
            "SESSION_TYPE",
            f"session_type must be one of {', '.join(SESSION_TYPES)}, got '{config.session_type}'.",
        ))

    if config.session_type == "server" and not config.address:
        issues.append(ValidationIssue("ADDRESS", "A server session needs an address."))

    if not isinstance(config.is_locked_down, bool):
        issues.append(ValidationIssue("LOCKED_DOWN", "is_locked_down must be true or false."))

    if not isinstance(config.default_zone, str) or not _is_known_zone(config.default_zone):
        issues.append(ValidationIssue("ZONE", f"Unknown timezone '{config.default_zone}'."))

    if config.log_format not in LOG_FORMATS:
        issues.append(ValidationIssue(
            "LOG_FORMAT",
            f"log_format must be one of {', '.join(LOG_FORMATS)}, got '{config.log_format}'.",
        ))

    if issues:
        raise ValidationError(issues)
