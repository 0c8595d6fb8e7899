from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

SESSION_TYPES = ("client", "server")
LOG_FORMATS = ("json", "plain")


@dataclass
class SessionConfig:
    """
    Settings of one exploration session.

    - session_type: 'client' (in-memory) or 'server' (remote store)
    - address: server URL, only used in server sessions
    - is_locked_down: send ids only, the server keeps the dataset state
    - default_zone: timezone for new datetime partitions
    - log_format: 'json' or 'plain'
    """

    session_type: str = "client"
    address: Optional[str] = None
    is_locked_down: bool = False
    default_zone: str = "UTC"
    log_format: str = "json"

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> SessionConfig:
        return cls(
            session_type=raw.get("session_type", "client"),
            address=raw.get("address"),
            is_locked_down=raw.get("is_locked_down", False),
            default_zone=raw.get("default_zone", "UTC"),
            log_format=raw.get("log_format", "json"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
