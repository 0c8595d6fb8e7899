"""
Config package for facet_explorer.

Responsible for:
- the session config model (SessionConfig)
- loading it from a JSON file and FACET_EXPLORER_* environment variables
"""

from .model import SessionConfig
from .loader import load_session_config

__all__ = ["SessionConfig", "load_session_config"]
