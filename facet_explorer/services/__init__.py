"""
Service layer: the Session that ties datasets, the dataview and a driver together
"""

from .session import Session

__all__ = ["Session"]
