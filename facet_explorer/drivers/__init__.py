"""
Drivers: the in-memory client driver, the remote server driver, and the
registry that picks one per session type
"""

from .base import Driver
from .client import ClientDriver
from .registry import DriverRegistry, default_registry
from .server import ServerDriver

__all__ = ["Driver", "ClientDriver", "ServerDriver", "DriverRegistry", "default_registry"]
