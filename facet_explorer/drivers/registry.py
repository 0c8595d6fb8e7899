from __future__ import annotations

from typing import Any, Dict, List, Type

from .base import Driver
from .client import ClientDriver
from .server import ServerDriver


class DriverRegistry:
    """
    Registry for driver classes, keyed by session type

    Purpose:
    - A session picks its driver once, at construction, from the configured session type
    - Call sites never branch on the session type themselves

    Design Notes:
    - Stores subclasses of {@link Driver}, not instances
    - Enforces:
        * only {@link Driver} subclasses can be registered
        * each 'session_type' is unique across the registry
    """

    def __init__(self) -> None:
        self._drivers: Dict[str, Type[Driver]] = {}

    def register(self, driver_cls: Type[Driver]) -> None:
        """
        Register a {@link Driver} subclass

        :param driver_cls: the subclass of {@link Driver}

        Raises:
            TypeError: if driver_cls is not a subclass of {@link Driver}
            ValueError: if a driver for the same session type already exists
        """
        if not isinstance(driver_cls, type) or not issubclass(driver_cls, Driver):
            raise TypeError(f"Driver '{driver_cls!r}' must be a subclass of Driver")

        if driver_cls.session_type in self._drivers:
            raise ValueError(f"Driver for session type '{driver_cls.session_type}' already registered")

        self._drivers[driver_cls.session_type] = driver_cls

    def create(self, session_type: str, **kwargs: Any) -> Driver:
        """
        Instantiate the driver registered for session_type
        :param session_type: 'client' or 'server' for the default registry
        :param kwargs: passed to the driver constructor (datasets, is_locked_down, transport)
        :return: the instantiated driver

        Raises:
            KeyError: if no driver is registered for the session type
        """
        try:
            cls = self._drivers[session_type]
        except KeyError:
            raise KeyError(f"No driver for session type '{session_type}'")
        return cls(**kwargs)

    def session_types(self) -> List[str]:
        return list(self._drivers)


def default_registry() -> DriverRegistry:
    registry = DriverRegistry()
    registry.register(ClientDriver)
    registry.register(ServerDriver)
    return registry
