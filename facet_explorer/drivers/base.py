from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping, Optional

if TYPE_CHECKING:
    from facet_explorer.core.dataset import Dataset
    from facet_explorer.core.dataview import Dataview
    from facet_explorer.core.facet import Facet
    from facet_explorer.core.filter import Filter


class Driver(ABC):
    """
    Backend that scans datasets and computes filter data.

    Subclasses must define a unique `session_type`, used by the DriverRegistry.

    Metadata operations and get_data are coroutines; the filter bookkeeping
    operations are synchronous.
    """

    session_type: str = ""

    def __init__(
        self,
        datasets: Optional[Mapping[str, Dataset]] = None,
        is_locked_down: bool = False,
        transport: Any = None,
    ) -> None:
        self.datasets = datasets if datasets is not None else {}
        self.is_locked_down = is_locked_down
        self.transport = transport
        self.is_connected = False

    def connect(self) -> None:
        self.is_connected = True

    def disconnect(self) -> None:
        self.is_connected = False

    # Dataset metadata
    @abstractmethod
    async def scan(self, dataset: Dataset) -> None:
        ...

    @abstractmethod
    async def set_min_max(self, dataset: Dataset, facet: Facet) -> None:
        ...

    @abstractmethod
    async def set_categories(self, dataset: Dataset, facet: Facet) -> None:
        ...

    @abstractmethod
    async def set_percentiles(self, dataset: Dataset, facet: Facet) -> None:
        ...

    # Filters
    @abstractmethod
    def init_data_filter(self, dataview: Dataview, flt: Filter) -> None:
        ...

    @abstractmethod
    def release_data_filter(self, flt: Filter) -> None:
        ...

    @abstractmethod
    def update_data_filter(self, flt: Filter) -> None:
        ...

    @abstractmethod
    async def get_data(self, dataview: Dataview) -> None:
        ...

    def handle_response(self, event: str, payload: Mapping[str, Any]) -> None:
        """Called by the session for every server push; only the server driver cares."""
        return None
