from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .facet import Facet, FacetCollection
from .filter import Filter, FilterCollection
from .index import FrameIndex
from .partition import Partition
from .values import DEFAULT_ZONE

if TYPE_CHECKING:
    from facet_explorer.drivers.base import Driver

logger = logging.getLogger(__name__)


class Dataview:
    """
    The merged, currently active union of Datasets.

    Fields:

    - facets: merged facets (transformed types) of the active datasets
    - filters: the linked views on the merged records
    - dataset_ids / database_table: the active datasets (server mode)
    - data_total / data_selected: record counts from the last get_data()
    - index: merged filtering index (client mode), owned by the dataview
    - default_zone: timezone given to partitions added without one

    The driver is injected once, at construction.
    """

    def __init__(self, driver: Driver, id: Optional[str] = None, default_zone: str = DEFAULT_ZONE) -> None:
        self.id = id or uuid.uuid4().hex
        self.driver = driver
        self.facets = FacetCollection()
        self.filters = FilterCollection()
        self.dataset_ids: List[str] = []
        self.database_table = ""
        self.data_total = 0
        self.data_selected = 0
        self.is_paused = False
        self.index = FrameIndex()
        self.default_zone = default_zone

    def __repr__(self) -> str:
        return f"Dataview(facets={list(self.facets)}, filters={len(self.filters)})"

    # -------------------------------------------------------------------------
    # Batching
    # -------------------------------------------------------------------------
    def pause(self) -> None:
        self.is_paused = True

    def play(self) -> None:
        """Resume; does not recompute by itself, call get_data() afterwards."""
        self.is_paused = False

    async def get_data(self) -> Optional[Dataview]:
        """
        Recompute the data of every filter and the record counts.
        Returns None, without contacting the driver, while paused.
        """
        if self.is_paused:
            logger.debug("Dataview paused, skipping get_data", extra={"dataview": self.id})
            return None
        await self.driver.get_data(self)
        return self

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------
    def _set_default_zone(self, partition: Partition) -> None:
        if partition.zone is None:
            partition.zone = self.default_zone

    def add_filter(self, flt: Filter) -> Filter:
        for partition in flt.partitions:
            self._set_default_zone(partition)
            partition.reset(self.facets)
        self.filters.add(flt)
        self.driver.init_data_filter(self, flt)
        return flt

    def remove_filter(self, flt: Filter) -> Optional[Filter]:
        if flt not in self.filters:
            return None
        self.driver.release_data_filter(flt)
        return self.filters.remove(flt)

    def add_partition(self, flt: Filter, partition: Partition) -> Partition:
        """Add a partition to one of the filters, re-keying it with the driver."""
        self._set_default_zone(partition)
        flt.add_partition(partition, self.facets)
        if flt in self.filters:
            self.driver.update_data_filter(flt)
        return partition

    def update_filter(self, flt: Filter) -> None:
        """Push the filter's current selection to the driver."""
        self.driver.update_data_filter(flt)

    def release_filters(self) -> List[Filter]:
        filters = list(self.filters)
        for flt in filters:
            self.driver.release_data_filter(flt)
        return filters

    def init_filters(self) -> None:
        """Reset every partition from the facets and reinstall the filters."""
        for flt in self.filters:
            for partition in flt.partitions:
                self._set_default_zone(partition)
                partition.reset(self.facets)
            self.driver.init_data_filter(self, flt)

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "datasetIds": list(self.dataset_ids),
            "databaseTable": self.database_table,
            "dataTotal": self.data_total,
            "dataSelected": self.data_selected,
            "facets": self.facets.to_list(),
            "filters": self.filters.to_list(),
        }

    def load_dict(self, data: Dict[str, Any]) -> None:
        """
        Replace the state of this dataview with a serialised one
        (e.g. a syncDataview push). Existing filters are released first.
        """
        self.release_filters()

        self.id = data.get("id", self.id)
        self.dataset_ids = list(data.get("datasetIds", []))
        self.database_table = data.get("databaseTable", "")
        self.data_total = data.get("dataTotal", 0)
        self.data_selected = data.get("dataSelected", 0)
        self.facets.reset([Facet.from_dict(f) for f in data.get("facets", [])])

        self.filters.reset()
        for raw in data.get("filters", []):
            self.add_filter(Filter.from_dict(raw, self.facets))
