from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from facet_explorer.config.model import SessionConfig
from facet_explorer.core.aggregate import partition_column
from facet_explorer.core.dataset import Dataset, DatasetCollection, create_dataset
from facet_explorer.core.dataview import Dataview
from facet_explorer.core.facet import Facet
from facet_explorer.core.filter import Filter
from facet_explorer.core.group import Group
from facet_explorer.core.partition import Partition
from facet_explorer.core.transforms import CategorialTransform, DurationTransform
from facet_explorer.drivers import messages
from facet_explorer.drivers.base import Driver
from facet_explorer.drivers.client import ClientDriver
from facet_explorer.drivers.registry import DriverRegistry, default_registry

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Facet reconciliation
# -------------------------------------------------------------------------
def merged_facet(facet: Facet) -> Facet:
    """Dataview facet for a dataset facet: carries the transformed type and units."""
    units = facet.units
    if facet.is_duration and facet.duration_transform.transformed_units:
        units = facet.duration_transform.transformed_units

    merged = Facet(
        name=facet.name,
        type=facet.transformed_type,
        units=units,
        description=facet.description,
    )
    if merged.is_duration:
        merged.duration_transform = DurationTransform(units=units or "seconds")
    return merged


def _widen(facet: Facet, minval: Any, maxval: Any) -> None:
    if minval is not None and (facet.minval is None or minval < facet.minval):
        facet.minval = minval
    if maxval is not None and (facet.maxval is None or maxval > facet.maxval):
        facet.maxval = maxval


def merge_facet_metadata(facet: Facet, datasets: List[Dataset]) -> None:
    """
    Recompute a dataview facet from the active datasets' facets of the same name:
    min/max as their union (first seeds, later ones only widen), categorial
    rules as their union with counts summed per expression.
    """
    sources = [d.facets[facet.name] for d in datasets if facet.name in d.facets and d.facets[facet.name].is_active]

    if facet.is_ordered:
        facet.minval = None
        facet.maxval = None
        for source in sources:
            _widen(facet, source.transformed_min, source.transformed_max)

    if facet.is_categorial:
        transform = CategorialTransform()
        for source in sources:
            if source.is_categorial:
                for rule in source.categorial_transform.rules:
                    existing = transform.get_rule(rule.expression)
                    if existing is None:
                        transform.add_rule(rule.expression, rule.group, rule.count)
                    else:
                        existing.count += rule.count
            else:
                # categorial time part: the fixed labels
                for label in source.categories:
                    if transform.get_rule(label) is None:
                        transform.add_rule(label, label, 0)
        facet.categorial_transform = transform


class Session:
    """
    One exploration session: the datasets, the merged Dataview, and the driver
    doing the work.

    The driver is picked once from `config.session_type` via the registry,
    unless one is injected.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        transport: Any = None,
        driver: Optional[Driver] = None,
        registry: Optional[DriverRegistry] = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.datasets = DatasetCollection()

        if driver is None:
            registry = registry or default_registry()
            driver = registry.create(
                self.config.session_type,
                datasets=self.datasets,
                is_locked_down=self.config.is_locked_down,
                transport=transport,
            )
        self.driver = driver
        self.dataview = Dataview(driver, default_zone=self.config.default_zone)

        logger.info(
            "Session created",
            extra={"session_type": self.config.session_type, "driver": type(driver).__name__},
        )

    @property
    def is_client(self) -> bool:
        return isinstance(self.driver, ClientDriver)

    @property
    def is_connected(self) -> bool:
        return self.driver.is_connected

    @property
    def is_locked_down(self) -> bool:
        return self.driver.is_locked_down

    def connect(self) -> None:
        self.driver.connect()
        logger.info("Connected", extra={"connected": self.driver.is_connected})

    def disconnect(self) -> None:
        """Drop the connection; pending requests fail, nothing is retried."""
        self.driver.disconnect()
        logger.warning("Disconnected")

    # -------------------------------------------------------------------------
    # Datasets
    # -------------------------------------------------------------------------
    def add_dataset(self, **attrs: Any) -> Dataset:
        """
        Add a dataset; `dataset_type` ('client', 'server', 'generic') picks the variant.
        """
        return self.datasets.add(create_dataset(attrs))

    async def scan(self, dataset: Dataset) -> Dataset:
        await self.driver.scan(dataset)
        return dataset

    async def set_min_max(self, dataset: Dataset, facet: Facet) -> None:
        await self.driver.set_min_max(dataset, facet)

    async def set_categories(self, dataset: Dataset, facet: Facet) -> None:
        await self.driver.set_categories(dataset, facet)

    async def set_percentiles(self, dataset: Dataset, facet: Facet) -> None:
        await self.driver.set_percentiles(dataset, facet)

    async def toggle_dataset(self, dataset: Dataset) -> Dataset:
        """
        Activate an inactive dataset, or deactivate an active one, and bring the
        Dataview (facets, records, ranges, categories, filters) up to date.
        """
        activating = not dataset.is_active
        dataview = self.dataview

        filters = dataview.release_filters()

        if activating:
            for facet in dataset.active_facets:
                if facet.name not in dataview.facets:
                    dataview.facets.add(merged_facet(facet))
            if self.is_client:
                self.driver.merge_records(dataview, dataset)
        elif self.is_client:
            self.driver.unmerge_records(dataview, dataset)

        dataset.is_active = activating
        active = self.datasets.active()

        if not activating:
            # shared facets stay while another active dataset still provides them
            for facet in dataset.active_facets:
                if not any(facet.name in d.facets and d.facets[facet.name].is_active for d in active):
                    dataview.facets.remove(facet.name)

        dataview.dataset_ids = [d.id for d in active]
        dataview.database_table = "|".join(d.database_table for d in active if d.database_table)

        for facet in dataview.facets.values():
            merge_facet_metadata(facet, active)

        dataview.init_filters()
        logger.info(
            "Toggled dataset",
            extra={"dataset": dataset.name, "active": activating, "n_filters": len(filters)},
        )

        if self.is_client:
            dataview.data_total = dataview.index.size()
            dataview.data_selected = dataview.index.count_selected()
        await dataview.get_data()
        return dataset

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------
    def add_filter(self, flt: Filter) -> Filter:
        return self.dataview.add_filter(flt)

    def remove_filter(self, flt: Filter) -> Optional[Filter]:
        return self.dataview.remove_filter(flt)

    def add_partition(self, flt: Filter, partition: Partition) -> Partition:
        return self.dataview.add_partition(flt, partition)

    async def select(self, flt: Filter, partition: Partition, group: Group) -> Optional[Dataview]:
        """Apply a user pick on one group and recompute the data."""
        partition.update_selection(group)
        self.dataview.update_filter(flt)
        return await self.dataview.get_data()

    async def reset_selection(self, flt: Filter) -> Optional[Dataview]:
        flt.reset_selection()
        self.dataview.update_filter(flt)
        return await self.dataview.get_data()

    # -------------------------------------------------------------------------
    # Server pushes
    # -------------------------------------------------------------------------
    def handle_message(self, event: str, payload: Mapping[str, Any]) -> None:
        """Apply a server push to the model, then let the driver complete waiting requests."""
        handler = self._handlers().get(event)
        if handler is None:
            logger.warning("Unknown server message", extra={"event": event})
            return

        handler(payload)
        self.driver.handle_response(event, payload)

    def _handlers(self) -> Dict[str, Any]:
        return {
            messages.SYNC_DATASETS: self._on_sync_datasets,
            messages.SYNC_DATAVIEW: self._on_sync_dataview,
            messages.SYNC_FACETS: self._on_sync_facets,
            messages.NEW_DATA: self._on_new_data,
            messages.NEW_META_DATA: self._on_new_meta_data,
        }

    def _on_sync_datasets(self, payload: Mapping[str, Any]) -> None:
        self.datasets.reset([create_dataset(raw) for raw in payload.get("data", [])])
        logger.debug("Synced datasets", extra={"n_datasets": len(self.datasets)})

    def _on_sync_dataview(self, payload: Mapping[str, Any]) -> None:
        self.dataview.load_dict(payload.get("data", {}))

    def _on_sync_facets(self, payload: Mapping[str, Any]) -> None:
        dataset = self.datasets.get(payload.get("datasetId"))
        if dataset is None:
            logger.warning("Facets for unknown dataset", extra={"dataset_id": payload.get("datasetId")})
            return
        dataset.facets.reset([Facet.from_dict(raw) for raw in payload.get("data", [])])

    def _on_new_data(self, payload: Mapping[str, Any]) -> None:
        flt = self.dataview.filters.get(payload.get("filterId"))
        if flt is None:
            logger.debug("Data for unknown filter", extra={"filter": payload.get("filterId")})
            return

        rows = list(payload.get("data", []))
        for i, partition in enumerate(flt.partitions):
            if partition.type == "text":
                partition.set_text_groups(rows, partition_column(i))
        flt.data = rows

    def _on_new_meta_data(self, payload: Mapping[str, Any]) -> None:
        self.dataview.data_total = payload.get("dataTotal", 0)
        self.dataview.data_selected = payload.get("dataSelected", 0)
