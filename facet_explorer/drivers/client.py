"""
In-memory driver.

Datasets hold their records locally. Activating a dataset transforms its
records and adds them to the Dataview's FrameIndex, tagged with
ORIGINAL_DATASET_ID so they can be taken out again.

Each initialised Filter gets one Dimension on the Dataview index, keyed by the
tuple of the record's partition values. Filter data is computed from the
records accepted by every *other* filter.
"""
from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np
import pandas as pd

from facet_explorer.core.aggregate import compute_filter_data
from facet_explorer.core.dataset import Dataset
from facet_explorer.core.dataview import Dataview
from facet_explorer.core.facet import Facet
from facet_explorer.core.filter import Filter
from facet_explorer.core.index import Dimension, FrameIndex
from facet_explorer.core.misval import MISSING
from facet_explorer.core.values import ISO_DURATION, to_datetime, to_duration, to_number

from .base import Driver

logger = logging.getLogger(__name__)

ORIGINAL_DATASET_ID = "_OriginalDatasetId"

_ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?)?(Z|[+-]\d{2}:?\d{2})?$")


# -------------------------------------------------------------------------
# Type detection
# -------------------------------------------------------------------------
def _is_datetime(value: Any) -> bool:
    if isinstance(value, (pd.Timestamp, dt.datetime)):
        return True
    return isinstance(value, str) and bool(_ISO_DATETIME.match(value.strip())) and to_datetime(value) is not MISSING


def _is_duration(value: Any) -> bool:
    if isinstance(value, (pd.Timedelta, dt.timedelta)):
        return True
    return isinstance(value, str) and bool(ISO_DURATION.match(value.strip())) and to_duration(value) is not MISSING


def detect_type(values: List[Any]) -> str:
    """
    Guess the facet type from the non-missing raw values of one key:
    continuous, datetime, duration, otherwise categorial.
    """
    present = [v for v in values if v is not None and v is not MISSING]
    if not present:
        return "categorial"
    if all(not isinstance(v, str) and to_number(v) is not MISSING for v in present):
        return "continuous"
    if all(_is_datetime(v) for v in present):
        return "datetime"
    if all(_is_duration(v) for v in present):
        return "duration"
    if all(to_number(v) is not MISSING for v in present):
        return "continuous"
    return "categorial"


@dataclass
class _FilterDimension:
    index: FrameIndex
    dimension: Dimension
    facet_names: Tuple[str, ...]


class ClientDriver(Driver):
    session_type = "client"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._dimensions: Dict[str, _FilterDimension] = {}
        self.is_connected = True

    # -------------------------------------------------------------------------
    # Dataset metadata
    # -------------------------------------------------------------------------
    async def scan(self, dataset: Dataset) -> None:
        """Create a facet for every record key not yet known, then scan ranges and categories."""
        records = dataset.records
        keys: Dict[str, None] = {}
        for record in records:
            for key in record:
                keys.setdefault(key, None)

        for key in keys:
            if key in dataset.facets:
                continue
            facet_type = detect_type([r.get(key) for r in records])
            dataset.facets.add(Facet(name=key, type=facet_type))

        for facet in dataset.facets.values():
            await self.set_min_max(dataset, facet)
            await self.set_categories(dataset, facet)

        logger.info(
            "Scanned dataset",
            extra={"dataset": dataset.name, "n_records": len(records), "n_facets": len(dataset.facets)},
        )

    def _parsed(self, dataset: Dataset, facet: Facet) -> List[Any]:
        values = []
        for record in dataset.records:
            value = facet.parse(record)
            if value is MISSING:
                continue
            if isinstance(value, list):
                values.extend(value)
            else:
                values.append(value)
        return values

    async def set_min_max(self, dataset: Dataset, facet: Facet) -> None:
        if not facet.is_ordered:
            return

        values = self._parsed(dataset, facet)
        if not values:
            facet.minval = None
            facet.maxval = None
            return
        facet.minval = min(values)
        facet.maxval = max(values)

    async def set_categories(self, dataset: Dataset, facet: Facet) -> None:
        """
        Count every distinct value and rebuild the rules, sorted by expression.
        Groups of existing rules are kept.
        """
        if not facet.is_categorial:
            return

        counts: Dict[str, int] = {}
        for value in self._parsed(dataset, facet):
            counts[value] = counts.get(value, 0) + 1

        transform = facet.categorial_transform
        groups = {rule.expression: rule.group for rule in transform.rules}
        transform.reset()
        for expression in sorted(counts):
            transform.add_rule(expression, groups.get(expression, expression), counts[expression])

    async def set_percentiles(self, dataset: Dataset, facet: Facet) -> None:
        if not facet.is_continuous:
            return

        values = self._parsed(dataset, facet)
        if not values:
            facet.continuous_transform.percentiles = []
            return
        facet.continuous_transform.percentiles = [float(p) for p in np.percentile(values, np.arange(101))]

    # -------------------------------------------------------------------------
    # Merging
    # -------------------------------------------------------------------------
    def merge_records(self, dataview: Dataview, dataset: Dataset) -> int:
        """Add the transformed records of a dataset to the dataview index."""
        facets = dataset.active_facets
        batch = []
        for record in dataset.records:
            merged = {facet.name: facet.value(record) for facet in facets}
            merged[ORIGINAL_DATASET_ID] = dataset.id
            batch.append(merged)

        dataview.index.add(batch)
        logger.debug("Merged dataset records", extra={"dataset": dataset.name, "n_records": len(batch)})
        return len(batch)

    def unmerge_records(self, dataview: Dataview, dataset: Dataset) -> int:
        """
        Remove the records of a dataset from the dataview index.
        Filters must have been released so only the dataset dimension applies.
        """
        dimension = dataview.index.dimension(lambda r: r.get(ORIGINAL_DATASET_ID))
        dimension.filter_exact(dataset.id)
        removed = dataview.index.remove()
        dimension.dispose()
        return removed

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------
    def init_data_filter(self, dataview: Dataview, flt: Filter) -> None:
        if flt.id in self._dimensions:
            self.release_data_filter(flt)

        dimension = dataview.index.dimension(flt.key)
        dimension.filter(flt.filter_function())
        self._dimensions[flt.id] = _FilterDimension(dataview.index, dimension, tuple(flt.facet_names))

    def update_data_filter(self, flt: Filter) -> None:
        entry = self._dimensions.get(flt.id)
        if entry is None:
            logger.warning("Filter not initialised", extra={"filter": flt.id})
            return

        # partitions changed since init: rebuild the keys
        if tuple(flt.facet_names) != entry.facet_names:
            entry.dimension.dispose()
            entry.dimension = entry.index.dimension(flt.key)
            entry.facet_names = tuple(flt.facet_names)

        predicate = flt.filter_function()
        if predicate is None:
            entry.dimension.filter_all()
        else:
            entry.dimension.filter(predicate)

    def release_data_filter(self, flt: Filter) -> None:
        entry = self._dimensions.pop(flt.id, None)
        if entry is not None:
            entry.dimension.dispose()
        flt.data = []

    async def get_data(self, dataview: Dataview) -> None:
        for flt in dataview.filters:
            entry = self._dimensions.get(flt.id)
            if entry is None:
                continue
            records = dataview.index.selected(exclude=entry.dimension)
            flt.data = compute_filter_data(records, list(flt.partitions), list(flt.aggregates))

        dataview.data_total = dataview.index.size()
        dataview.data_selected = dataview.index.count_selected()
