"""
Outgoing server messages.

Two encodings, picked by `is_locked_down`:
- full: the dataset (or all active datasets) is embedded in the payload
- id-only: only ids are sent, the server uses its cached state
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from facet_explorer.core.dataset import Dataset
from facet_explorer.core.dataview import Dataview
from facet_explorer.core.facet import Facet
from facet_explorer.core.values import to_jsonable

SCAN_DATA = "scanData"
SET_MIN_MAX = "setMinMax"
SET_CATEGORIES = "setCategories"
SET_PERCENTILES = "setPercentiles"
GET_DATA = "getData"

NEW_DATA = "newData"
NEW_META_DATA = "newMetaData"
SYNC_DATASETS = "syncDatasets"
SYNC_DATAVIEW = "syncDataview"
SYNC_FACETS = "syncFacets"

FACET_REQUESTS = (SET_MIN_MAX, SET_CATEGORIES, SET_PERCENTILES)


def scan_data(dataset: Dataset, is_locked_down: bool) -> Dict[str, Any]:
    if is_locked_down:
        return {"datasetId": dataset.id}
    return {"dataset": to_jsonable(dataset.to_dict())}


def facet_request(dataset: Dataset, facet: Facet, is_locked_down: bool) -> Dict[str, Any]:
    """Payload of setMinMax, setCategories and setPercentiles."""
    payload: Dict[str, Any] = {"datasetId": dataset.id, "facetId": facet.id}
    if not is_locked_down:
        payload["dataset"] = to_jsonable(dataset.to_dict())
    return payload


def get_data(dataview: Dataview, datasets: Iterable[Dataset], is_locked_down: bool) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"dataview": to_jsonable(dataview.to_dict())}
    if is_locked_down:
        payload["datasetIds"] = list(dataview.dataset_ids)
    else:
        payload["datasets"] = [to_jsonable(d.to_dict()) for d in datasets]
    return payload


def filter_ids(dataview: Dataview) -> List[str]:
    return [flt.id for flt in dataview.filters]
