from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Type

from .facet import Facet, FacetCollection
from .index import FrameIndex

logger = logging.getLogger(__name__)


class Dataset:
    """
    An independent source of records with its own facets.

    Includes:
    - metadata (name, url, description, database table for server datasets)
    - a FacetCollection filled by a driver scan
    - an exclusively owned FrameIndex over its records
    - `is_active`: whether the dataset is merged into the Dataview
    """

    dataset_type = "generic"

    def __init__(
        self,
        name: str = "Name",
        url: str = "URL",
        description: str = "Description",
        database_table: str = "",
        is_active: bool = False,
        facets: Optional[List[Facet]] = None,
        records: Optional[Iterable[Dict[str, Any]]] = None,
        id: Optional[str] = None,
    ) -> None:
        self.id = id or uuid.uuid4().hex
        self.name = name
        self.url = url
        self.description = description
        self.database_table = database_table
        self.is_active = is_active
        self.facets = FacetCollection(facets)
        self.index = FrameIndex(records)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, active={self.is_active})"

    @property
    def records(self) -> List[Dict[str, Any]]:
        return self.index.all()

    @records.setter
    def records(self, records: Iterable[Dict[str, Any]]) -> None:
        self.index = FrameIndex(records)

    @property
    def active_facets(self) -> List[Facet]:
        return [f for f in self.facets.values() if f.is_active]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "datasetType": self.dataset_type,
            "name": self.name,
            "URL": self.url,
            "description": self.description,
            "databaseTable": self.database_table,
            "isActive": self.is_active,
            "facets": self.facets.to_list(),
        }


class ClientDataset(Dataset):
    """Records held in memory; merged into the Dataview by the client driver."""
    dataset_type = "client"


class ServerDataset(Dataset):
    """Records live in a table of the remote store; only metadata is held here."""
    dataset_type = "server"


class GenericDataset(Dataset):
    dataset_type = "generic"


DATASET_VARIANTS: Dict[str, Type[Dataset]] = {
    cls.dataset_type: cls for cls in (ClientDataset, ServerDataset, GenericDataset)
}


def create_dataset(attrs: Dict[str, Any]) -> Dataset:
    """
    Build the Dataset variant named by the 'datasetType' (or 'dataset_type')
    discriminator; anything else gives a GenericDataset.

    Accepts both wire (camelCase) and python style keys.
    """
    dataset_type = attrs.get("datasetType", attrs.get("dataset_type", "generic"))
    cls = DATASET_VARIANTS.get(dataset_type, GenericDataset)
    logger.debug("Creating dataset", extra={"dataset_type": cls.dataset_type, "dataset": attrs.get("name")})

    facets = attrs.get("facets") or []
    return cls(
        id=attrs.get("id"),
        name=attrs.get("name", "Name"),
        url=attrs.get("URL", attrs.get("url", "URL")),
        description=attrs.get("description", "Description"),
        database_table=attrs.get("databaseTable", attrs.get("database_table", "")),
        is_active=bool(attrs.get("isActive", attrs.get("is_active", False))),
        facets=[f if isinstance(f, Facet) else Facet.from_dict(f) for f in facets],
        records=attrs.get("records", attrs.get("data")),
    )


class DatasetCollection(Mapping[str, Dataset]):
    """
    All datasets of a session, keyed by id, in insertion order.
    """

    def __init__(self) -> None:
        self._datasets: Dict[str, Dataset] = {}

    def __getitem__(self, dataset_id: str) -> Dataset:
        return self._datasets[dataset_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._datasets)

    def __len__(self) -> int:
        return len(self._datasets)

    def add(self, dataset: Dataset) -> Dataset:
        if dataset.id in self._datasets:
            raise ValueError(f"Dataset '{dataset.id}' already registered")
        self._datasets[dataset.id] = dataset
        return dataset

    def remove(self, dataset: Dataset) -> Optional[Dataset]:
        return self._datasets.pop(dataset.id, None)

    def reset(self, datasets: Optional[List[Dataset]] = None) -> None:
        self._datasets.clear()
        for dataset in datasets or []:
            self.add(dataset)

    def get_by_name(self, name: str) -> Optional[Dataset]:
        for dataset in self._datasets.values():
            if dataset.name == name:
                return dataset
        return None

    def active(self) -> List[Dataset]:
        return [d for d in self._datasets.values() if d.is_active]
