"""
Core domain layer: canonical values, facets and their transforms,
partitions and selections, filters, datasets and the merged dataview
"""

from .aggregate import Aggregate
from .dataset import ClientDataset, Dataset, DatasetCollection, GenericDataset, ServerDataset, create_dataset
from .dataview import Dataview
from .facet import Facet, FacetCollection
from .filter import Filter
from .group import Group
from .misval import MISSING
from .partition import Partition

__all__ = [
    "Aggregate",
    "ClientDataset",
    "Dataset",
    "DatasetCollection",
    "Dataview",
    "Facet",
    "FacetCollection",
    "Filter",
    "GenericDataset",
    "Group",
    "MISSING",
    "Partition",
    "ServerDataset",
    "create_dataset",
]
