from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from .aggregate import Aggregate, AggregateCollection
from .facet import Facet
from .partition import Partition, PartitionCollection
from .selection import Predicate

logger = logging.getLogger(__name__)


class Filter:
    """
    A linked view on the Dataview: partitions to group by, aggregates to
    compute per group, and the resulting `data` rows.

    The filter's predicate accepts a record key (the tuple of the partition
    values of a record) when every partition's selection accepts its element.
    """

    def __init__(self, title: str = "", id: Optional[str] = None):
        self.id = id or uuid.uuid4().hex
        self.title = title
        self.partitions = PartitionCollection()
        self.aggregates = AggregateCollection()
        self.data: List[Dict[str, Any]] = []

    def __repr__(self) -> str:
        return f"Filter(id={self.id!r}, title={self.title!r})"

    def add_partition(self, partition: Partition, facets: Mapping[str, Facet]) -> Partition:
        return self.partitions.add(partition, facets)

    def add_aggregate(self, aggregate: Aggregate) -> Aggregate:
        return self.aggregates.add(aggregate)

    @property
    def facet_names(self) -> List[str]:
        return [p.facet_name for p in self.partitions]

    @property
    def has_selection(self) -> bool:
        return any(p.selected for p in self.partitions)

    def key(self, record: Mapping[str, Any]) -> tuple:
        """The record key used for this filter's dimension."""
        return tuple(record.get(name) for name in self.facet_names)

    def filter_function(self) -> Optional[Predicate]:
        """Predicate over record keys, or None when nothing is selected."""
        if not self.has_selection:
            return None

        functions: Sequence[Callable[[Any], bool]] = [p.filter_function() for p in self.partitions]

        def predicate(key: tuple) -> bool:
            return all(fn(k) for fn, k in zip(functions, key))

        return predicate

    def reset_selection(self) -> None:
        for partition in self.partitions:
            partition.reset_selection()

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "partitions": [p.to_dict() for p in self.partitions],
            "aggregates": [a.to_dict() for a in self.aggregates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], facets: Mapping[str, Facet]) -> Filter:
        """
        Rebuild a filter. Partitions whose facet is unknown keep their
        serialised type and range.
        """
        flt = cls(title=data.get("title", ""), id=data.get("id"))
        for raw in data.get("partitions", []):
            flt.partitions.add(Partition.from_dict(raw), facets)
        for raw in data.get("aggregates", []):
            flt.aggregates.add(Aggregate.from_dict(raw))
        return flt


class FilterCollection:
    """Filters of a Dataview, in insertion order."""

    def __init__(self) -> None:
        self._filters: Dict[str, Filter] = {}

    def __iter__(self) -> Iterator[Filter]:
        return iter(list(self._filters.values()))

    def __len__(self) -> int:
        return len(self._filters)

    def __contains__(self, flt: object) -> bool:
        return isinstance(flt, Filter) and flt.id in self._filters

    def add(self, flt: Filter) -> Filter:
        self._filters[flt.id] = flt
        return flt

    def remove(self, flt: Filter) -> Optional[Filter]:
        return self._filters.pop(flt.id, None)

    def get(self, filter_id: str) -> Optional[Filter]:
        return self._filters.get(filter_id)

    def reset(self, filters: Optional[List[Filter]] = None) -> None:
        self._filters.clear()
        for flt in filters or []:
            self.add(flt)

    def to_list(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in self._filters.values()]
