"""
Aggregates and the group-by computation behind Filter.data.

Rows of Filter.data are dicts:

    {"a": <group value of the first partition>, "b": <second partition>, ...,
     "count": <number of records>, "aa": <first aggregate>, "bb": <second aggregate>, ...}
"""
from __future__ import annotations

import logging
import string
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from .misval import MISSING
from .values import to_number

logger = logging.getLogger(__name__)

OPERATIONS = ("count", "avg", "sum", "min", "max")

_PANDAS_OPERATIONS = {
    "count": "count",
    "avg": "mean",
    "sum": "sum",
    "min": "min",
    "max": "max",
}


def partition_column(i: int) -> str:
    """Column name for the i-th (0-based) partition: a, b, c, ..."""
    return string.ascii_lowercase[i]


def aggregate_column(i: int) -> str:
    """Column name for the i-th (0-based) aggregate: aa, bb, cc, ..."""
    return string.ascii_lowercase[i] * 2


@dataclass
class Aggregate:
    """
    An aggregation over one facet, computed per group of a Filter.
    """
    facet_name: str
    operation: str = "count"
    rank: int = 1
    label: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if self.operation not in OPERATIONS:
            raise ValueError(f"Unknown aggregate operation '{self.operation}'")

    def rotate_operation(self) -> str:
        """Cycle count -> avg -> sum -> min -> max -> count."""
        i = (OPERATIONS.index(self.operation) + 1) % len(OPERATIONS)
        self.operation = OPERATIONS[i]
        return self.operation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "facetName": self.facet_name,
            "operation": self.operation,
            "rank": self.rank,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Aggregate:
        kwargs = dict(
            facet_name=data["facetName"],
            operation=data.get("operation", "count"),
            rank=data.get("rank", 1),
            label=data.get("label", ""),
        )
        if data.get("id"):
            kwargs["id"] = data["id"]
        return cls(**kwargs)


class AggregateCollection:
    """The aggregates of a Filter, kept sorted by rank."""

    def __init__(self) -> None:
        self._aggregates: List[Aggregate] = []

    def __iter__(self) -> Iterator[Aggregate]:
        return iter(self._aggregates)

    def __len__(self) -> int:
        return len(self._aggregates)

    def add(self, aggregate: Aggregate) -> Aggregate:
        self._aggregates.append(aggregate)
        self._aggregates.sort(key=lambda a: a.rank)
        return aggregate

    def remove(self, aggregate: Aggregate) -> None:
        self._aggregates = [a for a in self._aggregates if a is not aggregate]

    def reset(self) -> None:
        self._aggregates.clear()


def _numeric(value: Any) -> float:
    number = to_number(value)
    return np.nan if number is MISSING else number


def compute_filter_data(
    records: Sequence[Dict[str, Any]],
    partitions: Sequence[Any],
    aggregates: Sequence[Aggregate],
) -> List[Dict[str, Any]]:
    """
    Group `records` by the partitions' groups and compute the aggregates.

    Records whose value falls outside every group (or is MISSING) on any
    partition are left out. A list-valued record is counted in each of its groups.
    """
    part_cols = [partition_column(i) for i in range(len(partitions))]
    agg_cols = [aggregate_column(i) for i in range(len(aggregates))]

    columns: Dict[str, List[Any]] = {c: [] for c in part_cols + agg_cols}
    for record in records:
        for col, partition in zip(part_cols, partitions):
            value = record.get(partition.facet_name, MISSING)
            if isinstance(value, (list, tuple)):
                groups = [partition.group_of(v) for v in value]
                columns[col].append([g.value for g in groups if g is not None] or None)
            else:
                group = partition.group_of(value)
                columns[col].append(None if group is None else group.value)
        for col, aggregate in zip(agg_cols, aggregates):
            columns[col].append(_numeric(record.get(aggregate.facet_name, MISSING)))

    frame = pd.DataFrame(columns, columns=part_cols + agg_cols, index=range(len(records)))
    frame["count"] = 1

    for col in part_cols:
        frame = frame.explode(col, ignore_index=True)
    if part_cols:
        frame = frame.dropna(subset=part_cols)

    if frame.empty:
        return []

    agg_spec: Dict[str, Any] = {"count": "sum"}
    for col, aggregate in zip(agg_cols, aggregates):
        agg_spec[col] = _PANDAS_OPERATIONS[aggregate.operation]

    if part_cols:
        result = frame.groupby(part_cols, sort=True).agg(agg_spec).reset_index()
    else:
        result = frame.agg(agg_spec).to_frame().T

    rows = []
    for row in result.to_dict("records"):
        out: Dict[str, Any] = {col: row[col] for col in part_cols}
        out["count"] = int(row["count"])
        for col in agg_cols:
            value = row[col]
            out[col] = None if pd.isna(value) else float(value)
        rows.append(out)
    return rows
