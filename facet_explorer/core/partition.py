"""
Partition

Describes a partitioning of the data, based on the values a Facet can take.

The ordered list of groups is derived state: it is rebuilt from scratch
whenever one of its inputs (type, grouping strategy/parameter, range, zone,
ordering, category snapshot) is written, and never patched in place.
"""
from __future__ import annotations

import bisect
import logging
import math
import uuid
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from . import selection
from .exceptions import FacetLookupError
from .facet import Facet, resolve_facet
from .group import Group, order_groups
from .misval import MISSING
from .time_util import (
    DATETIME_UNITS,
    DURATION_RESOLUTIONS,
    add_unit,
    datetime_resolution,
    duration_resolution,
    start_of,
)
from .values import parse_bound, to_jsonable

logger = logging.getLogger(__name__)

PARTITION_TYPES = ("constant", "continuous", "categorial", "datetime", "duration", "text")
ORDERED_TYPES = ("continuous", "datetime", "duration")
GROUPING_CONTINUOUS = ("fixedn", "fixedsc", "fixeds", "log")
GROUPING_DATETIME = ("auto",) + tuple(DATETIME_UNITS)

# Hard caps on generated bins, protecting against mis-scanned ranges
MAX_DATETIME_GROUPS = 500
MAX_DURATION_GROUPS = 500

# Writing any of these invalidates the derived groups
_GROUP_DEPS = frozenset({
    "type",
    "grouping_continuous",
    "grouping_param",
    "grouping_datetime",
    "minval",
    "maxval",
    "zone",
    "ordering",
    "categories",
})


def format_label(x: float) -> str:
    """Five significant digits, keeping trailing zeros."""
    return format(x, "#.5g")


# -------------------------------------------------------------------------
# Grouping strategies
# -------------------------------------------------------------------------
def continuous_groups(partition: Partition) -> List[Group]:
    """
    Bins for a continuous partition, following `grouping_continuous`:

    - fixedn:  `grouping_param` equal bins spanning [minval, maxval]
    - fixeds:  bins of size `grouping_param`, edges on multiples of the size
    - fixedsc: as fixeds, but shifted half a bin so a bin is centered on zero
    - log:     `grouping_param` bins equally sized in log10 space
    """
    lo, hi, param = partition.minval, partition.maxval, partition.grouping_param
    strategy = partition.grouping_continuous

    if lo is None or hi is None:
        return []
    if param is None or param <= 0:
        logger.error(
            "Grouping parameter must be positive",
            extra={"partition": partition.id, "grouping_param": param},
        )
        return []
    if hi < lo:
        logger.error("Partition range is inverted", extra={"partition": partition.id})
        return []

    if strategy == "fixedn":
        nbins = int(param)
        if nbins < 1:
            logger.error("Need at least one bin", extra={"partition": partition.id})
            return []
        if lo == hi:
            return [Group(value=lo, label=format_label(lo), min=lo, max=hi)]
        size = (hi - lo) / nbins
        edges = [lo + i * size for i in range(nbins)] + [hi]

    elif strategy in ("fixeds", "fixedsc"):
        size = float(param)
        shift = 0.5 if strategy == "fixedsc" else 0.0
        x0 = (math.floor(lo / size) - shift) * size
        x1 = (math.ceil(hi / size) + shift) * size
        nbins = max(int(round((x1 - x0) / size)), 1)
        edges = [x0 + i * size for i in range(nbins + 1)]

    elif strategy == "log":
        nbins = int(param)
        if lo <= 0:
            logger.error(
                "Logarithmic grouping needs a positive range",
                extra={"partition": partition.id, "minval": lo},
            )
            return []
        if nbins < 1:
            logger.error("Need at least one bin", extra={"partition": partition.id})
            return []
        if lo == hi:
            return [Group(value=lo, label=format_label(hi), min=lo, max=hi)]
        x0, x1 = math.log10(lo), math.log10(hi)
        size = (x1 - x0) / nbins
        edges = [lo] + [10.0 ** (x0 + i * size) for i in range(1, nbins)] + [hi]
        return [
            Group(value=start, label=format_label(end), min=start, max=end)
            for start, end in zip(edges[:-1], edges[1:])
        ]

    else:
        logger.error(
            "Unknown continuous grouping",
            extra={"partition": partition.id, "grouping_continuous": strategy},
        )
        return []

    groups = []
    for start, end in zip(edges[:-1], edges[1:]):
        mid = 0.5 * (start + end)
        groups.append(Group(value=mid, label=format_label(mid), min=start, max=end))
    return groups


def datetime_groups(partition: Partition) -> List[Group]:
    """
    Walk from minval to maxval in steps of one time unit, with unit boundaries
    taken in the partition's timezone. The first bin starts at minval.
    """
    lo, hi = partition.minval, partition.maxval
    if lo is None or hi is None:
        return []

    unit = partition.grouping_datetime
    if unit == "auto":
        unit = datetime_resolution(lo, hi)
    if unit not in DATETIME_UNITS:
        logger.error("Unknown datetime grouping", extra={"partition": partition.id, "unit": unit})
        return []

    groups: List[Group] = []
    current = start_of(lo, unit, partition.zone)
    while current <= hi and len(groups) < MAX_DATETIME_GROUPS:
        nxt = start_of(add_unit(current, unit), unit, partition.zone)
        if nxt <= current:
            break
        gmin = lo if current < lo else current
        groups.append(Group(value=gmin, label=current.isoformat(), min=gmin, max=nxt))
        current = nxt

    if current <= hi:
        logger.warning(
            "Datetime partition truncated",
            extra={"partition": partition.id, "max_groups": MAX_DATETIME_GROUPS, "unit": unit},
        )
    return groups


def duration_groups(partition: Partition) -> List[Group]:
    """Integer steps of an automatically chosen duration resolution."""
    lo, hi = partition.minval, partition.maxval
    if lo is None or hi is None:
        return []

    unit = duration_resolution(lo, hi)
    res = DURATION_RESOLUTIONS[unit]

    current = math.floor(lo / res)
    last = math.floor(hi / res)

    groups: List[Group] = []
    while current <= last and len(groups) < MAX_DURATION_GROUPS:
        gmin = current * res
        value = lo if gmin < lo else gmin
        groups.append(Group(value=value, label=gmin.isoformat(), min=gmin, max=(current + 1) * res))
        current += 1

    if current <= last:
        logger.warning(
            "Duration partition truncated",
            extra={"partition": partition.id, "max_groups": MAX_DURATION_GROUPS, "unit": unit},
        )
    return groups


def categorial_groups(partition: Partition) -> List[Group]:
    return [Group(value=value, label=str(value), count=count) for value, count in partition.categories]


def category_snapshot(facet: Facet) -> List[Tuple[str, float]]:
    """
    (group, count) pairs for the categories of a facet, merging rules that map
    onto the same group.
    """
    if facet.is_categorial:
        counts: Dict[str, float] = {}
        for rule in facet.categorial_transform.rules:
            counts[rule.group] = counts.get(rule.group, 0) + rule.count
        return list(counts.items())
    return [(label, 0) for label in facet.categories]


# -------------------------------------------------------------------------
# Partition
# -------------------------------------------------------------------------
class Partition:
    """
    A binning of one facet into ordered Groups, plus the current selection.

    Fields:

    - facet_name: the facet to partition over
    - rank: position of this partition within its Filter
    - type: one of PARTITION_TYPES, normally taken from the facet by reset()
    - minval / maxval: range for ordered types (transformed values)
    - grouping_param: number of bins (fixedn, log) or bin size (fixeds, fixedsc)
    - grouping_continuous: one of GROUPING_CONTINUOUS
    - grouping_datetime: one of GROUPING_DATETIME
    - zone: timezone for datetime bin boundaries; None until the dataview sets its default
    - ordering: 'value' or 'count'
    - selected: list of group values, or [lo, hi] for ordered types
    - categories: (value, count) snapshot of the facet's categories
    """

    def __init__(
        self,
        facet_name: str,
        rank: int = 1,
        type: str = "categorial",
        label: str = "",
        show_legend: bool = True,
        show_label: bool = True,
        zone: Optional[str] = None,
        ordering: str = "value",
        minval: Any = None,
        maxval: Any = None,
        grouping_param: float = 20,
        grouping_continuous: str = "fixedn",
        grouping_datetime: str = "auto",
        selected: Optional[List[Any]] = None,
        categories: Optional[Sequence[Tuple[str, float]]] = None,
        id: Optional[str] = None,
    ) -> None:
        self._groups: Optional[List[Group]] = None
        self._text_groups: List[Group] = []

        self.id = id or uuid.uuid4().hex
        self.facet_name = facet_name
        self.rank = rank
        self.type = type
        self.label = label
        self.show_legend = show_legend
        self.show_label = show_label
        self.zone = zone
        self.ordering = ordering
        self.minval = minval
        self.maxval = maxval
        self.grouping_param = grouping_param
        self.grouping_continuous = grouping_continuous
        self.grouping_datetime = grouping_datetime
        self.selected: List[Any] = list(selected or [])
        self.categories: List[Tuple[str, float]] = list(categories or [])

    def __setattr__(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)
        if name in _GROUP_DEPS:
            object.__setattr__(self, "_groups", None)

    def __repr__(self) -> str:
        return f"Partition(facet_name={self.facet_name!r}, type={self.type!r}, rank={self.rank})"

    # -------------------------------------------------------------------------
    # Type helpers
    # -------------------------------------------------------------------------
    @property
    def is_ordered(self) -> bool:
        return self.type in ORDERED_TYPES

    @property
    def is_log_scale(self) -> bool:
        return self.type == "continuous" and self.grouping_continuous == "log"

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------
    @property
    def groups(self) -> List[Group]:
        """The ordered groups of this partition, rebuilt when stale."""
        if self._groups is None:
            self._groups = order_groups(self._build_groups(), self.ordering)
        return self._groups

    def _build_groups(self) -> List[Group]:
        if self.type in ("categorial", "constant"):
            return categorial_groups(self)
        if self.type == "continuous":
            return continuous_groups(self)
        if self.type == "datetime":
            return datetime_groups(self)
        if self.type == "duration":
            return duration_groups(self)
        if self.type == "text":
            return list(self._text_groups)

        logger.error("Cannot set groups for partition", extra={"partition": self.id, "type": self.type})
        return []

    def set_text_groups(self, rows: Sequence[Mapping[str, Any]], column: str) -> None:
        """
        Text partitions receive their groups from query results: one group per
        row, counted by the first aggregate (or the row count).
        """
        groups = []
        for row in rows:
            value = row.get(column)
            if value is None or value is MISSING:
                continue
            count = row.get("aa") or row.get("count") or 0
            groups.append(Group(value=value, label=str(value), min=0, max=100, count=float(count)))
        self._text_groups = groups
        self._groups = None

    @property
    def edge(self) -> Any:
        """The absolute upper edge of the partition's domain."""
        maxima = [g.max for g in self.groups if g.max is not None]
        if maxima:
            return max(maxima)
        return self.maxval

    def group_of(self, value: Any) -> Optional[Group]:
        """
        Return the group a canonical value falls into, or None.
        Ordered bins are half-open, except the last one which includes the edge.
        """
        if value is MISSING or value is None:
            return None

        groups = self.groups
        if not groups:
            return None

        if not self.is_ordered:
            for group in groups:
                if group.value == value:
                    return group
            return None

        bins = sorted(groups, key=lambda g: g.min)
        try:
            idx = bisect.bisect_right([g.min for g in bins], value) - 1
            if idx < 0:
                return None
            group = bins[idx]
            if value < group.max or value == self.edge:
                return group
        except TypeError:
            logger.debug("Value of wrong kind for partition", extra={"partition": self.id})
        return None

    # -------------------------------------------------------------------------
    # Facet synchronisation
    # -------------------------------------------------------------------------
    def reset(self, facets: Mapping[str, Facet]) -> None:
        """
        Reset type, minimum and maximum values (and categories) from the facet.
        Leaves the partition untouched when the facet cannot be found.
        """
        try:
            facet = resolve_facet(facets, self.facet_name)
        except FacetLookupError:
            logger.error(
                "Cannot locate facet for this partition",
                extra={"partition": self.id, "facet": self.facet_name},
            )
            return

        self.type = facet.transformed_type
        self.minval = facet.transformed_min
        self.maxval = facet.transformed_max
        self.categories = category_snapshot(facet)

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------
    def update_selection(self, group: Group) -> None:
        selection.update_selection(self, group)

    def filter_function(self):
        return selection.filter_function(self)

    def reset_selection(self) -> None:
        self.selected = []

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "facetName": self.facet_name,
            "rank": self.rank,
            "type": self.type,
            "label": self.label,
            "showLegend": self.show_legend,
            "showLabel": self.show_label,
            "zone": self.zone,
            "ordering": self.ordering,
            "minval": to_jsonable(self.minval),
            "maxval": to_jsonable(self.maxval),
            "groupingParam": self.grouping_param,
            "groupingContinuous": self.grouping_continuous,
            "groupingDatetime": self.grouping_datetime,
            "selected": to_jsonable(self.selected),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Partition:
        partition_type = data.get("type", "categorial")
        selected = data.get("selected", [])
        if partition_type in ORDERED_TYPES:
            selected = [parse_bound(v, partition_type) for v in selected]
            if any(v is None for v in selected):
                selected = []

        return cls(
            id=data.get("id"),
            facet_name=data["facetName"],
            rank=data.get("rank", 1),
            type=partition_type,
            label=data.get("label", ""),
            show_legend=data.get("showLegend", True),
            show_label=data.get("showLabel", True),
            zone=data.get("zone"),
            ordering=data.get("ordering", "value"),
            minval=parse_bound(data.get("minval"), partition_type),
            maxval=parse_bound(data.get("maxval"), partition_type),
            grouping_param=data.get("groupingParam", 20),
            grouping_continuous=data.get("groupingContinuous", "fixedn"),
            grouping_datetime=data.get("groupingDatetime", "auto"),
            selected=selected,
        )


class PartitionCollection:
    """
    The partitions of a Filter, kept sorted by rank.
    Adding a partition resets it from its facet.
    """

    def __init__(self) -> None:
        self._partitions: List[Partition] = []

    def __iter__(self) -> Iterator[Partition]:
        return iter(self._partitions)

    def __len__(self) -> int:
        return len(self._partitions)

    def __getitem__(self, i: int) -> Partition:
        return self._partitions[i]

    def add(self, partition: Partition, facets: Mapping[str, Facet]) -> Partition:
        self._partitions.append(partition)
        self._partitions.sort(key=lambda p: p.rank)
        partition.reset(facets)
        return partition

    def remove(self, partition: Partition) -> None:
        self._partitions = [p for p in self._partitions if p is not partition]

    def get_by_rank(self, rank: int) -> Optional[Partition]:
        for partition in self._partitions:
            if partition.rank == rank:
                return partition
        return None

    def reset(self) -> None:
        self._partitions.clear()
