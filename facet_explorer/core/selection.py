"""
Selections

Turns user picks into a partition's `selected` state, and `selected` into an
inclusion predicate over canonical values.

For categorial selections (categorial, constant and text partitions) the
following rules are used by update_selection():
1. none selected:
   add the group to the selection
2. one selected and the group is the same:
   invert the selection
3. one selected and the group is different:
   add the group to the selection
4. more than one selected and the group is in the selection:
   remove the group from the selection
5. more than one selected and the group is not in the selection:
   add the group to the selection
Afterwards, when every group is selected the selection is cleared: an empty
selection is the one and only way to say "no filter".

For ranges (continuous, datetime and duration partitions):
1. no range selected:
   set the range equal to that of the group
2. a range selected and the group is outside the selection:
   extend the selection to include the group
3. a range selected and the group is inside the selection:
   move the endpoint closest to the group to that of the group
"""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, List

from .misval import MISSING

logger = logging.getLogger(__name__)

CATEGORIAL_TYPES = ("categorial", "constant", "text")
RANGE_TYPES = ("continuous", "datetime", "duration")

Predicate = Callable[[Any], bool]


def _field(group: Any, name: str) -> Any:
    if isinstance(group, dict):
        return group.get(name)
    return getattr(group, name, None)


def accept_all(value: Any) -> bool:
    return True


# -------------------------------------------------------------------------
# Updating
# -------------------------------------------------------------------------
def update_selection(partition: Any, group: Any) -> None:
    """Update `partition.selected` with a picked group (a Group or a dict with value/min/max)."""
    if partition.type in CATEGORIAL_TYPES:
        _update_categorial(partition, group)
    elif partition.type in RANGE_TYPES:
        _update_range(partition, group)
    else:
        logger.error(
            "Cannot update selection",
            extra={"partition": getattr(partition, "id", None), "type": partition.type},
        )


def _update_categorial(partition: Any, group: Any) -> None:
    selected: List[Any] = list(partition.selected)
    value = _field(group, "value")
    all_values = [g.value for g in partition.groups]

    if len(selected) == 0:
        selected.append(value)
    elif len(selected) == 1:
        if selected[0] == value:
            selected = [v for v in all_values if v != value]
        else:
            selected.append(value)
    else:
        if value in selected:
            selected.remove(value)
        else:
            selected.append(value)

    if len(selected) == len(all_values):
        selected = []

    partition.selected = selected


def _distance(a: Any, b: Any, log_scale: bool) -> Any:
    if log_scale and a > 0 and b > 0:
        return abs(math.log(a) - math.log(b))
    return abs(a - b)


def _update_range(partition: Any, group: Any) -> None:
    gmin = _field(group, "min")
    gmax = _field(group, "max")
    if gmin is None or gmax is None:
        logger.error("Group without range", extra={"partition": getattr(partition, "id", None)})
        return

    if len(partition.selected) < 2:
        partition.selected = [gmin, gmax]
        return

    lo, hi = partition.selected[0], partition.selected[1]

    if gmin >= hi:
        # clicked outside to the right of the selection
        hi = gmax
    elif gmax <= lo:
        # clicked outside to the left of the selection
        lo = gmin
    else:
        log_scale = bool(getattr(partition, "is_log_scale", False))
        d1 = _distance(lo, gmin, log_scale)
        d2 = _distance(hi, gmax, log_scale)
        if d1 < d2:
            lo = gmin
        else:
            hi = gmax

    partition.selected = [lo, hi]


# -------------------------------------------------------------------------
# Filter functions
# -------------------------------------------------------------------------
def filter_function(partition: Any) -> Predicate:
    """Compile the current selection into a predicate over canonical values."""
    if partition.type in CATEGORIAL_TYPES:
        return _categorial_filter(partition)
    if partition.type in RANGE_TYPES:
        return _range_filter(partition)

    logger.error(
        "Cannot make filter function for partition",
        extra={"partition": getattr(partition, "id", None), "type": partition.type},
    )
    return accept_all


def _categorial_filter(partition: Any) -> Predicate:
    if not partition.selected:
        return accept_all

    haystack = set(partition.selected)

    def predicate(d: Any) -> bool:
        if d is MISSING:
            return False
        needles = d if isinstance(d, (list, tuple)) else [d]
        try:
            return any(needle in haystack for needle in needles)
        except TypeError:
            return False

    return predicate


def _range_filter(partition: Any) -> Predicate:
    if len(partition.selected) < 2:
        return accept_all

    lo, hi = partition.selected[0], partition.selected[1]
    edge = partition.edge

    # lo <= d < hi, closed at the domain's upper edge
    def predicate(d: Any) -> bool:
        if d is MISSING or d is None:
            return False
        try:
            return bool((lo <= d < hi) or (d == edge and hi == edge))
        except TypeError:
            return False

    return predicate
