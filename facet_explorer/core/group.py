from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from .values import to_jsonable

logger = logging.getLogger(__name__)

ORDERINGS = ("value", "count")


@dataclass
class Group:
    """
    One bin of a Partition.

    For ordered partitions the bin covers [min, max); `value` is the
    representative value, `label` its display text. Categorial groups
    leave min/max unset.
    """
    value: Any
    label: str
    min: Any = None
    max: Any = None
    count: float = 0
    group_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min": to_jsonable(self.min),
            "max": to_jsonable(self.max),
            "value": to_jsonable(self.value),
            "label": self.label,
            "count": self.count,
            "groupIndex": self.group_index,
        }


def order_groups(groups: List[Group], ordering: str) -> List[Group]:
    """
    Sort groups in place and renumber `group_index`.

    - 'value': ascending value
    - 'count': descending count, ties by ascending value
    """
    if ordering == "value":
        groups.sort(key=lambda g: g.value)
    elif ordering == "count":
        groups.sort(key=lambda g: g.value)
        groups.sort(key=lambda g: g.count, reverse=True)
    else:
        logger.error("Ordering not implemented for partition", extra={"ordering": ordering})

    for i, group in enumerate(groups):
        group.group_index = i
    return groups
