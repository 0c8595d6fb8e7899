"""
In-memory multidimensional filtering index.

A small crossfilter-like index: records are plain dicts, every Dimension keeps
the key of each record and a boolean mask of the records its current
predicate accepts. A record is selected when every dimension accepts it.

Datasets and the Dataview each own one FrameIndex. Anything exposing the same
add/remove/size/dimension API can be injected instead.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

KeyFn = Callable[[Dict[str, Any]], Any]
Predicate = Callable[[Any], bool]


class Dimension:
    """One filterable view on the records of a FrameIndex."""

    def __init__(self, index: FrameIndex, key_fn: KeyFn):
        self._index = index
        self._key_fn = key_fn
        self._predicate: Optional[Predicate] = None
        self._keys = pd.Series([key_fn(r) for r in index.all()], dtype=object)
        self._mask = np.ones(len(self._keys), dtype=bool)

    @property
    def keys(self) -> pd.Series:
        return self._keys

    @property
    def mask(self) -> np.ndarray:
        return self._mask

    @property
    def is_filtered(self) -> bool:
        return self._predicate is not None

    def _evaluate(self, keys: pd.Series) -> np.ndarray:
        if self._predicate is None:
            return np.ones(len(keys), dtype=bool)
        return np.fromiter((bool(self._predicate(k)) for k in keys), dtype=bool, count=len(keys))

    def filter(self, predicate: Optional[Predicate]) -> Dimension:
        """Only accept records whose key passes `predicate`; None clears the filter."""
        self._predicate = predicate
        self._mask = self._evaluate(self._keys)
        return self

    def filter_exact(self, value: Any) -> Dimension:
        return self.filter(lambda k: k == value)

    def filter_all(self) -> Dimension:
        return self.filter(None)

    def dispose(self) -> None:
        self._index._detach(self)

    # Called by the owning index
    def _append(self, records: List[Dict[str, Any]]) -> None:
        new_keys = pd.Series([self._key_fn(r) for r in records], dtype=object)
        self._keys = pd.concat([self._keys, new_keys], ignore_index=True)
        self._mask = np.concatenate([self._mask, self._evaluate(new_keys)])

    def _keep(self, keep: np.ndarray) -> None:
        self._keys = self._keys[keep].reset_index(drop=True)
        self._mask = self._mask[keep]


class FrameIndex:
    """
    Records plus any number of dimensions.

    - add(records): append records; existing dimension filters apply to them
    - remove(): drop every record currently selected by all dimensions
    - size(): number of records
    - dimension(key_fn): new Dimension keyed by key_fn(record)
    """

    def __init__(self, records: Optional[Iterable[Dict[str, Any]]] = None):
        self._records: List[Dict[str, Any]] = []
        self._dimensions: List[Dimension] = []
        if records is not None:
            self.add(records)

    def add(self, records: Iterable[Dict[str, Any]]) -> None:
        batch = list(records)
        self._records.extend(batch)
        for dimension in self._dimensions:
            dimension._append(batch)

    def size(self) -> int:
        return len(self._records)

    def all(self) -> List[Dict[str, Any]]:
        return list(self._records)

    def dimension(self, key_fn: KeyFn) -> Dimension:
        dimension = Dimension(self, key_fn)
        self._dimensions.append(dimension)
        return dimension

    def _detach(self, dimension: Dimension) -> None:
        self._dimensions = [d for d in self._dimensions if d is not dimension]

    def selection_mask(self, exclude: Optional[Dimension] = None) -> np.ndarray:
        """Records accepted by every dimension (optionally ignoring one of them)."""
        mask = np.ones(len(self._records), dtype=bool)
        for dimension in self._dimensions:
            if dimension is exclude:
                continue
            mask &= dimension.mask
        return mask

    def selected(self, exclude: Optional[Dimension] = None) -> List[Dict[str, Any]]:
        mask = self.selection_mask(exclude)
        return [r for r, keep in zip(self._records, mask) if keep]

    def count_selected(self) -> int:
        return int(self.selection_mask().sum())

    def remove(self) -> int:
        """Remove the currently selected records; returns how many were removed."""
        remove = self.selection_mask()
        keep = ~remove

        self._records = [r for r, k in zip(self._records, keep) if k]
        for dimension in self._dimensions:
            dimension._keep(keep)

        removed = int(remove.sum())
        logger.debug("Removed records from index", extra={"removed": removed, "remaining": len(self._records)})
        return removed

    def clear(self) -> None:
        drop = np.zeros(len(self._records), dtype=bool)
        self._records = []
        for dimension in self._dimensions:
            dimension._keep(drop)
