"""
Facet transforms.

A transform maps a raw record value to a canonical value in two steps:

    parse(raw)       raw -> canonical value of the facet's own type
    transform(value) canonical value -> (possibly coarser) canonical value

`to_canonical(raw)` chains both. Both steps are total and return MISSING
for anything they cannot handle.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from .misval import MISSING
from .time_util import get_time_part
from .values import ISO8601, duration_as, to_datetime, to_duration, to_number

logger = logging.getLogger(__name__)


class Transform(ABC):
    """Contract shared by all facet transforms."""

    @property
    @abstractmethod
    def transformed_type(self) -> str:
        """Type of the facet after the transformation has been applied."""
        raise NotImplementedError()

    @abstractmethod
    def parse(self, raw: Any) -> Any:
        raise NotImplementedError()

    def transform(self, value: Any) -> Any:
        return value

    def to_canonical(self, raw: Any) -> Any:
        value = self.parse(raw)
        if value is MISSING:
            return MISSING
        return self.transform(value)

    def transformed_min(self, minval: Any) -> Any:
        return minval

    def transformed_max(self, maxval: Any) -> Any:
        return maxval

    def to_dict(self) -> Dict[str, Any]:
        return {}


# -------------------------------------------------------------------------
# Categorial
# -------------------------------------------------------------------------
@dataclass
class Rule:
    """Maps every raw value equal to `expression` to the category `group`."""
    expression: str
    group: str
    count: int = 0


class CategorialTransform(Transform):
    """
    Ordered list of (expression -> group) rules.

    Counts are occurrence statistics from the last scan; they are summed when
    categories of several datasets are merged.
    """

    def __init__(self, rules: Optional[List[Rule]] = None):
        self.rules: List[Rule] = list(rules or [])

    @property
    def transformed_type(self) -> str:
        return "categorial"

    def reset(self) -> None:
        self.rules.clear()

    def add_rule(self, expression: Any, group: Any = None, count: int = 0) -> Rule:
        rule = Rule(
            expression=str(expression),
            group=str(expression if group is None else group),
            count=max(int(count), 0),
        )
        self.rules.append(rule)
        return rule

    def get_rule(self, expression: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.expression == expression:
                return rule
        return None

    def parse(self, raw: Any) -> Any:
        if raw is None or raw is MISSING:
            return MISSING
        if isinstance(raw, (list, tuple)):
            values = [str(r) for r in raw if r is not None and r is not MISSING]
            return values if values else MISSING
        return str(raw)

    def _lookup(self, value: str) -> Any:
        for rule in self.rules:
            if rule.expression == value:
                return rule.group
        return MISSING

    def transform(self, value: Any) -> Any:
        if isinstance(value, list):
            groups = []
            for v in value:
                group = self._lookup(v)
                if group is not MISSING and group not in groups:
                    groups.append(group)
            return groups if groups else MISSING
        return self._lookup(value)

    def transformed_min(self, minval: Any) -> Any:
        return None

    def transformed_max(self, maxval: Any) -> Any:
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"rules": [asdict(r) for r in self.rules]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CategorialTransform:
        transform = cls()
        for raw in data.get("rules", []):
            transform.add_rule(raw.get("expression"), raw.get("group"), raw.get("count", 0))
        return transform


# -------------------------------------------------------------------------
# Continuous
# -------------------------------------------------------------------------
class ContinuousTransform(Transform):
    """
    Numbers, optionally mapped onto their percentile rank.

    mode:
    - 'none': identity
    - 'percentiles': linear interpolation over the 101 stored percentiles, giving [0, 100]
    """

    MODES = ("none", "percentiles")

    def __init__(self, mode: str = "none", percentiles: Optional[List[float]] = None):
        if mode not in self.MODES:
            raise ValueError(f"Unknown continuous transform mode '{mode}'")
        self.mode = mode
        self.percentiles: List[float] = list(percentiles or [])

    @property
    def transformed_type(self) -> str:
        return "continuous"

    @property
    def uses_percentiles(self) -> bool:
        return self.mode == "percentiles" and len(self.percentiles) == 101

    def parse(self, raw: Any) -> Any:
        return to_number(raw)

    def transform(self, value: Any) -> Any:
        if value is MISSING:
            return MISSING
        if self.uses_percentiles:
            return float(np.interp(value, self.percentiles, np.arange(101)))
        return value

    def transformed_min(self, minval: Any) -> Any:
        if self.uses_percentiles:
            return 0.0
        return minval

    def transformed_max(self, maxval: Any) -> Any:
        if self.uses_percentiles:
            return 100.0
        return maxval

    def to_dict(self) -> Dict[str, Any]:
        return {"mode": self.mode, "percentiles": list(self.percentiles)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ContinuousTransform:
        return cls(
            mode=data.get("mode", "none"),
            percentiles=[float(p) for p in data.get("percentiles", [])],
        )


# -------------------------------------------------------------------------
# Datetime
# -------------------------------------------------------------------------
class DatetimeTransform(Transform):
    """
    Datetimes with timezones.

    The outcome of `transform` is picked by precedence:
    1) transformed_reference set:        datetime -> duration (value - reference)
    2) transformed_format not ISO8601:   datetime -> time part (see time_util.TIME_PARTS)
    3) otherwise:                        datetime -> datetime
    """

    def __init__(
        self,
        zone: str = ISO8601,
        format: str = ISO8601,
        transformed_format: str = ISO8601,
        transformed_reference: Optional[str] = None,
        transformed_zone: str = ISO8601,
    ):
        self.zone = zone
        self.format = format
        self.transformed_format = transformed_format
        self.transformed_reference = transformed_reference
        self.transformed_zone = transformed_zone

    @property
    def reference(self) -> Any:
        if not self.transformed_reference:
            return None
        ref = to_datetime(self.transformed_reference, self.transformed_zone)
        if ref is MISSING:
            logger.error(
                "Invalid datetime reference",
                extra={"reference": self.transformed_reference},
            )
            return None
        return ref

    @property
    def time_part(self):
        if self.transformed_format == ISO8601:
            return None
        return get_time_part(self.transformed_format)

    @property
    def transformed_type(self) -> str:
        if self.transformed_reference:
            return "duration"
        part = self.time_part
        if part is not None:
            return part.type
        return "datetime"

    def parse(self, raw: Any) -> Any:
        return to_datetime(raw, self.zone, self.format)

    def transform(self, value: Any) -> Any:
        if value is MISSING:
            return MISSING

        reference = self.reference
        if reference is not None:
            return value - reference

        part = self.time_part
        if part is not None:
            return part.extract(value)
        return value

    def _transformed_bound(self, bound: Any, fixed: Optional[int]) -> Any:
        if self.transformed_type in ("datetime", "duration"):
            return None if bound is None else self.transform(bound)
        part = self.time_part
        if part.calculate:
            return None if bound is None else self.transform(bound)
        return None if fixed is None else float(fixed)

    def transformed_min(self, minval: Any) -> Any:
        part = self.time_part
        return self._transformed_bound(minval, part.min if part else None)

    def transformed_max(self, maxval: Any) -> Any:
        part = self.time_part
        return self._transformed_bound(maxval, part.max if part else None)

    @property
    def categories(self) -> List[str]:
        """Fixed category labels when reduced to a categorial time part."""
        part = self.time_part
        if part is None or part.type != "categorial":
            return []
        return list(part.groups)

    def reset(self) -> None:
        self.zone = ISO8601
        self.transformed_format = ISO8601
        self.transformed_reference = None
        self.transformed_zone = ISO8601

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zone": self.zone,
            "format": self.format,
            "transformedFormat": self.transformed_format,
            "transformedReference": self.transformed_reference,
            "transformedZone": self.transformed_zone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DatetimeTransform:
        return cls(
            zone=data.get("zone", ISO8601),
            format=data.get("format", ISO8601),
            transformed_format=data.get("transformedFormat", ISO8601),
            transformed_reference=data.get("transformedReference"),
            transformed_zone=data.get("transformedZone", ISO8601),
        )


# -------------------------------------------------------------------------
# Duration
# -------------------------------------------------------------------------
class DurationTransform(Transform):
    """
    Durations, the mirror image of DatetimeTransform.

    Precedence:
    1) transformed_reference set:  duration -> datetime (reference + value)
    2) transformed_units set:      duration -> number of transformed_units
    3) otherwise:                  duration -> duration
    """

    def __init__(
        self,
        units: str = "seconds",
        transformed_units: Optional[str] = None,
        transformed_reference: Optional[str] = None,
        transformed_zone: str = ISO8601,
    ):
        self.units = units
        self.transformed_units = transformed_units
        self.transformed_reference = transformed_reference
        self.transformed_zone = transformed_zone

    @property
    def reference(self) -> Any:
        if not self.transformed_reference:
            return None
        ref = to_datetime(self.transformed_reference, self.transformed_zone)
        return None if ref is MISSING else ref

    @property
    def transformed_type(self) -> str:
        if self.transformed_reference:
            return "datetime"
        if self.transformed_units:
            return "continuous"
        return "duration"

    def parse(self, raw: Any) -> Any:
        return to_duration(raw, self.units)

    def transform(self, value: Any) -> Any:
        if value is MISSING:
            return MISSING

        reference = self.reference
        if reference is not None:
            return reference + value
        if self.transformed_units:
            try:
                return duration_as(value, self.transformed_units)
            except KeyError:
                logger.error("Unknown duration units", extra={"units": self.transformed_units})
                return MISSING
        return value

    def transformed_min(self, minval: Any) -> Any:
        return None if minval is None else self.transform(minval)

    def transformed_max(self, maxval: Any) -> Any:
        return None if maxval is None else self.transform(maxval)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "units": self.units,
            "transformedUnits": self.transformed_units,
            "transformedReference": self.transformed_reference,
            "transformedZone": self.transformed_zone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DurationTransform:
        return cls(
            units=data.get("units", "seconds"),
            transformed_units=data.get("transformedUnits"),
            transformed_reference=data.get("transformedReference"),
            transformed_zone=data.get("transformedZone", ISO8601),
        )


# -------------------------------------------------------------------------
# Text / constant
# -------------------------------------------------------------------------
class TextTransform(Transform):
    """Free text and constant facets: values pass through as strings."""

    def __init__(self, kind: str = "text"):
        self.kind = kind

    @property
    def transformed_type(self) -> str:
        return self.kind

    def parse(self, raw: Any) -> Any:
        if raw is None or raw is MISSING:
            return MISSING
        text = str(raw)
        return text if text else MISSING

    def transformed_min(self, minval: Any) -> Any:
        return None

    def transformed_max(self, maxval: Any) -> Any:
        return None
