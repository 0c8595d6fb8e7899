from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterator, List, Mapping, Optional

from .exceptions import FacetLookupError
from .misval import MISSING
from .transforms import (
    CategorialTransform,
    ContinuousTransform,
    DatetimeTransform,
    DurationTransform,
    TextTransform,
    Transform,
)
from .values import parse_bound, to_jsonable

logger = logging.getLogger(__name__)

FACET_TYPES = ("constant", "continuous", "categorial", "datetime", "duration", "text")


class Facet:
    """
    A named dimension of a Dataset (or of the merged Dataview).

    Owns one transform per facet kind; `transform` returns the one matching
    `type`. `minval` / `maxval` hold the scanned range in the facet's own
    (untransformed) representation.
    """

    def __init__(
        self,
        name: str,
        accessor: Optional[str] = None,
        type: str = "categorial",
        units: str = "",
        description: str = "",
        is_active: bool = True,
        minval: Any = None,
        maxval: Any = None,
        id: Optional[str] = None,
        categorial_transform: Optional[CategorialTransform] = None,
        continuous_transform: Optional[ContinuousTransform] = None,
        datetime_transform: Optional[DatetimeTransform] = None,
        duration_transform: Optional[DurationTransform] = None,
    ) -> None:
        self.id = id or uuid.uuid4().hex
        self.name = name
        self.accessor = accessor or name
        self.type = type
        self.units = units
        self.description = description
        self.is_active = is_active
        self.minval = minval
        self.maxval = maxval

        self.categorial_transform = categorial_transform or CategorialTransform()
        self.continuous_transform = continuous_transform or ContinuousTransform()
        self.datetime_transform = datetime_transform or DatetimeTransform()
        self.duration_transform = duration_transform or DurationTransform()

    def __repr__(self) -> str:
        return f"Facet(name={self.name!r}, type={self.type!r})"

    # -------------------------------------------------------------------------
    # Type helpers
    # -------------------------------------------------------------------------
    @property
    def is_continuous(self) -> bool:
        return self.type == "continuous"

    @property
    def is_categorial(self) -> bool:
        return self.type == "categorial"

    @property
    def is_datetime(self) -> bool:
        return self.type == "datetime"

    @property
    def is_duration(self) -> bool:
        return self.type == "duration"

    @property
    def is_ordered(self) -> bool:
        return self.type in ("continuous", "datetime", "duration")

    @property
    def transform(self) -> Transform:
        if self.is_categorial:
            return self.categorial_transform
        if self.is_continuous:
            return self.continuous_transform
        if self.is_datetime:
            return self.datetime_transform
        if self.is_duration:
            return self.duration_transform
        if self.type not in ("text", "constant"):
            logger.error("Unknown facet type, treating as text", extra={"facet": self.name, "type": self.type})
        return TextTransform(self.type if self.type == "constant" else "text")

    @property
    def transformed_type(self) -> str:
        return self.transform.transformed_type

    @property
    def transformed_min(self) -> Any:
        return self.transform.transformed_min(self.minval)

    @property
    def transformed_max(self) -> Any:
        return self.transform.transformed_max(self.maxval)

    @property
    def categories(self) -> List[str]:
        """Category labels after transformation (categorial facets, categorial time parts)."""
        if self.is_categorial:
            return [rule.group for rule in self.categorial_transform.rules]
        if self.is_datetime:
            return self.datetime_transform.categories
        return []

    # -------------------------------------------------------------------------
    # Record access
    # -------------------------------------------------------------------------
    def raw_value(self, record: Mapping[str, Any]) -> Any:
        """
        Look up the accessor in a record. Dotted accessors walk nested mappings
        when the record has no key with the literal name.
        """
        if self.accessor in record:
            return record[self.accessor]

        value: Any = record
        for part in self.accessor.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return MISSING
            value = value[part]
        return value

    def parse(self, record: Mapping[str, Any]) -> Any:
        """Canonical value before transformation (used for scanning ranges)."""
        return self.transform.parse(self.raw_value(record))

    def value(self, record: Mapping[str, Any]) -> Any:
        """Canonical value after transformation."""
        return self.transform.to_canonical(self.raw_value(record))

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "accessor": self.accessor,
            "type": self.type,
            "units": self.units,
            "description": self.description,
            "isActive": self.is_active,
            "minval": to_jsonable(self.minval),
            "maxval": to_jsonable(self.maxval),
            "categorialTransform": self.categorial_transform.to_dict(),
            "continuousTransform": self.continuous_transform.to_dict(),
            "datetimeTransform": self.datetime_transform.to_dict(),
            "durationTransform": self.duration_transform.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Facet:
        facet_type = data.get("type", "categorial")
        return cls(
            id=data.get("id"),
            name=data["name"],
            accessor=data.get("accessor"),
            type=facet_type,
            units=data.get("units", ""),
            description=data.get("description", ""),
            is_active=bool(data.get("isActive", True)),
            minval=parse_bound(data.get("minval"), facet_type),
            maxval=parse_bound(data.get("maxval"), facet_type),
            categorial_transform=CategorialTransform.from_dict(data.get("categorialTransform", {})),
            continuous_transform=ContinuousTransform.from_dict(data.get("continuousTransform", {})),
            datetime_transform=DatetimeTransform.from_dict(data.get("datetimeTransform", {})),
            duration_transform=DurationTransform.from_dict(data.get("durationTransform", {})),
        )


class FacetCollection(Mapping[str, Facet]):
    """
    Facets keyed by name, in insertion order.
    """

    def __init__(self, facets: Optional[List[Facet]] = None):
        self._facets: Dict[str, Facet] = {}
        for facet in facets or []:
            self.add(facet)

    def __getitem__(self, name: str) -> Facet:
        return self._facets[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._facets)

    def __len__(self) -> int:
        return len(self._facets)

    def values(self):
        return list(self._facets.values())

    def add(self, facet: Facet) -> Facet:
        """Add a facet; an existing facet with the same name is replaced."""
        self._facets[facet.name] = facet
        return facet

    def remove(self, name: str) -> Optional[Facet]:
        return self._facets.pop(name, None)

    def reset(self, facets: Optional[List[Facet]] = None) -> None:
        self._facets.clear()
        for facet in facets or []:
            self.add(facet)

    def get_by_id(self, facet_id: str) -> Optional[Facet]:
        for facet in self._facets.values():
            if facet.id == facet_id:
                return facet
        return None

    def to_list(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in self._facets.values()]


def resolve_facet(facets: Mapping[str, Facet], name: Optional[str]) -> Facet:
    """
    Find the facet a partition or aggregate refers to.

    Raises:
        FacetLookupError: if no facet with that name exists
    """
    if name is None or name not in facets:
        raise FacetLookupError(f"Facet '{name}' not found")
    return facets[name]
