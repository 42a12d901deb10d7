from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

LatLon = Tuple[float, float]


def _number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"{field_name} must be finite, got {value!r}")
    return float(value)


def _order(value: Any) -> Optional[int]:
    # null / missing / NaN / inf -> unordered
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"order must be an integer, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if not value.is_integer():
            raise ValueError(f"order must be an integer, got {value!r}")
        value = int(value)
    if value < 1:
        raise ValueError(f"order must be a positive integer, got {value!r}")
    return value


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class School:
    """
    One point on the map.
    order: position in the tour, None for schools that are not on the route
    photo / link: optional URLs shown in the popup
    """
    id: str
    lat: float
    lng: float
    name: str = ""
    city: str = ""
    description: str = ""
    order: Optional[int] = None
    photo: Optional[str] = None
    link: Optional[str] = None

    @property
    def latlng(self) -> LatLon:
        return (self.lat, self.lng)

    @property
    def has_order(self) -> bool:
        return self.order is not None

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "School":
        if not isinstance(rec, dict):
            raise ValueError(f"record must be an object, got {type(rec).__name__}")
        if rec.get("id") is None:
            raise ValueError("record has no id")

        return cls(
            id=str(rec["id"]),
            lat=_number(rec.get("lat"), "lat"),
            lng=_number(rec.get("lng"), "lng"),
            name=_text(rec.get("name")),
            city=_text(rec.get("city")),
            description=_text(rec.get("description")),
            order=_order(rec.get("order")),
            photo=_text(rec.get("photo")) or None,
            link=_text(rec.get("link")) or None,
        )
