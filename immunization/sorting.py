from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Literal, Sequence

from immunization.data import Record


SortKey = Literal["country_name", "region", "rate", "year"]
SortOrder = Literal["asc", "desc"]

SORT_KEYS: tuple = ("country_name", "region", "rate", "year")

SORT_ICONS = {"inactive": "↕", "asc": "↑", "desc": "↓"}


@dataclass(frozen=True)
class SortSpec:
    key: SortKey = "rate"
    order: SortOrder = "asc"


def toggle_sort(current: SortSpec, key: str) -> SortSpec:
    """Same key flips the order; a new key starts ascending."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key!r}")
    if current.key == key:
        return replace(current, order="desc" if current.order == "asc" else "asc")
    return SortSpec(key=key, order="asc")  # type: ignore[arg-type]


def _sort_value(record: Record, key: str):
    value = getattr(record, key)
    if isinstance(value, str):
        return value.lower()
    return value


def sort_records(records: Sequence[Record], spec: SortSpec) -> List[Record]:
    # Python's sort stays stable with reverse=True: ties keep input order in both directions.
    return sorted(records, key=lambda r: _sort_value(r, spec.key), reverse=spec.order == "desc")


def sort_indicators(spec: SortSpec) -> Dict[str, str]:
    return {key: SORT_ICONS[spec.order] if spec.key == key else SORT_ICONS["inactive"] for key in SORT_KEYS}
