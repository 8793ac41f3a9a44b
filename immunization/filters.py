from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from immunization.data import Record, parse_year


ALL = "All"

YearFilter = Union[int, str]


@dataclass(frozen=True)
class FilterCriteria:
    search_text: str = ""
    region: str = ALL
    year: YearFilter = ALL


def normalize_year(value: object) -> YearFilter:
    if value is None:
        return ALL
    if isinstance(value, str) and value.strip() in {"", ALL}:
        return ALL
    year = parse_year(value)
    return ALL if year is None else year


def normalize_region(value: object) -> str:
    region = str(value).strip() if value is not None else ""
    return region or ALL


def normalize_filters(raw: dict) -> FilterCriteria:
    search_text = str(raw.get("search_text") or "").strip()
    return FilterCriteria(
        search_text=search_text,
        region=normalize_region(raw.get("region")),
        year=normalize_year(raw.get("year")),
    )


def matches(record: Record, criteria: FilterCriteria) -> bool:
    if criteria.search_text and criteria.search_text.lower() not in record.country_name.lower():
        return False
    if criteria.region != ALL and record.region != criteria.region:
        return False
    if criteria.year != ALL and record.year != criteria.year:
        return False
    return True


def apply_filters(records: Sequence[Record], criteria: Optional[FilterCriteria] = None) -> List[Record]:
    """Return the records satisfying every constraint; unset fields are wildcards."""
    if criteria is None:
        return list(records)
    return [r for r in records if matches(r, criteria)]


def region_options(records: Iterable[Record]) -> List[str]:
    return sorted({r.region for r in records if r.region})


def year_options(records: Iterable[Record]) -> List[int]:
    return sorted({r.year for r in records}, reverse=True)
