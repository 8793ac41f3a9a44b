from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from immunization.data import (
    GEO_ISO3_PROPERTY,
    GEO_NAME_PROPERTY,
    TABLE_DISPLAY_LIMIT,
    TABLE_TRUNCATE_THRESHOLD,
    Record,
    format_rate,
)
from immunization.filters import ALL, FilterCriteria, YearFilter, apply_filters
from immunization.metrics import lowest_rates, rate_band_counts, rate_color
from immunization.snapshot import latest_snapshot, snapshot_by_iso3
from immunization.sorting import SortSpec, sort_indicators, sort_records


EMPTY_TABLE_MESSAGE = "No matching records."
TRUNCATION_NOTE = f"Showing top {TABLE_DISPLAY_LIMIT} results. Use filters to narrow down."


@dataclass(frozen=True)
class TableView:
    rows: List[Record] = field(default_factory=list)
    total_matches: int = 0
    truncated: bool = False
    sort: SortSpec = field(default_factory=SortSpec)
    indicators: Dict[str, str] = field(default_factory=dict)
    empty_message: Optional[str] = None
    note: Optional[str] = None

    def display_rows(self) -> List[Dict[str, Any]]:
        return [
            {
                "country_name": r.country_name,
                "region": r.region,
                "rate": r.rate,
                "rate_display": f"{format_rate(r.rate)}%",
                "color": rate_color(r.rate),
                "year": r.year,
            }
            for r in self.rows
        ]


@dataclass(frozen=True)
class VisualView:
    year: YearFilter = ALL
    label: str = "(Latest Available)"
    records: List[Record] = field(default_factory=list)
    by_iso3: Dict[str, Record] = field(default_factory=dict)
    bar: List[Record] = field(default_factory=list)
    bands: List[Dict[str, Any]] = field(default_factory=list)


def table_records(records: Sequence[Record], criteria: FilterCriteria, sort: SortSpec) -> List[Record]:
    """Filtered and sorted rows before any display truncation (also the export rows)."""
    return sort_records(apply_filters(records, criteria), sort)


def compute_table_view(records: Sequence[Record], criteria: FilterCriteria, sort: SortSpec) -> TableView:
    rows = table_records(records, criteria, sort)
    total = len(rows)
    truncated = total > TABLE_TRUNCATE_THRESHOLD
    return TableView(
        rows=rows[:TABLE_DISPLAY_LIMIT] if truncated else rows,
        total_matches=total,
        truncated=truncated,
        sort=sort,
        indicators=sort_indicators(sort),
        empty_message=EMPTY_TABLE_MESSAGE if total == 0 else None,
        note=TRUNCATION_NOTE if truncated else None,
    )


def visual_records(records: Sequence[Record], year: YearFilter) -> List[Record]:
    filtered = apply_filters(records, FilterCriteria(year=year))
    if year == ALL:
        return latest_snapshot(filtered)
    return filtered


def compute_visual_view(records: Sequence[Record], year: YearFilter) -> VisualView:
    snapshot = visual_records(records, year)
    return VisualView(
        year=year,
        label="(Latest Available)" if year == ALL else f"({year})",
        records=snapshot,
        by_iso3=snapshot_by_iso3(snapshot),
        bar=lowest_rates(snapshot),
        bands=rate_band_counts(snapshot),
    )


def map_features(geojson: Optional[Dict[str, Any]], by_iso3: Dict[str, Record]) -> List[Dict[str, Any]]:
    """Join boundary features to the visual snapshot; unmatched features carry no rate."""
    out: List[Dict[str, Any]] = []
    for feature in (geojson or {}).get("features", []):
        props = feature.get("properties") or {}
        iso3 = props.get(GEO_ISO3_PROPERTY)
        record = by_iso3.get(iso3) if iso3 else None
        out.append(
            {
                "iso3": iso3,
                "name": props.get(GEO_NAME_PROPERTY),
                "rate": record.rate if record else None,
                "year": record.year if record else None,
                "color": rate_color(record.rate if record else None),
            }
        )
    return out
