from __future__ import annotations

from typing import Dict, Iterable, List

from immunization.data import Record


def latest_snapshot(records: Iterable[Record]) -> List[Record]:
    """Reduce to one record per country, keeping the one with the latest year.

    Records are traversed in stable ascending-year order and later entries
    overwrite earlier ones, so on a year tie the last one encountered wins.
    Output order is the order in which each surviving country was first
    inserted during that traversal.
    """
    latest: Dict[str, Record] = {}
    for record in sorted(records, key=lambda r: r.year):
        latest[record.country_name] = record
    return list(latest.values())


def snapshot_by_iso3(records: Iterable[Record]) -> Dict[str, Record]:
    return {r.iso3: r for r in records}
