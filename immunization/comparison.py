from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from immunization.data import MIN_YEAR, Record, format_rate


LINE_COLORS = [
    "#2563eb", "#d946ef", "#f97316", "#06b6d4", "#84cc16",
    "#64748b", "#f43f5e", "#8b5cf6", "#14b8a6", "#eab308",
]

MISSING_CELL = "-"


@dataclass(frozen=True)
class ComparisonSeries:
    country_name: str
    color: str
    records: List[Record] = field(default_factory=list)


@dataclass(frozen=True)
class ComparisonView:
    selected: List[str] = field(default_factory=list)
    years: List[int] = field(default_factory=list)
    series: List[ComparisonSeries] = field(default_factory=list)
    table: List[Dict[str, object]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.selected


def compute_comparison(records: Sequence[Record], selected: Sequence[str]) -> ComparisonView:
    if not selected:
        return ComparisonView()

    wanted = set(selected)
    grouped: Dict[str, List[Record]] = {}
    for r in records:
        if r.country_name in wanted and r.year >= MIN_YEAR:
            grouped.setdefault(r.country_name, []).append(r)
    years = sorted({r.year for group in grouped.values() for r in group})

    series: List[ComparisonSeries] = []
    table: List[Dict[str, object]] = []
    for i, name in enumerate(selected):
        history = sorted(grouped.get(name, []), key=lambda r: r.year)
        series.append(ComparisonSeries(country_name=name, color=LINE_COLORS[i % len(LINE_COLORS)], records=history))

        by_year = {r.year: r.rate for r in history}
        cells = {str(y): (f"{format_rate(by_year[y])}%" if y in by_year else MISSING_CELL) for y in years}
        table.append({"country_name": name, **cells})

    return ComparisonView(selected=list(selected), years=years, series=series, table=table)
