from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from immunization.data import BAR_CHART_LIMIT, TARGET_RATE, Record, format_rate
from immunization.snapshot import latest_snapshot


NO_DATA_AVERAGE = "0.0"

RATE_COLORS = {
    "green": "#10b981",
    "yellow_green": "#84cc16",
    "yellow": "#eab308",
    "yellow_orange": "#f59e0b",
    "orange": "#f97316",
    "red_orange": "#ea580c",
    "red": "#ef4444",
    "no_data": "#cbd5e1",
}

# (label, min, max, colour) with inclusive bounds
RATE_BANDS = [
    ("≥ 95% (Target)", 95.0, 100.0, RATE_COLORS["green"]),
    ("90% - 94%", 90.0, 94.99, RATE_COLORS["yellow_green"]),
    ("80% - 89%", 80.0, 89.99, RATE_COLORS["yellow"]),
    ("70% - 79%", 70.0, 79.99, RATE_COLORS["yellow_orange"]),
    ("60% - 69%", 60.0, 69.99, RATE_COLORS["orange"]),
    ("50% - 59%", 50.0, 59.99, RATE_COLORS["red_orange"]),
    ("< 50%", 0.0, 49.99, RATE_COLORS["red"]),
]


@dataclass(frozen=True)
class Metrics:
    total_records: int
    global_average: str
    below_target_count: int
    target_rate: float = TARGET_RATE


def rate_color(rate: Optional[float]) -> str:
    if rate is None:
        return RATE_COLORS["no_data"]
    if rate >= 95:
        return RATE_COLORS["green"]
    if rate >= 90:
        return RATE_COLORS["yellow_green"]
    if rate >= 80:
        return RATE_COLORS["yellow"]
    if rate >= 70:
        return RATE_COLORS["yellow_orange"]
    if rate >= 60:
        return RATE_COLORS["orange"]
    if rate >= 50:
        return RATE_COLORS["red_orange"]
    return RATE_COLORS["red"]


def compute_metrics(records: Sequence[Record]) -> Metrics:
    """Summary KPIs; the average and below-target count use the latest-year snapshot."""
    snapshot = latest_snapshot(records)
    if not snapshot:
        return Metrics(total_records=len(records), global_average=NO_DATA_AVERAGE, below_target_count=0)

    rates = pd.Series([r.rate for r in snapshot], dtype=float)
    return Metrics(
        total_records=len(records),
        global_average=format_rate(float(rates.mean())),
        below_target_count=int((rates < TARGET_RATE).sum()),
    )


def rate_band_counts(records: Sequence[Record]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for label, low, high, color in RATE_BANDS:
        count = sum(1 for r in records if low <= r.rate <= high)
        if count > 0:
            out.append({"label": label, "min": low, "max": high, "color": color, "count": count})
    return out


def lowest_rates(records: Sequence[Record], limit: int = BAR_CHART_LIMIT) -> List[Record]:
    return sorted(records, key=lambda r: r.rate)[:limit]
