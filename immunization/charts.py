from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from immunization.comparison import ComparisonView
from immunization.data import Record, records_frame
from immunization.metrics import rate_color

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def bar_chart(records: Sequence[Record]) -> Optional[Dict[str, Any]]:
    if not records:
        return None
    df = records_frame(records)
    df["color"] = df["rate"].apply(rate_color)
    bars = (
        alt.Chart(df)
        .mark_bar(cornerRadius=4)
        .encode(
            y=alt.Y("country_name:N", title=None, sort=None),
            x=alt.X("rate:Q", title="Vaccination Rate (%)", scale=alt.Scale(domain=[0, 100])),
            color=alt.Color("color:N", scale=None),
            tooltip=[
                alt.Tooltip("country_name:N", title="Country"),
                alt.Tooltip("rate:Q", title="Rate", format=".1f"),
                alt.Tooltip("year:Q", title="Year", format="d"),
            ],
        )
    )
    labels = bars.mark_text(align="left", dx=8, fontWeight="bold").encode(
        text=alt.Text("rate:Q", format=".1f"), color=alt.value("#333")
    )
    return to_vega_spec(bars + labels)


def pie_chart(bands: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not bands:
        return None
    df = pd.DataFrame(bands)
    df["band_index"] = range(len(df))
    order = df["label"].tolist()
    chart = (
        alt.Chart(df)
        .mark_arc(innerRadius=60, stroke="white", strokeWidth=2)
        .encode(
            theta=alt.Theta("count:Q", stack=True),
            color=alt.Color("label:N", title="Coverage", sort=order, scale=alt.Scale(domain=order, range=df["color"].tolist())),
            order=alt.Order("band_index:Q"),
            tooltip=[alt.Tooltip("label:N", title="Band"), alt.Tooltip("count:Q", title="Countries")],
        )
    )
    return to_vega_spec(chart)


def comparison_chart(view: ComparisonView) -> Optional[Dict[str, Any]]:
    rows = [
        {"country_name": s.country_name, "year": r.year, "rate": r.rate}
        for s in view.series
        for r in s.records
    ]
    if not rows:
        return None
    df = pd.DataFrame(rows)
    names = [s.country_name for s in view.series]
    colors = [s.color for s in view.series]
    chart = (
        alt.Chart(df)
        .mark_line(point={"filled": False, "fill": "white", "size": 60}, strokeWidth=3)
        .encode(
            x=alt.X("year:O", title="Year", sort=view.years, scale=alt.Scale(domain=view.years), axis=alt.Axis(format="d")),
            y=alt.Y("rate:Q", title="Vaccination Rate (%)", scale=alt.Scale(domain=[0, 100])),
            color=alt.Color("country_name:N", title="Country", scale=alt.Scale(domain=names, range=colors)),
            tooltip=[
                alt.Tooltip("country_name:N", title="Country"),
                alt.Tooltip("year:O", title="Year"),
                alt.Tooltip("rate:Q", title="Rate", format=".1f"),
            ],
        )
    )
    return to_vega_spec(chart)
