"""View coordination for the dashboard.

A ``ViewCoordinator`` owns the canonical record set plus the mutable UI
state (table filters, visual year, sort spec and comparison selection).
UI layers send it actions and read back an immutable ``DashboardViews``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

from immunization.charts import bar_chart, comparison_chart, pie_chart
from immunization.comparison import ComparisonView, compute_comparison
from immunization.data import Record, load_dashboard_data
from immunization.export import export_filename, records_to_csv
from immunization.filters import (
    FilterCriteria,
    apply_filters,
    normalize_filters,
    region_options,
    year_options,
)
from immunization.metrics import Metrics, compute_metrics
from immunization.selection import SelectionStore
from immunization.snapshot import latest_snapshot
from immunization.sorting import SortSpec, toggle_sort
from immunization.views import (
    TableView,
    VisualView,
    compute_table_view,
    compute_visual_view,
    map_features as join_map_features,
    table_records,
)


logger = logging.getLogger(__name__)


# ---------------- Actions ----------------
@dataclass(frozen=True)
class SetSearch:
    text: str


@dataclass(frozen=True)
class SetRegion:
    region: str


@dataclass(frozen=True)
class SetYear:
    target: Literal["table", "visual"]
    year: Any


@dataclass(frozen=True)
class SortBy:
    key: str


@dataclass(frozen=True)
class AddSelection:
    name: str


@dataclass(frozen=True)
class RemoveSelection:
    index: int


@dataclass(frozen=True)
class ClearSelection:
    pass


@dataclass(frozen=True)
class Resize:
    pass


Action = Union[SetSearch, SetRegion, SetYear, SortBy, AddSelection, RemoveSelection, ClearSelection, Resize]


@dataclass(frozen=True)
class DashboardViews:
    table: TableView
    visual: VisualView
    metrics: Metrics
    comparison: ComparisonView = field(default_factory=ComparisonView)


class ViewCoordinator:
    def __init__(self, records: Sequence[Record], geojson: Optional[Dict[str, Any]] = None):
        self._records: Tuple[Record, ...] = tuple(records)
        self._geojson = geojson
        self._known_countries = frozenset(r.country_name for r in self._records)

        self.table_criteria = FilterCriteria()
        self.visual_criteria = FilterCriteria()
        self.sort_spec = SortSpec()
        self.selection = SelectionStore()
        self._comparison = ComparisonView()
        self.selection.subscribe(self._on_selection_changed)

        self._lock = threading.RLock()
        self._views = self._build_views()

    @classmethod
    def from_sources(cls, data_dir: Optional[Path] = None) -> "ViewCoordinator":
        data_ctx = load_dashboard_data(data_dir)
        return cls(data_ctx["records"], data_ctx["geojson"])

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    @property
    def views(self) -> DashboardViews:
        return self._views

    # ---------------- Options ----------------
    def regions(self) -> List[str]:
        return region_options(self._records)

    def years(self) -> List[int]:
        return year_options(self._records)

    def countries(self) -> List[str]:
        return sorted((r.country_name for r in latest_snapshot(self._records)), key=str.lower)

    # ---------------- Dispatch ----------------
    def dispatch(self, action: Action) -> DashboardViews:
        with self._lock:
            if isinstance(action, Resize):
                return self._views

            if isinstance(action, SetSearch):
                self._update_table_criteria(search_text=action.text)
            elif isinstance(action, SetRegion):
                self._update_table_criteria(region=action.region)
            elif isinstance(action, SetYear):
                if action.target == "table":
                    self._update_table_criteria(year=action.year)
                elif action.target == "visual":
                    self.visual_criteria = normalize_filters({"year": action.year})
                else:
                    raise ValueError(f"Unknown year target: {action.target!r}")
            elif isinstance(action, SortBy):
                self.sort_spec = toggle_sort(self.sort_spec, action.key)
            elif isinstance(action, AddSelection):
                name = (action.name or "").strip()
                if name in self._known_countries:
                    self.selection.add(name)
                else:
                    logger.debug("Ignoring selection of unknown country %r", name)
            elif isinstance(action, RemoveSelection):
                self.selection.remove_at(action.index)
            elif isinstance(action, ClearSelection):
                self.selection.clear()
            else:
                raise TypeError(f"Unsupported action: {type(action).__name__}")

            self._views = self._build_views()
            return self._views

    def _update_table_criteria(self, **changes: Any) -> None:
        self.table_criteria = normalize_filters({**asdict(self.table_criteria), **changes})

    def _on_selection_changed(self, names: Tuple[str, ...]) -> None:
        self._comparison = compute_comparison(self._records, names)

    def _build_views(self) -> DashboardViews:
        visual_year = self.visual_criteria.year
        return DashboardViews(
            table=compute_table_view(self._records, self.table_criteria, self.sort_spec),
            visual=compute_visual_view(self._records, visual_year),
            metrics=compute_metrics(apply_filters(self._records, FilterCriteria(year=visual_year))),
            comparison=self._comparison,
        )

    # ---------------- Derived outputs ----------------
    def export_rows(self) -> List[Record]:
        return table_records(self._records, self.table_criteria, self.sort_spec)

    def export_csv(self) -> Tuple[str, str]:
        """Return ``(filename, csv_text)`` for the current table filters and sort."""
        return export_filename(), records_to_csv(self.export_rows())

    def map_features(self) -> List[Dict[str, Any]]:
        return join_map_features(self._geojson, self._views.visual.by_iso3)

    def charts(self) -> Dict[str, Any]:
        views = self._views
        return {
            "bar": bar_chart(views.visual.bar),
            "pie": pie_chart(views.visual.bands),
            "comparison": comparison_chart(views.comparison),
        }
