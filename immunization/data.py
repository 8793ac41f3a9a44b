from __future__ import annotations

import json
import logging
import math
import os
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd


logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("IMMUNIZATION_DATA_DIR", Path(__file__).resolve().parents[1] / "data"))
CSV_FILE = "8254a231-62d7-4b6a-99bd-1dabf7e74cc1.csv"
GEOJSON_FILE = "countries.geojson"

INDICATOR_CODE = "WHS8_110"
MIN_YEAR = 2022
TARGET_RATE = 95.0

TABLE_TRUNCATE_THRESHOLD = 500
TABLE_DISPLAY_LIMIT = 100
BAR_CHART_LIMIT = 10

GEO_ISO3_PROPERTY = "ISO3166-1-Alpha-3"
GEO_NAME_PROPERTY = "name"

EXPORT_HEADERS = ["Country Name", "Region", "Vaccination Rate (%)", "Year"]
EXPORT_FILENAME_PREFIX = "measles_immunization_data"

RAW_COLUMNS = {
    "IndicatorCode": "indicator_code",
    "Location": "country_name",
    "SpatialDimValueCode": "iso3",
    "FactValueNumeric": "rate",
    "ParentLocation": "region",
    "Period": "year",
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class LoadError(Exception):
    def __init__(self, source: str, message: str):
        super().__init__(f"[{source}] {message}")
        self.source = source
        self.message = message


@dataclass(frozen=True)
class Record:
    country_name: str
    iso3: str
    rate: float
    region: str
    year: int


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def parse_rate(value: object) -> Optional[float]:
    """Parse a numeric value; anything that is not a finite float yields None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        out = float(value)
    else:
        try:
            out = float(_text(value))
        except ValueError:
            return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def parse_year(value: object) -> Optional[int]:
    """Parse a period like 2023, "2023" or "2023-01" -> 2023 (leading integer)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(_text(value))
    if not match:
        return None
    return int(match.group(1))


def normalize_records(rows: Iterable[Mapping[str, Any]]) -> List[Record]:
    """Keep vaccination-indicator rows with a finite value and a period >= MIN_YEAR.

    Rows failing any check are dropped silently; input order is preserved.
    """
    out: List[Record] = []
    dropped = 0
    for row in rows:
        if _text(row.get("IndicatorCode")) != INDICATOR_CODE:
            dropped += 1
            continue
        rate = parse_rate(row.get("FactValueNumeric"))
        year = parse_year(row.get("Period"))
        if rate is None or year is None or year < MIN_YEAR:
            dropped += 1
            continue
        out.append(
            Record(
                country_name=_text(row.get("Location")),
                iso3=_text(row.get("SpatialDimValueCode")),
                rate=rate,
                region=_text(row.get("ParentLocation")),
                year=year,
            )
        )
    logger.debug("normalize_records kept=%d dropped=%d", len(out), dropped)
    return out


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_rate(value: object) -> str:
    rounded = round_half_up(value, 1)
    if rounded is None:
        return "N/A"
    return f"{rounded:.1f}"


def records_frame(records: Iterable[Record]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"country_name": r.country_name, "iso3": r.iso3, "rate": r.rate, "region": r.region, "year": r.year}
            for r in records
        ],
        columns=["country_name", "iso3", "rate", "region", "year"],
    )


# ---------------- Loaders ----------------
def get_source_files(data_dir: Optional[Path] = None) -> Tuple[Path, Path]:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    return base / CSV_FILE, base / GEOJSON_FILE


def file_signature(files: Iterable[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime if f.exists() else 0.0) for f in files)


def load_raw_rows(path: Path) -> List[Dict[str, Any]]:
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except Exception as exc:
        raise LoadError(str(path), f"could not read CSV: {exc}") from exc
    keep = [c for c in RAW_COLUMNS if c in df.columns]
    return df[keep].to_dict(orient="records")


def load_geojson(path: Path) -> Dict[str, Any]:
    try:
        geo = json.loads(Path(path).read_text(encoding="utf-8"))
    except Exception as exc:
        raise LoadError(str(path), f"could not read GeoJSON: {exc}") from exc
    if not isinstance(geo, dict) or not isinstance(geo.get("features"), list):
        raise LoadError(str(path), "GeoJSON has no 'features' list")
    return geo


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: Tuple[Tuple[str, float], ...]) -> Dict[str, object]:
    csv_path, geo_path = (Path(name) for name, _ in files_sig)
    with ThreadPoolExecutor(max_workers=2) as executor:
        rows_future = executor.submit(load_raw_rows, csv_path)
        geo_future = executor.submit(load_geojson, geo_path)
        raw_rows = rows_future.result()
        geo = geo_future.result()

    records = tuple(normalize_records(raw_rows))
    logger.info("Loaded %d raw rows, kept %d records, %d map features", len(raw_rows), len(records), len(geo["features"]))
    return {
        "files": [name for name, _ in files_sig],
        "records": records,
        "geojson": geo,
    }


def load_dashboard_data(data_dir: Optional[Path] = None) -> Dict[str, object]:
    """Load the coverage CSV and the boundary GeoJSON; both must succeed."""
    files = get_source_files(data_dir)
    try:
        return _load_dashboard_data_cached(file_signature(files))
    except LoadError:
        logger.exception("Dashboard data load failed")
        raise
