from __future__ import annotations

import csv
from datetime import date
from typing import Iterable, Optional

from immunization.data import EXPORT_FILENAME_PREFIX, EXPORT_HEADERS, Record, records_frame, round_half_up


def records_to_csv(records: Iterable[Record]) -> str:
    """Header line, then quoted text fields with unquoted one-decimal rate and year."""
    df = records_frame(records)[["country_name", "region", "rate", "year"]].copy()
    df["rate"] = df["rate"].map(lambda v: round_half_up(v, 1)).astype(float)
    # float_format would turn rates into strings, which QUOTE_NONNUMERIC then quotes
    body = df.to_csv(index=False, header=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    return ",".join(EXPORT_HEADERS) + "\n" + body


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{EXPORT_FILENAME_PREFIX}_{today.isoformat()}.csv"
