from __future__ import annotations

from typing import Any, Dict

import pytest

from immunization.data import Record


def make_row(
    location: str = "Testland",
    value: Any = "97.5",
    period: Any = "2023",
    indicator: str = "WHS8_110",
    region: str = "TestRegion",
    iso3: str = "TST",
) -> Dict[str, Any]:
    return {
        "IndicatorCode": indicator,
        "Location": location,
        "SpatialDimValueCode": iso3,
        "FactValueNumeric": value,
        "ParentLocation": region,
        "Period": period,
    }


def make_record(name: str, rate: float, year: int, region: str = "Europe", iso3: str = "") -> Record:
    return Record(country_name=name, iso3=iso3 or name[:3].upper(), rate=rate, region=region, year=year)


@pytest.fixture
def sample_records():
    return [
        make_record("Landia", 60.0, 2022, region="Europe", iso3="LAN"),
        make_record("Landia", 80.0, 2023, region="Europe", iso3="LAN"),
        make_record("brazil", 96.0, 2023, region="Americas", iso3="BRA"),
        make_record("Chad", 45.0, 2022, region="Africa", iso3="TCD"),
        make_record("Chad", 52.5, 2024, region="Africa", iso3="TCD"),
        make_record("Austria", 95.0, 2024, region="Europe", iso3="AUT"),
    ]


@pytest.fixture
def geojson():
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"ISO3166-1-Alpha-3": "LAN", "name": "Landia"}, "geometry": None},
            {"type": "Feature", "properties": {"ISO3166-1-Alpha-3": "ZZZ", "name": "Nowhere"}, "geometry": None},
        ],
    }
