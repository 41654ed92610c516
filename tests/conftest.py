"""
Shared fixtures: small in-memory city list, area table and risk table.

Nothing here touches the network or the bundled CSV files.
"""

from __future__ import annotations

from typing import Any

import pytest

from modules import news, weather
from modules.models import CityRecord, CountryArea
from modules.reference_data import ReferenceDataStore
from modules.risk_dataset import InMemoryRiskTable, RiskDatasetAccessor


def _city(city, lat, lng, country, iso2, iso3, capital="", population=0, ascii_name=None) -> CityRecord:
    return CityRecord(
        city=city,
        city_ascii=ascii_name or city,
        lat=lat,
        lng=lng,
        country=country,
        iso2=iso2,
        iso3=iso3,
        capital=capital,
        population=population,
    )


CITIES = [
    _city("Berlin", 52.52, 13.405, "Germany", "DE", "DEU", "primary", 3644826),
    _city("Munich", 48.1375, 11.575, "Germany", "DE", "DEU", "admin", 1512491),
    _city("Hamburg", 53.55, 10.0, "Germany", "DE", "DEU", "admin", 1841179),
    _city("Vienna", 48.2083, 16.3725, "Austria", "AT", "AUT", "primary", 1973403),
    _city("Vienna", 38.8996, -77.2597, "United States", "US", "USA", "", 16489),
    _city("Tokyo", 35.6897, 139.6922, "Japan", "JP", "JPN", "primary", 37732000),
    _city("Kyoto", 35.0117, 135.7683, "Japan", "JP", "JPN", "admin", 1464890),
    _city("Conakry", 9.5092, -13.7122, "Guinea", "GN", "GIN", "primary", 1660973),
    _city("Malabo", 3.7521, 8.7737, "Equatorial Guinea", "GQ", "GNQ", "primary", 297000),
    _city("São Paulo", -23.5504, -46.6339, "Brazil", "BR", "BRA", "admin", 23086000, "Sao Paulo"),
]

AREAS = [
    CountryArea(name="Germany", area_km2=357022, area_sq_miles=137847),
    CountryArea(name="Japan", area_km2=377930, area_sq_miles=145920),
    CountryArea(name="Finland", area_km2=338145, area_sq_miles=130559),
    CountryArea(name="Austria", area_km2=83871, area_sq_miles=32383),
    CountryArea(name="United States", area_km2=9833517, area_sq_miles=3796742),
    CountryArea(name="Russia", area_km2=17098242, area_sq_miles=6601670),
    CountryArea(name="Iceland", area_km2=103000, area_sq_miles=39769),
]


def risk_row(country: str, iso3: str, **fields: Any) -> dict[str, Any]:
    row: dict[str, Any] = {"country": country, "ISO3": iso3, "risk_class": "Low", "fun_fact": ""}
    row.update(fields)
    return row


RISK_ROWS = [
    risk_row("Iceland", "isl", global_rank=1, global_peace_rank=1, inform_index=1.1, gdp_per_capita_usd=73467),
    risk_row("Austria", "aut", global_rank=4, global_peace_rank=4, inform_index=1.7, gdp_per_capita_usd=52084),
    risk_row("Japan", "jpn", global_rank=5, global_peace_rank=10, inform_index=2.0, gdp_per_capita_usd=33834,
             earthquake=9.5, tsunami=8.1),
    risk_row("Germany", "deu", global_rank=7, global_peace_rank=15, inform_index=2.1, gdp_per_capita_usd=48718,
             fun_fact='"Germany has over 20,000 castles."'),
    risk_row("United States", "usa", global_rank=34, global_peace_rank=131, inform_index=3.4,
             gdp_per_capita_usd=80412),
    risk_row("Brazil", "bra", global_rank=72, global_peace_rank=131, inform_index=4.4, gdp_per_capita_usd=10043),
    risk_row("Equatorial Guinea", "gnq", global_rank=104, global_peace_rank=0, inform_index=4.5,
             gdp_per_capita_usd=7000),
    risk_row("Guinea", "gin", global_rank=110, global_peace_rank=None, inform_index=5.1,
             gdp_per_capita_usd=1500),
]


@pytest.fixture
def reference() -> ReferenceDataStore:
    return ReferenceDataStore(CITIES, AREAS)


@pytest.fixture
def risk_table() -> InMemoryRiskTable:
    return InMemoryRiskTable(RISK_ROWS)


@pytest.fixture
def dataset(risk_table: InMemoryRiskTable) -> RiskDatasetAccessor:
    return RiskDatasetAccessor(risk_table)


@pytest.fixture(autouse=True)
def _clear_caches():
    weather.clear_weather_cache()
    news.clear_news_cache()
    yield
    weather.clear_weather_cache()
    news.clear_news_cache()


# ---------------------------------------------------------------------------
# Open-Meteo payload builders
# ---------------------------------------------------------------------------

def daily_payload(days: int = 7, **overrides: list) -> dict[str, list]:
    daily = {
        "time": [f"2025-03-{5 + i:02d}" for i in range(days)],
        "temperature_2m_max": [18.0] * days,
        "temperature_2m_min": [8.0] * days,
        "precipitation_sum": [0.0] * days,
        "wind_speed_10m_max": [15.0] * days,
        "weather_code": [1] * days,
        "snowfall_sum": [0.0] * days,
    }
    daily.update(overrides)
    return daily


def forecast_payload(lat: float = 52.52, lng: float = 13.41, **daily_overrides: list) -> dict[str, Any]:
    hours = 48
    return {
        "latitude": lat,
        "longitude": lng,
        "current": {
            "time": "2025-03-05T12:00",
            "temperature_2m": 14.2,
            "apparent_temperature": 12.9,
            "precipitation": 0.0,
            "wind_speed_10m": 9.7,
            "relative_humidity_2m": 61,
            "weather_code": 2,
        },
        "hourly": {
            "time": [f"2025-03-05T{h % 24:02d}:00" for h in range(hours)],
            "temperature_2m": [8.0 + (h % 24) / 2 for h in range(hours)],
            "apparent_temperature": [7.0] * hours,
            "precipitation": [0.1] * hours,
            "wind_speed_10m": [12.0] * hours,
            "weather_code": [2] * hours,
        },
        "daily": daily_payload(16, **daily_overrides),
    }


AIR_QUALITY_PAYLOAD = {
    "current": {
        "pm10": 18.0, "pm2_5": 9.5, "carbon_monoxide": 180.0, "nitrogen_dioxide": 12.0,
        "sulphur_dioxide": 1.5, "ozone": 60.0, "dust": None, "uv_index": 3.2,
    }
}
