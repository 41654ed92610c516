"""
Weather / Air-Quality Connector (Open-Meteo)

Pipeline: place name -> geocode -> forecast (current, hourly, 16-day daily)
+ current air quality -> ``WeatherSnapshot``.

Snapshots are cached process-wide for ``WEATHER_CACHE_TTL_SECONDS`` keyed by
the normalized place name, or by place name + coordinates when the caller
already knows where the place is.  Only successful fetches are cached.

``generate_weather_alerts`` is a pure scan of the daily forecast for
threshold breaches; it performs no I/O.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date
from typing import Any, Optional

import httpx
from cachetools import TTLCache
from pydantic import BaseModel, ValidationError

from modules.models import (
    AirQuality,
    CurrentConditions,
    DailyOutlook,
    DailySeries,
    DayAlerts,
    GeocodeResult,
    HourlySeries,
    Next24Hours,
    WeatherAlert,
    WeatherSnapshot,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
AIR_QUALITY_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
WEATHER_CACHE_TTL = int(os.getenv("WEATHER_CACHE_TTL_SECONDS", "3600"))
FORECAST_DAYS = 16

CURRENT_FIELDS = (
    "temperature_2m", "apparent_temperature", "precipitation",
    "wind_speed_10m", "relative_humidity_2m", "weather_code",
)
HOURLY_FIELDS = (
    "temperature_2m", "apparent_temperature", "precipitation", "wind_speed_10m", "weather_code",
)
DAILY_FIELDS = (
    "temperature_2m_max", "temperature_2m_min", "precipitation_sum",
    "wind_speed_10m_max", "weather_code", "snowfall_sum",
)
AIR_QUALITY_FIELDS = (
    "pm10", "pm2_5", "carbon_monoxide", "nitrogen_dioxide",
    "sulphur_dioxide", "ozone", "dust", "uv_index",
)

_weather_cache: TTLCache = TTLCache(maxsize=1024, ttl=WEATHER_CACHE_TTL)


class WeatherError(Exception):
    """Forecast could not be produced for a place."""


class GeocodingError(WeatherError):
    """Place name could not be turned into coordinates."""


# ---------------------------------------------------------------------------
# Upstream payloads
# ---------------------------------------------------------------------------

class _CurrentPayload(BaseModel):
    temperature_2m: float
    apparent_temperature: Optional[float] = None
    precipitation: float = 0.0
    wind_speed_10m: float = 0.0
    relative_humidity_2m: Optional[float] = None
    weather_code: int = 0
    time: str


class _ForecastPayload(BaseModel):
    latitude: float
    longitude: float
    current: _CurrentPayload
    hourly: HourlySeries
    daily: DailySeries


class _AirQualityPayload(BaseModel):
    current: Optional[dict[str, Optional[float]]] = None


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

WEATHER_CODES: dict[int, str] = {
    0: "Clear sky", 1: "Mainly clear", 2: "Partly cloudy", 3: "Overcast",
    45: "Fog", 48: "Depositing rime fog",
    51: "Light drizzle", 53: "Moderate drizzle", 55: "Dense drizzle",
    56: "Light freezing drizzle", 57: "Dense freezing drizzle",
    61: "Slight rain", 63: "Moderate rain", 65: "Heavy rain",
    66: "Light freezing rain", 67: "Heavy freezing rain",
    71: "Slight snow fall", 73: "Moderate snow fall", 75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers", 81: "Moderate rain showers", 82: "Violent rain showers",
    85: "Slight snow showers", 86: "Heavy snow showers",
    95: "Thunderstorm", 96: "Thunderstorm with slight hail", 99: "Thunderstorm with heavy hail",
}

# heavy/freezing rain, heavy snow, violent showers, thunderstorms
EXTREME_WEATHER_CODES = frozenset({65, 66, 67, 75, 77, 82, 85, 86, 95, 96, 99})

# (upper bound, label) bands; the first bound the value does not exceed wins
_PM2_5_BANDS = (
    (10, "Good - Air quality is satisfactory, and air pollution poses little or no risk"),
    (25, "Moderate - Air quality is acceptable; sensitive people may be at some risk"),
    (50, "Unhealthy for sensitive groups - Sensitive groups may experience health effects"),
    (75, "Unhealthy - Some members of the general public may experience health effects"),
    (110, "Very unhealthy - Health alert: the risk of health effects is increased for everyone"),
)
_PM10_BANDS = (
    (20, "Good - Coarse particles are at safe levels, minimal health risk"),
    (50, "Moderate - Sensitive individuals may experience minor irritation"),
    (100, "Unhealthy for sensitive groups - Coarse particles may cause breathing difficulties"),
    (150, "Unhealthy - Coarse particles can cause respiratory issues and reduced visibility"),
    (200, "Very unhealthy - High levels of coarse particles, significant health risks for all"),
)
_UV_BANDS = (
    (2, "Low - Minimal sun protection required"),
    (5, "Moderate - Seek shade during midday hours"),
    (7, "High - Avoid sun during midday, wear sunscreen and protective clothing"),
    (10, "Very high - Extra protection required; avoid sun exposure"),
)
_OZONE_BANDS = (
    (50, "Good - Ozone levels are safe, no health concerns"),
    (100, "Moderate - Minor breathing discomfort for sensitive individuals"),
    (150, "Unhealthy for sensitive groups - Breathing problems for people with lung disease, children and older adults"),
    (200, "Unhealthy - Breathing problems for everyone during outdoor activities"),
    (300, "Very unhealthy - Everyone should avoid outdoor activities"),
)
# strict upper bounds, km/h
_WIND_BANDS = (
    (1, "Calm"), (6, "Light breeze"), (12, "Gentle breeze"), (20, "Moderate breeze"),
    (29, "Fresh breeze"), (39, "Strong breeze"), (50, "Near gale"), (62, "Gale"),
    (75, "Strong gale"), (89, "Storm"), (103, "Violent storm"),
)


def _band(value: float, bands: tuple[tuple[float, str], ...], top: str) -> str:
    for bound, label in bands:
        if value <= bound:
            return label
    return top


def weather_description(code: Optional[int]) -> str:
    return WEATHER_CODES.get(code, "Unknown weather condition")


def wind_description(speed_kmh: float) -> str:
    for bound, label in _WIND_BANDS:
        if speed_kmh < bound:
            return label
    return "Hurricane"


def pm2_5_description(value: float) -> str:
    return _band(value, _PM2_5_BANDS, "Hazardous - Health warning of emergency conditions")


def pm10_description(value: float) -> str:
    return _band(value, _PM10_BANDS, "Hazardous - Extremely high coarse particle levels")


def uv_index_description(value: float) -> str:
    return _band(value, _UV_BANDS, "Extreme - Unprotected skin can burn in minutes")


def ozone_description(value: float) -> str:
    return _band(value, _OZONE_BANDS, "Hazardous - Stay indoors if possible")


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------

def _fallback_coordinates(place: str) -> GeocodeResult | None:
    """Re-resolve ``"City, Country"`` through the local datasets."""
    if "," not in place:
        return None
    city_name, country_name = (p.strip() for p in place.split(",", 1))

    from modules.country_codes import canonical_country_name
    from modules.reference_data import get_reference_store
    from modules.risk_dataset import get_risk_dataset

    record = get_risk_dataset().get_by_name(canonical_country_name(country_name))
    if record is None:
        return None
    city = get_reference_store().find_city_in_country(city_name, record.iso3)
    if city is None:
        return None
    logger.info("Using dataset coordinates for '%s': (%s, %s)", place, city.lat, city.lng)
    return GeocodeResult(latitude=city.lat, longitude=city.lng, name=city.city, country=record.country)


async def geocode_place(place: str) -> GeocodeResult:
    """Open-Meteo geocoding, falling back to the local datasets."""
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            resp = await client.get(
                GEOCODING_URL,
                params={"name": place, "count": 1, "language": "en", "format": "json"},
            )
            resp.raise_for_status()
            results = resp.json().get("results") or []
        if results:
            return GeocodeResult.model_validate(results[0])
        logger.warning("Open-Meteo geocoding found nothing for '%s'", place)
    except (httpx.HTTPError, ValueError, ValidationError) as exc:
        logger.warning("Open-Meteo geocoding failed for '%s': %s", place, exc)

    fallback = await asyncio.to_thread(_fallback_coordinates, place)
    if fallback is None:
        raise GeocodingError(f"Failed to geocode: {place}")
    return fallback


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

async def _fetch_forecast(lat: float, lng: float) -> dict[str, Any]:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        resp = await client.get(
            FORECAST_URL,
            params={
                "latitude": lat,
                "longitude": lng,
                "current": ",".join(CURRENT_FIELDS),
                "hourly": ",".join(HOURLY_FIELDS),
                "daily": ",".join(DAILY_FIELDS),
                "timezone": "auto",
                "forecast_days": FORECAST_DAYS,
            },
        )
        resp.raise_for_status()
        return resp.json()


async def _fetch_air_quality(lat: float, lng: float) -> dict[str, Any]:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        resp = await client.get(
            AIR_QUALITY_URL,
            params={
                "latitude": lat,
                "longitude": lng,
                "current": ",".join(AIR_QUALITY_FIELDS),
                "timezone": "auto",
            },
        )
        resp.raise_for_status()
        return resp.json()


def _air_quality_from(raw: dict[str, Any]) -> AirQuality | None:
    current = _AirQualityPayload.model_validate(raw).current
    if not current:
        return None
    values = {name: current.get(name) or 0.0 for name in AIR_QUALITY_FIELDS}
    return AirQuality(
        **values,
        pm2_5_description=pm2_5_description(values["pm2_5"]),
        pm10_description=pm10_description(values["pm10"]),
        uv_index_description=uv_index_description(values["uv_index"]),
        ozone_description=ozone_description(values["ozone"]),
    )


def summarize_next_24h(hourly: HourlySeries, daily: DailySeries) -> Next24Hours:
    """Roll the first 24 hourly values up; flat hourly temps defer to day one."""
    temps = hourly.temperature_2m[:24]
    precipitation = hourly.precipitation[:24]
    wind = hourly.wind_speed_10m[:24]

    max_temp = max(temps) if temps else 0.0
    min_temp = min(temps) if temps else 0.0
    day_max = daily.temperature_2m_max[0] if daily.temperature_2m_max else None
    day_min = daily.temperature_2m_min[0] if daily.temperature_2m_min else None
    if abs(max_temp - min_temp) < 1 and day_max is not None and day_min is not None:
        max_temp, min_temp = day_max, day_min

    return Next24Hours(
        max_temp=round(max_temp),
        min_temp=round(min_temp),
        total_precipitation=round(sum(precipitation), 2),
        avg_wind_speed=round(sum(wind) / len(wind), 2) if wind else 0.0,
    )


def daily_outlook(daily: DailySeries, days: int = FORECAST_DAYS) -> list[DailyOutlook]:
    return [
        DailyOutlook(
            date=day,
            max_temp=daily.temperature_2m_max[i],
            min_temp=daily.temperature_2m_min[i],
            precipitation=daily.precipitation_sum[i],
            wind_speed=daily.wind_speed_10m_max[i],
            weather_code=daily.weather_code[i],
            weather_description=weather_description(daily.weather_code[i]),
        )
        for i, day in enumerate(daily.time[:days])
    ]


def build_snapshot(
    place: str,
    forecast: dict[str, Any],
    air_quality: dict[str, Any] | None = None,
    *,
    lat: float | None = None,
    lng: float | None = None,
) -> WeatherSnapshot:
    """Validate raw Open-Meteo JSON into a ``WeatherSnapshot``.

    Raises:
        WeatherError: if the forecast payload does not have the expected shape.
    """
    try:
        payload = _ForecastPayload.model_validate(forecast)
    except ValidationError as exc:
        raise WeatherError(f"Unexpected forecast payload for {place}: {exc}") from exc

    aq: AirQuality | None = None
    if air_quality is not None:
        try:
            aq = _air_quality_from(air_quality)
        except ValidationError as exc:
            logger.warning("Unexpected air-quality payload for %s: %s", place, exc)

    cur = payload.current
    return WeatherSnapshot(
        city=place,
        latitude=lat if lat is not None else payload.latitude,
        longitude=lng if lng is not None else payload.longitude,
        current=CurrentConditions(
            temperature=cur.temperature_2m,
            apparent_temperature=cur.apparent_temperature,
            precipitation=cur.precipitation,
            wind_speed=cur.wind_speed_10m,
            humidity=cur.relative_humidity_2m,
            weather_code=cur.weather_code,
            time=cur.time,
            weather_description=weather_description(cur.weather_code),
            wind_description=wind_description(cur.wind_speed_10m),
        ),
        hourly=payload.hourly,
        daily=payload.daily,
        air_quality=aq,
        next_24h=summarize_next_24h(payload.hourly, payload.daily),
        next_16_days=daily_outlook(payload.daily),
    )


async def _fetch_snapshot(place: str, lat: float, lng: float, *, pin_coordinates: bool) -> WeatherSnapshot:
    try:
        forecast = await _fetch_forecast(lat, lng)
    except (httpx.HTTPError, ValueError) as exc:
        raise WeatherError(f"Failed to fetch weather data for {place}: {exc}") from exc

    air_quality: dict[str, Any] | None = None
    try:
        air_quality = await _fetch_air_quality(lat, lng)
    except (httpx.HTTPError, ValueError) as exc:
        logger.info("Air quality not available for %s: %s", place, exc)

    if pin_coordinates:
        return build_snapshot(place, forecast, air_quality, lat=lat, lng=lng)
    return build_snapshot(place, forecast, air_quality)


async def get_weather_for_place(place: str) -> WeatherSnapshot:
    """Geocode *place* and fetch its snapshot (cached by normalized name)."""
    key = place.strip().lower()
    cached = _weather_cache.get(key)
    if cached is not None:
        logger.info("Weather cache hit for '%s'", place)
        return cached

    geo = await geocode_place(place)
    snapshot = await _fetch_snapshot(place, geo.latitude, geo.longitude, pin_coordinates=False)
    _weather_cache[key] = snapshot
    logger.info("Weather fetched and cached for '%s'", place)
    return snapshot


async def get_weather_for_coordinates(lat: float, lng: float, place: str) -> WeatherSnapshot:
    """Fetch the snapshot for known coordinates (cached per place + coordinate pair)."""
    key = f"{place.strip().lower()}_{lat}_{lng}"
    cached = _weather_cache.get(key)
    if cached is not None:
        logger.info("Weather cache hit for '%s' (%s, %s)", place, lat, lng)
        return cached

    snapshot = await _fetch_snapshot(place, lat, lng, pin_coordinates=True)
    _weather_cache[key] = snapshot
    logger.info("Weather fetched and cached for '%s' (%s, %s)", place, lat, lng)
    return snapshot


def clear_weather_cache() -> None:
    _weather_cache.clear()


# ═══════════════════════════════════════════════════════════════════════════
#  Alerts
# ═══════════════════════════════════════════════════════════════════════════

# (alert type, daily field, threshold, high above, extreme above, wording, period)
_THRESHOLD_RULES = (
    ("Heavy Rain", "precipitation_sum", 20, 30, 50, "{v:.1f} mm of rain expected", "all day"),
    ("High Temperature", "temperature_2m_max", 35, 38, 40, "Temperature up to {v:.1f}°C expected", "daytime"),
    ("High Wind", "wind_speed_10m_max", 50, 65, 80, "Wind gusts up to {v:.1f} km/h expected", "all day"),
    ("Heavy Snow", "snowfall_sum", 5, 10, 15, "{v:.1f} cm of snow expected", "all day"),
)


def _period_label(day: str, part: str) -> str:
    d = date.fromisoformat(day)
    return f"{d.strftime('%b')} {d.day}, {part}"


def generate_weather_alerts(daily: DailySeries, location: str, forecast_days: int = 7) -> list[DayAlerts]:
    """Threshold breaches per day over the first *forecast_days* days.

    Thresholds are exclusive (20.0 mm of rain is not "Heavy Rain", 20.1 is).
    Days without a breach produce no entry.
    """
    out: list[DayAlerts] = []
    for i, day in enumerate(daily.time[:forecast_days]):
        alerts: list[WeatherAlert] = []

        for kind, field, threshold, high, extreme, wording, part in _THRESHOLD_RULES:
            value = getattr(daily, field)[i]
            if value is None or value <= threshold:
                continue
            severity = "extreme" if value > extreme else "high" if value > high else "moderate"
            alerts.append(WeatherAlert(
                type=kind,
                description=wording.format(v=value),
                forecast_period=_period_label(day, part),
                severity=severity,
            ))

        code = daily.weather_code[i]
        if code in EXTREME_WEATHER_CODES:
            alerts.append(WeatherAlert(
                type="Extreme Weather",
                description=f"{weather_description(code)} expected",
                forecast_period=_period_label(day, "all day"),
                severity="high",
            ))

        if alerts:
            out.append(DayAlerts(location=location, forecast_date=day, alerts=alerts))
    return out
