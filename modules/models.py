"""
Typed records shared by the resolver, the connectors and the fusion step.

Upstream payloads (dataset rows, Open-Meteo JSON) are validated into these
models at the module that fetches them, so nothing untyped reaches
``modules.pipeline``.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


HazardScore = Optional[float]


# ---------- Risk dataset ---------- #

class CountryRiskRecord(BaseModel):
    """One row of the country risk table."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    country: str
    iso3: str = Field(alias="ISO3", min_length=3, max_length=3)
    population_mio: Optional[float] = None
    global_rank: Optional[int] = None
    global_peace_rank: Optional[int] = None
    population_electricity: Optional[float] = None
    inform_index: Optional[float] = None
    risk_class: Optional[str] = None

    earthquake: HazardScore = Field(default=None, ge=0, le=10)
    river_flood: HazardScore = Field(default=None, ge=0, le=10)
    tsunami: HazardScore = Field(default=None, ge=0, le=10)
    tropical_storm: HazardScore = Field(default=None, ge=0, le=10)
    coastal_flood: HazardScore = Field(default=None, ge=0, le=10)
    drought: HazardScore = Field(default=None, ge=0, le=10)
    epidemic: HazardScore = Field(default=None, ge=0, le=10)
    projected_conflict: HazardScore = Field(default=None, ge=0, le=10)
    current_conflict: HazardScore = Field(default=None, ge=0, le=10)

    life_expectancy: Optional[float] = None
    gdp_per_capita_usd: Optional[float] = None
    human_dev_index: Optional[float] = None
    number_of_earths: Optional[float] = None
    fun_fact: Optional[str] = None

    @field_validator("iso3")
    @classmethod
    def _upper_iso3(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("fun_fact")
    @classmethod
    def _strip_quotes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().strip('"').strip()
        return v or None

    @field_validator(
        "population_mio", "global_rank", "global_peace_rank", "population_electricity",
        "inform_index", "risk_class", "earthquake", "river_flood", "tsunami",
        "tropical_storm", "coastal_flood", "drought", "epidemic",
        "projected_conflict", "current_conflict", "life_expectancy",
        "gdp_per_capita_usd", "human_dev_index", "number_of_earths",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def hazards(self) -> dict[str, float | None]:
        """The nine hazard scores keyed by hazard name."""
        return {name: getattr(self, name) for name in HAZARD_FIELDS}


HAZARD_FIELDS: tuple[str, ...] = (
    "earthquake", "river_flood", "tsunami", "tropical_storm", "coastal_flood",
    "drought", "epidemic", "projected_conflict", "current_conflict",
)


# ---------- Reference data ---------- #

class CityRecord(BaseModel):
    city: str
    city_ascii: str
    lat: float
    lng: float
    country: str
    iso2: str = ""
    iso3: str
    admin_name: str = ""
    capital: Literal["primary", "admin", ""] = ""
    population: int = 0
    id: str = ""

    @field_validator("capital", mode="before")
    @classmethod
    def _normalize_capital(cls, v):
        v = (v or "").strip().lower()
        return v if v in ("primary", "admin") else ""

    @field_validator("iso3")
    @classmethod
    def _upper_iso3(cls, v: str) -> str:
        return v.strip().upper()


class CountryArea(BaseModel):
    name: str
    area_km2: float
    area_sq_miles: float


class CitySuggestion(BaseModel):
    city: str
    country: str
    iso3: str
    population: int
    display: str
    is_capital: bool


# ---------- Resolution ---------- #

class CityCoordinates(BaseModel):
    lat: float
    lng: float
    city_name: str


class ResolvedDestination(BaseModel):
    query: str
    mode: Literal["country", "city-in-country"]
    country: CountryRiskRecord
    city: Optional[CityCoordinates] = None
    display_name: str
    strategy: str = Field(description="Name of the cascade step that matched")


# ---------- Weather / air quality ---------- #

class GeocodeResult(BaseModel):
    latitude: float
    longitude: float
    name: str
    country: Optional[str] = None


class CurrentConditions(BaseModel):
    temperature: float
    apparent_temperature: Optional[float] = None
    precipitation: float = 0.0
    wind_speed: float = 0.0
    humidity: Optional[float] = None
    weather_code: int = 0
    time: str
    weather_description: str = ""
    wind_description: str = ""


class HourlySeries(BaseModel):
    time: list[str]
    temperature_2m: list[float]
    apparent_temperature: list[Optional[float]] = []
    precipitation: list[float]
    wind_speed_10m: list[float]
    weather_code: list[int] = []

    @model_validator(mode="after")
    def _aligned(self) -> "HourlySeries":
        required = ("temperature_2m", "precipitation", "wind_speed_10m")
        optional = ("apparent_temperature", "weather_code")
        for name in required + tuple(n for n in optional if getattr(self, n)):
            if len(getattr(self, name)) != len(self.time):
                raise ValueError(f"hourly.{name} has {len(getattr(self, name))} values for {len(self.time)} hours")
        return self


class DailySeries(BaseModel):
    """Open-Meteo daily arrays; any single value may be null."""

    time: list[str]
    temperature_2m_max: list[Optional[float]]
    temperature_2m_min: list[Optional[float]]
    precipitation_sum: list[Optional[float]]
    wind_speed_10m_max: list[Optional[float]]
    weather_code: list[Optional[int]]
    snowfall_sum: list[Optional[float]]

    @model_validator(mode="after")
    def _aligned(self) -> "DailySeries":
        for name in (
            "temperature_2m_max", "temperature_2m_min", "precipitation_sum",
            "wind_speed_10m_max", "weather_code", "snowfall_sum",
        ):
            if len(getattr(self, name)) != len(self.time):
                raise ValueError(f"daily.{name} has {len(getattr(self, name))} values for {len(self.time)} days")
        return self


class AirQuality(BaseModel):
    pm10: float = 0.0
    pm2_5: float = 0.0
    carbon_monoxide: float = 0.0
    nitrogen_dioxide: float = 0.0
    sulphur_dioxide: float = 0.0
    ozone: float = 0.0
    dust: float = 0.0
    uv_index: float = 0.0
    pm2_5_description: str = ""
    pm10_description: str = ""
    uv_index_description: str = ""
    ozone_description: str = ""


class Next24Hours(BaseModel):
    max_temp: int
    min_temp: int
    total_precipitation: float
    avg_wind_speed: float


class DailyOutlook(BaseModel):
    date: str
    max_temp: Optional[float]
    min_temp: Optional[float]
    precipitation: Optional[float]
    wind_speed: Optional[float]
    weather_code: Optional[int]
    weather_description: str


class WeatherSnapshot(BaseModel):
    city: str
    latitude: float
    longitude: float
    current: CurrentConditions
    hourly: HourlySeries
    daily: DailySeries
    air_quality: Optional[AirQuality] = None
    next_24h: Next24Hours
    next_16_days: list[DailyOutlook]


class WeatherAlert(BaseModel):
    type: str
    description: str
    forecast_period: str
    severity: Literal["moderate", "high", "extreme"]


class DayAlerts(BaseModel):
    location: str
    forecast_date: str
    alerts: list[WeatherAlert]


# ---------- News ---------- #

class NewsArticle(BaseModel):
    title: str
    link: str
    description: str
    pub_date: str
    source: str
    relevance_score: int = 0


# ---------- Comparison / fusion ---------- #

class PeerEntry(BaseModel):
    country: str
    value: float


class PeerComparisonSet(BaseModel):
    inform_similar: list[PeerEntry] = []
    gdp_similar: list[PeerEntry] = []
    global_rank_above: list[PeerEntry] = []
    global_rank_below: list[PeerEntry] = []
    peace_rank_above: list[PeerEntry] = []
    peace_rank_below: list[PeerEntry] = []


class FusedResult(BaseModel):
    """Everything the dashboard needs for one destination.

    Every enrichment slot is independently nullable. ``is_fallback`` marks
    the synthetic response returned when the destination could not be
    resolved; in that case no field carries real dataset values.
    """

    destination: str
    is_fallback: bool = False
    notice: Optional[str] = None
    resolved: Optional[ResolvedDestination] = None
    country_data: Optional[CountryRiskRecord] = None
    weather: Optional[WeatherSnapshot] = None
    weather_alerts: Optional[list[DayAlerts]] = None
    air_quality: Optional[AirQuality] = None
    wikipedia: Optional[str] = None
    narrative: Optional[str] = None
    news: Optional[list[NewsArticle]] = None
    comparison_data: Optional[PeerComparisonSet] = None
    country_area: Optional[CountryArea] = None
    similar_size_country: Optional[str] = None
    comparison: Optional[FusedResult] = None
    errors: dict[str, str] = {}
FusedResult.model_rebuild()
