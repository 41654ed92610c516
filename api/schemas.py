"""
Pydantic models — request/response contracts for the Voyant API.

Domain records (``FusedResult``, ``WeatherSnapshot``, …) live in
``modules.models``; this module only wraps them for the HTTP surface.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from modules.models import CitySuggestion, DayAlerts, NewsArticle, WeatherSnapshot


# ---------- Destinations ---------- #

class CompareRequest(BaseModel):
    first_destination: str = Field(..., min_length=1)
    second_destination: str = Field(..., min_length=1)


class SuggestionsResponse(BaseModel):
    suggestions: list[CitySuggestion]


class CountriesResponse(BaseModel):
    countries: list[str]


# ---------- Live data ---------- #

class WeatherResponse(BaseModel):
    weather: WeatherSnapshot
    alerts: list[DayAlerts]


class NewsResponse(BaseModel):
    city: str
    articles: list[NewsArticle]
    total_found: int
    hours_back: Optional[int] = None
    last_updated: Optional[datetime] = None


class ErrorResponse(BaseModel):
    error: str
    details: str
