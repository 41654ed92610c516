"""
Live-data Routes — standalone weather and news lookups.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from api.schemas import ErrorResponse, NewsResponse, WeatherResponse
from modules.news import DEFAULT_HOURS_BACK, NewsError, fetch_feed, rank_articles
from modules.weather import WeatherError, generate_weather_alerts, get_weather_for_place

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/weather",
    response_model=WeatherResponse,
    responses={502: {"model": ErrorResponse}},
)
async def weather(city: str = Query(..., min_length=1)):
    """Forecast, air quality and derived alerts for a place."""
    try:
        snapshot = await get_weather_for_place(city)
    except WeatherError as exc:
        logger.warning("Weather route failed for '%s': %s", city, exc)
        return JSONResponse(
            status_code=502,
            content={"error": "Failed to fetch weather data", "details": str(exc)},
        )
    return WeatherResponse(
        weather=snapshot,
        alerts=generate_weather_alerts(snapshot.daily, snapshot.city),
    )


@router.get(
    "/news",
    response_model=NewsResponse,
    responses={502: {"model": ErrorResponse}},
)
async def news(
    city: str = Query(..., min_length=1),
    hours: int | None = Query(default=DEFAULT_HOURS_BACK, ge=1),
    refresh: bool = Query(default=False, description="Bypass the feed cache"),
):
    """Most relevant recent articles mentioning a place."""
    try:
        feed = await fetch_feed(force_refresh=refresh)
    except NewsError as exc:
        logger.warning("News route failed for '%s': %s", city, exc)
        return JSONResponse(
            status_code=502,
            content={"error": "Failed to fetch news", "details": str(exc)},
        )
    articles = rank_articles(feed.items, city, hours_back=hours)
    return NewsResponse(
        city=city,
        articles=articles,
        total_found=len(articles),
        hours_back=hours,
        last_updated=feed.fetched_at,
    )
