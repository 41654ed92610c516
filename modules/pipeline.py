"""
Data Fusion — resolve a destination and assemble its ``FusedResult``.

Flow per destination:

    resolve (dataset + reference, worker thread)
        │
        ├── weather ─┐
        ├── wikipedia┤  asyncio.gather, each best-effort
        ├── news     │
        └── peers  ──┘
                │
                └── narrative (needs weather + wikipedia)

A failing connector leaves its slot ``None``, logs one warning and records
a short reason in ``FusedResult.errors``; the request itself never fails.
An unresolvable destination yields a flagged fallback result carrying no
dataset values.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional

from modules.comparison import compute_peer_set
from modules.destination_resolver import parse_query, resolve_destination
from modules.models import (
    CitySuggestion,
    DayAlerts,
    FusedResult,
    PeerComparisonSet,
    ResolvedDestination,
    WeatherSnapshot,
)
from modules.narrative import NarrativeSubject, generate_narrative
from modules.news import get_city_news
from modules.reference_data import ReferenceDataStore, get_reference_store
from modules.risk_dataset import RiskDatasetAccessor, get_risk_dataset
from modules.weather import generate_weather_alerts, get_weather_for_coordinates, get_weather_for_place
from modules.wikipedia import get_summary

logger = logging.getLogger(__name__)

FALLBACK_NOTICE = (
    "We could not find '{destination}' in our destination data. "
    "No country figures are shown; try 'City, Country' or a country name."
)


async def _best_effort(slot: str, destination: str, call: Awaitable[Any], errors: dict[str, str]) -> Any:
    try:
        return await call
    except Exception as exc:
        logger.warning("%s unavailable for '%s': %s", slot, destination, exc)
        errors[slot] = str(exc) or exc.__class__.__name__
        return None


def fallback_result(destination: str) -> FusedResult:
    """Placeholder for a destination that matched nothing, flagged as such."""
    return FusedResult(
        destination=destination,
        is_fallback=True,
        notice=FALLBACK_NOTICE.format(destination=destination.strip()),
    )


# ---------------------------------------------------------------------------
# Per-slot fetches
# ---------------------------------------------------------------------------

def _place_parts(resolved: ResolvedDestination) -> tuple[str, str]:
    """(weather/encyclopedia query, news place name) for a resolved destination."""
    if resolved.mode == "country":
        return resolved.country.country, resolved.country.country
    parsed = parse_query(resolved.query)
    city = resolved.city.city_name if resolved.city else (parsed.city or resolved.display_name)
    return f"{city}, {resolved.country.country}", city


async def _weather(resolved: ResolvedDestination) -> tuple[WeatherSnapshot, list[DayAlerts]]:
    """Snapshot plus its derived alerts, so either failing degrades the one slot."""
    if resolved.city is not None:
        snapshot = await get_weather_for_coordinates(resolved.city.lat, resolved.city.lng, resolved.city.city_name)
    else:
        place, _ = _place_parts(resolved)
        snapshot = await get_weather_for_place(place)
    return snapshot, generate_weather_alerts(snapshot.daily, snapshot.city)


async def _wikipedia(resolved: ResolvedDestination, reference: ReferenceDataStore) -> Optional[str]:
    place, _ = _place_parts(resolved)
    iso2 = reference.iso2_for_iso3(resolved.country.iso3) if resolved.mode != "country" else None
    return await get_summary(place, iso2=iso2)


async def _peers(resolved: ResolvedDestination, dataset: RiskDatasetAccessor) -> PeerComparisonSet:
    records = await asyncio.to_thread(dataset.get_all_ranked)
    if not records:
        raise LookupError("risk table returned no rows for comparison")
    return compute_peer_set(resolved.country, records)


def _subject(result: FusedResult) -> NarrativeSubject:
    return NarrativeSubject(
        destination=result.destination,
        country=result.country_data,
        mode=result.resolved.mode,
        wikipedia=result.wikipedia,
        weather=result.weather,
    )


# ---------------------------------------------------------------------------
# Fusion
# ---------------------------------------------------------------------------

async def fuse_destination(
    destination: str,
    dataset: RiskDatasetAccessor,
    reference: ReferenceDataStore,
    *,
    with_narrative: bool = True,
) -> FusedResult:
    resolved = await asyncio.to_thread(resolve_destination, destination, dataset, reference)
    if resolved is None:
        logger.info("Returning fallback result for '%s'", destination)
        return fallback_result(destination)

    errors: dict[str, str] = {}
    _, news_place = _place_parts(resolved)

    forecast, wikipedia, news, peers = await asyncio.gather(
        _best_effort("weather", destination, _weather(resolved), errors),
        _best_effort("wikipedia", destination, _wikipedia(resolved, reference), errors),
        _best_effort("news", destination, get_city_news(news_place), errors),
        _best_effort("comparison_data", destination, _peers(resolved, dataset), errors),
    )
    weather, alerts = forecast if forecast is not None else (None, None)

    country_name = resolved.country.country
    area = reference.find_country_area(country_name)
    result = FusedResult(
        destination=resolved.display_name,
        resolved=resolved,
        country_data=resolved.country,
        weather=weather,
        weather_alerts=alerts,
        air_quality=weather.air_quality if weather else None,
        wikipedia=wikipedia,
        news=news,
        comparison_data=peers,
        country_area=area,
        similar_size_country=reference.find_similar_size_country(country_name) if area else None,
        errors=errors,
    )

    if with_narrative:
        # pydantic copies ``errors`` on validation; record into the result's own map
        result.narrative = await _best_effort(
            "narrative", destination, generate_narrative(_subject(result)), result.errors
        )
    return result


async def resolve_and_fuse(
    destination: str,
    compare_to: str | None = None,
    *,
    dataset: RiskDatasetAccessor | None = None,
    reference: ReferenceDataStore | None = None,
) -> FusedResult:
    """The single "resolve and fuse" operation exposed to the presentation layer.

    With *compare_to*, both destinations are fused concurrently, the second
    lands in ``result.comparison`` and one narrative covers both.
    """
    dataset = dataset or get_risk_dataset()
    reference = reference or get_reference_store()

    if not compare_to:
        return await fuse_destination(destination, dataset, reference)

    first, second = await asyncio.gather(
        fuse_destination(destination, dataset, reference, with_narrative=False),
        fuse_destination(compare_to, dataset, reference, with_narrative=False),
    )
    first.comparison = second
    if not first.is_fallback and not second.is_fallback:
        first.narrative = await _best_effort(
            "narrative",
            destination,
            generate_narrative(_subject(first), _subject(second)),
            first.errors,
        )
    return first


def suggest(
    partial: str,
    limit: int = 8,
    *,
    reference: ReferenceDataStore | None = None,
) -> list[CitySuggestion]:
    """Autocomplete over the city list."""
    return (reference or get_reference_store()).suggest(partial, limit)
