"""
Destination Resolver — free-text query -> ResolvedDestination.

A query is either ``"City, Country"`` (comma form) or a bare
country-or-city string.  Resolution walks an ordered list of strategies and
stops at the first that returns a record:

  1. comma form — the country part by name
  2. comma form — the city part -> ISO3 -> record
  3. bare form  — the whole query by name
  4. bare form  — the accessor's general search cascade

City coordinates are only looked up for comma-form queries; a missing city
keeps the country-level result and the original query as display name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from modules.country_codes import canonical_country_name
from modules.models import CityCoordinates, CountryRiskRecord, ResolvedDestination
from modules.reference_data import ReferenceDataStore
from modules.risk_dataset import RiskDatasetAccessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedQuery:
    raw: str
    text: str
    city: Optional[str] = None
    country: Optional[str] = None

    @property
    def is_comma_form(self) -> bool:
        return self.country is not None


def parse_query(query: str) -> ParsedQuery:
    """Split on the first comma into trimmed ``[city, country]`` parts."""
    text = (query or "").strip()
    if "," not in text:
        return ParsedQuery(raw=query, text=text)
    city, country = (part.strip() for part in text.split(",", 1))
    return ParsedQuery(raw=query, text=text, city=city, country=country)


Strategy = Callable[[ParsedQuery, RiskDatasetAccessor, ReferenceDataStore], Optional[CountryRiskRecord]]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def country_part_by_name(q: ParsedQuery, dataset: RiskDatasetAccessor, reference: ReferenceDataStore):
    if not q.is_comma_form or not q.country:
        return None
    return dataset.get_by_name(canonical_country_name(q.country))


def city_part_by_iso3(q: ParsedQuery, dataset: RiskDatasetAccessor, reference: ReferenceDataStore):
    if not q.is_comma_form or not q.city:
        return None
    iso3 = reference.country_iso3_for_city(q.city)
    if not iso3:
        return None
    return dataset.get_by_iso3(iso3)


def whole_query_by_name(q: ParsedQuery, dataset: RiskDatasetAccessor, reference: ReferenceDataStore):
    if q.is_comma_form or not q.text:
        return None
    return dataset.get_by_name(canonical_country_name(q.text))


def general_search(q: ParsedQuery, dataset: RiskDatasetAccessor, reference: ReferenceDataStore):
    if q.is_comma_form or not q.text:
        return None
    results = dataset.search_destinations(q.text, city_to_iso3=reference.country_iso3_for_city)
    return results[0] if results else None


STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("country_part_by_name", country_part_by_name),
    ("city_part_by_iso3", city_part_by_iso3),
    ("whole_query_by_name", whole_query_by_name),
    ("general_search", general_search),
)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve_destination(
    query: str,
    dataset: RiskDatasetAccessor,
    reference: ReferenceDataStore,
) -> ResolvedDestination | None:
    """Resolve *query*; ``None`` means no strategy matched."""
    parsed = parse_query(query)
    if not parsed.text:
        return None

    record: CountryRiskRecord | None = None
    matched_by = ""
    for name, strategy in STRATEGIES:
        record = strategy(parsed, dataset, reference)
        if record is not None:
            matched_by = name
            break

    if record is None:
        logger.info("Destination '%s' did not resolve", parsed.text)
        return None

    city: CityCoordinates | None = None
    display_name = record.country if matched_by == "whole_query_by_name" else parsed.text
    if parsed.is_comma_form and parsed.city:
        match = reference.find_city_in_country(parsed.city, record.iso3)
        if match is not None:
            city = CityCoordinates(lat=match.lat, lng=match.lng, city_name=match.city)
            display_name = match.city
        else:
            logger.info("No city '%s' in %s — keeping country-level data", parsed.city, record.iso3)

    logger.info("Resolved '%s' -> %s (%s) via %s", parsed.text, record.country, record.iso3, matched_by)
    return ResolvedDestination(
        query=query,
        mode="city-in-country" if parsed.is_comma_form else "country",
        country=record,
        city=city,
        display_name=display_name,
        strategy=matched_by,
    )
