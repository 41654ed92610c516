"""
Reference Data Store — static world-cities list and country-area table.

Both tables are read once from CSV and held in memory for the life of the
process.  Malformed rows are skipped; a missing file yields an empty table,
which simply means "no suggestions".
"""

from __future__ import annotations

import csv
import logging
import os
from typing import Iterable

from pydantic import ValidationError

from modules.country_codes import canonical_country_name
from modules.models import CityRecord, CitySuggestion, CountryArea

logger = logging.getLogger(__name__)

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

CITIES_CSV = os.getenv("CITIES_CSV", os.path.join(_PROJECT_ROOT, "data", "worldcities.csv"))
COUNTRY_AREAS_CSV = os.getenv(
    "COUNTRY_AREAS_CSV", os.path.join(_PROJECT_ROOT, "data", "country_areas.csv")
)

SIMILAR_SIZE_TOLERANCE = 0.2


# ---------------------------------------------------------------------------
# CSV loading
# ---------------------------------------------------------------------------

def _read_rows(path: str) -> list[dict[str, str]]:
    if not os.path.exists(path):
        logger.warning("Reference file not found: %s", path)
        return []
    try:
        with open(path, newline="", encoding="utf-8") as fh:
            return list(csv.DictReader(fh))
    except (OSError, csv.Error, UnicodeDecodeError) as exc:
        logger.warning("Could not read reference file %s: %s", path, exc)
        return []


def load_cities(path: str = CITIES_CSV) -> list[CityRecord]:
    cities: list[CityRecord] = []
    for row in _read_rows(path):
        try:
            cities.append(CityRecord.model_validate(row))
        except ValidationError:
            logger.debug("Skipping malformed city row: %s", row)
    logger.info("Loaded %d cities from %s", len(cities), path)
    return cities


def load_country_areas(path: str = COUNTRY_AREAS_CSV) -> list[CountryArea]:
    areas: list[CountryArea] = []
    for row in _read_rows(path):
        try:
            areas.append(CountryArea.model_validate(row))
        except ValidationError:
            logger.debug("Skipping malformed area row: %s", row)
    return areas


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class ReferenceDataStore:
    """In-memory lookups over the city list and the country-area table."""

    def __init__(self, cities: Iterable[CityRecord], areas: Iterable[CountryArea]):
        self.cities = list(cities)
        self.areas = list(areas)

    # ---- Cities ---- #

    def find_city(self, name: str, limit: int = 10) -> list[CityRecord]:
        """Substring search over city names and country name.

        Exact city-name matches come first, then the rest; each tier is
        ordered by population, largest first.
        """
        term = (name or "").strip().lower()
        if not term or limit <= 0:
            return []

        matches = [
            c for c in self.cities
            if term in c.city.lower()
            or term in c.city_ascii.lower()
            or term in c.country.lower()
        ]
        matches.sort(key=lambda c: (not _is_exact_city(c, term), -c.population))
        return matches[:limit]

    def find_city_in_country(self, name: str, iso3: str) -> CityRecord | None:
        """Exact (case-insensitive) city name within one country; largest wins."""
        term = (name or "").strip().lower()
        code = (iso3 or "").strip().upper()
        if not term or not code:
            return None
        candidates = [c for c in self.cities if c.iso3 == code and _is_exact_city(c, term)]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.population)

    def country_iso3_for_city(self, name: str) -> str | None:
        """ISO3 of the most populous city with this exact name."""
        term = (name or "").strip().lower()
        if not term:
            return None
        candidates = [c for c in self.cities if _is_exact_city(c, term)]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.population).iso3

    def iso2_for_iso3(self, iso3: str) -> str | None:
        code = (iso3 or "").strip().upper()
        for c in self.cities:
            if c.iso3 == code and c.iso2:
                return c.iso2
        return None

    def suggest(self, partial: str, limit: int = 8) -> list[CitySuggestion]:
        """Autocomplete suggestions; fewer than two characters yields nothing."""
        if len((partial or "").strip()) < 2:
            return []
        return [
            CitySuggestion(
                city=c.city,
                country=c.country,
                iso3=c.iso3,
                population=c.population,
                display=f"{c.city}, {c.country}",
                is_capital=c.capital == "primary",
            )
            for c in self.find_city(partial, limit)
        ]

    # ---- Country areas ---- #

    def find_country_area(self, name: str) -> CountryArea | None:
        """Exact name, then a known alias, then partial match either way."""
        term = (name or "").strip().lower()
        if not term:
            return None

        for exact in (term, canonical_country_name(name).lower()):
            for a in self.areas:
                if a.name.lower() == exact:
                    return a

        for a in self.areas:
            area_name = a.name.lower()
            if term in area_name or area_name in term:
                return a
        return None

    def find_similar_size_country(self, name: str) -> str | None:
        """Closest-sized other country within ±20% of this one's area."""
        target = self.find_country_area(name)
        if target is None:
            return None

        tolerance = target.area_km2 * SIMILAR_SIZE_TOLERANCE
        candidates = [
            a for a in self.areas
            if a.name != target.name and abs(a.area_km2 - target.area_km2) <= tolerance
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda a: abs(a.area_km2 - target.area_km2)).name


def _is_exact_city(city: CityRecord, term: str) -> bool:
    return city.city.lower() == term or city.city_ascii.lower() == term


_store: ReferenceDataStore | None = None


def get_reference_store() -> ReferenceDataStore:
    """Process-wide store, loaded on first use."""
    global _store
    if _store is None:
        _store = ReferenceDataStore(load_cities(), load_country_areas())
    return _store
