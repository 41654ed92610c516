"""
Unit tests for destination resolution: query parsing and the strategy order.
"""

from __future__ import annotations

from modules.destination_resolver import parse_query, resolve_destination
from modules.reference_data import ReferenceDataStore
from modules.risk_dataset import RiskDatasetAccessor


class TestParseQuery:
    def test_bare_query(self) -> None:
        parsed = parse_query("  Japan ")
        assert parsed.text == "Japan"
        assert not parsed.is_comma_form

    def test_splits_on_first_comma_only(self) -> None:
        parsed = parse_query("Seoul, Korea, South")
        assert parsed.city == "Seoul"
        assert parsed.country == "Korea, South"
        assert parsed.is_comma_form


class TestCommaForm:
    def test_city_in_country(self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore) -> None:
        result = resolve_destination("Berlin, Germany", dataset, reference)
        assert result is not None
        assert result.mode == "city-in-country"
        assert result.strategy == "country_part_by_name"
        assert result.country.iso3 == "DEU"
        assert (result.city.lat, result.city.lng) == (52.52, 13.405)
        assert result.display_name == "Berlin"

    def test_unknown_country_falls_back_to_city_iso3(
        self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore
    ) -> None:
        result = resolve_destination("Vienna, Atlantis", dataset, reference)
        assert result is not None
        assert result.strategy == "city_part_by_iso3"
        assert result.country.country == "Austria"
        assert result.city.lat == 48.2083

    def test_city_coordinates_come_from_resolved_country(
        self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore
    ) -> None:
        result = resolve_destination("Vienna, United States", dataset, reference)
        assert result.country.iso3 == "USA"
        assert result.city.lat == 38.8996

    def test_alias_in_country_part(self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore) -> None:
        result = resolve_destination("Vienna, USA", dataset, reference)
        assert result.country.iso3 == "USA"

    def test_city_missing_keeps_country_data(
        self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore
    ) -> None:
        result = resolve_destination("Munich, Austria", dataset, reference)
        assert result is not None
        assert result.country.country == "Austria"
        assert result.city is None
        assert result.display_name == "Munich, Austria"

    def test_nothing_matches(self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore) -> None:
        assert resolve_destination("Atlantis, Narnia", dataset, reference) is None


class TestBareForm:
    def test_country_name(self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore) -> None:
        result = resolve_destination("germany", dataset, reference)
        assert result.mode == "country"
        assert result.strategy == "whole_query_by_name"
        assert result.city is None
        assert result.display_name == "Germany"

    def test_exact_name_beats_longer_names(
        self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore
    ) -> None:
        assert resolve_destination("Guinea", dataset, reference).country.country == "Guinea"

    def test_alias(self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore) -> None:
        result = resolve_destination("USA", dataset, reference)
        assert result.country.country == "United States"

    def test_city_only_uses_general_search(
        self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore
    ) -> None:
        result = resolve_destination("Tokyo", dataset, reference)
        assert result.strategy == "general_search"
        assert result.country.country == "Japan"
        assert result.mode == "country"
        assert result.city is None
        assert result.display_name == "Tokyo"

    def test_unresolvable(self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore) -> None:
        assert resolve_destination("Atlantis", dataset, reference) is None
        assert resolve_destination("   ", dataset, reference) is None

    def test_deterministic(self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore) -> None:
        first = resolve_destination("Vienna, Atlantis", dataset, reference)
        second = resolve_destination("Vienna, Atlantis", dataset, reference)
        assert first == second
