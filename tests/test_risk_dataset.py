"""
Unit tests for the risk dataset accessor and its table backends.

Covers name/ISO3 lookups, the explicit multi-match ordering, the general
search cascade, failure tolerance, and the Supabase query shape.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from modules import risk_dataset
from modules.models import CountryRiskRecord
from modules.reference_data import ReferenceDataStore
from modules.risk_dataset import (
    InMemoryRiskTable,
    RiskDatasetAccessor,
    SupabaseRiskTable,
    get_risk_dataset,
    rank_by_name,
)
from tests.conftest import risk_row


class TestCountryRiskRecord:
    def test_iso3_alias_and_upper_case(self) -> None:
        record = CountryRiskRecord.model_validate(risk_row("Germany", "deu"))
        assert record.iso3 == "DEU"

    def test_blank_strings_become_none(self) -> None:
        record = CountryRiskRecord.model_validate(risk_row("Germany", "deu", inform_index="", earthquake=" "))
        assert record.inform_index is None
        assert record.earthquake is None

    def test_fun_fact_quotes_stripped(self) -> None:
        record = CountryRiskRecord.model_validate(risk_row("Germany", "deu", fun_fact='"Castles."'))
        assert record.fun_fact == "Castles."

    def test_hazard_out_of_range_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CountryRiskRecord.model_validate(risk_row("Germany", "deu", drought=11))

    def test_hazards_mapping(self) -> None:
        record = CountryRiskRecord.model_validate(risk_row("Japan", "jpn", earthquake=9.5))
        hazards = record.hazards()
        assert len(hazards) == 9
        assert hazards["earthquake"] == 9.5


class TestLookups:
    def test_get_by_name_case_insensitive(self, dataset: RiskDatasetAccessor) -> None:
        for query in ("germany", "GERMANY", "Germany"):
            assert dataset.get_by_name(query).iso3 == "DEU"

    def test_get_by_name_prefers_exact_over_longer_match(self, dataset: RiskDatasetAccessor) -> None:
        assert dataset.get_by_name("Guinea").country == "Guinea"

    def test_get_by_name_substring(self, dataset: RiskDatasetAccessor) -> None:
        assert dataset.get_by_name("equatorial").country == "Equatorial Guinea"

    def test_get_by_name_empty(self, dataset: RiskDatasetAccessor) -> None:
        assert dataset.get_by_name("") is None
        assert dataset.get_by_name("Atlantis") is None

    def test_get_by_iso3_exact(self, dataset: RiskDatasetAccessor) -> None:
        assert dataset.get_by_iso3("DEU").country == "Germany"
        assert dataset.get_by_iso3("deu").country == "Germany"
        assert dataset.get_by_iso3("DE") is None

    def test_rank_by_name_order(self) -> None:
        rows = [{"country": "Papua New Guinea"}, {"country": "Equatorial Guinea"},
                {"country": "Guinea-Bissau"}, {"country": "Guinea"}]
        ordered = [r["country"] for r in rank_by_name(rows, "guinea")]
        assert ordered == ["Guinea", "Guinea-Bissau", "Papua New Guinea", "Equatorial Guinea"]


class TestSearchCascade:
    def test_exact_country(self, dataset: RiskDatasetAccessor) -> None:
        assert [r.country for r in dataset.search_destinations("japan")] == ["Japan"]

    def test_partial_iso3(self, dataset: RiskDatasetAccessor) -> None:
        assert dataset.search_destinations("jpn")[0].country == "Japan"

    def test_partial_name_limited_to_five(self) -> None:
        rows = [risk_row(f"Testland {i}", f"t{i:02d}") for i in range(8)]
        accessor = RiskDatasetAccessor(InMemoryRiskTable(rows))
        assert len(accessor.search_destinations("testland")) == 5

    def test_city_name_resolves_through_iso3(
        self, dataset: RiskDatasetAccessor, reference: ReferenceDataStore
    ) -> None:
        result = dataset.search_destinations("Tokyo", city_to_iso3=reference.country_iso3_for_city)
        assert [r.country for r in result] == ["Japan"]

    def test_containment_scan_last_resort(self, dataset: RiskDatasetAccessor) -> None:
        result = dataset.search_destinations("Federal Republic of Germany")
        assert result[0].country == "Germany"

    def test_nothing_matches(self, dataset: RiskDatasetAccessor) -> None:
        assert dataset.search_destinations("Atlantis") == []

    def test_all_ranked(self, dataset: RiskDatasetAccessor) -> None:
        assert len(dataset.get_all_ranked()) == 8


class TestFailureTolerance:
    def _broken(self) -> RiskDatasetAccessor:
        table = MagicMock()
        for name in ("country_equals", "country_contains", "country_or_iso3_contains", "iso3_equals", "scan"):
            getattr(table, name).side_effect = ConnectionError("dataset unreachable")
        return RiskDatasetAccessor(table)

    def test_queries_return_no_match(self) -> None:
        accessor = self._broken()
        assert accessor.get_by_name("Germany") is None
        assert accessor.get_by_iso3("DEU") is None
        assert accessor.search_destinations("Germany", city_to_iso3=lambda _: "DEU") == []
        assert accessor.get_all_ranked() == []

    def test_invalid_rows_skipped(self) -> None:
        rows = [risk_row("Germany", "deu"), risk_row("Nowhere", "xx")]
        accessor = RiskDatasetAccessor(InMemoryRiskTable(rows))
        assert [r.country for r in accessor.get_all_ranked()] == ["Germany"]


class TestSupabaseTable:
    def test_country_contains_query_shape(self) -> None:
        client = MagicMock()
        chain = client.table.return_value.select.return_value
        chain.ilike.return_value.order.return_value.limit.return_value.execute.return_value.data = [
            risk_row("Germany", "DEU")
        ]

        rows = SupabaseRiskTable(client, table="Voyant").country_contains("germ", 25)

        client.table.assert_called_once_with("Voyant")
        chain.ilike.assert_called_once_with("country", "%germ%")
        assert rows[0]["country"] == "Germany"

    def test_user_text_is_sanitised_before_filters(self) -> None:
        client = MagicMock()
        chain = client.table.return_value.select.return_value
        chain.ilike.return_value.order.return_value.limit.return_value.execute.return_value.data = []

        RiskDatasetAccessor(SupabaseRiskTable(client)).get_by_name("ger%),many")

        pattern = chain.ilike.call_args.args[1]
        assert "(" not in pattern and ")" not in pattern and "," not in pattern


class TestDefaultAccessor:
    def test_falls_back_to_bundled_csv(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.setattr(risk_dataset, "_accessor", None)

        accessor = get_risk_dataset()

        assert isinstance(accessor.table, InMemoryRiskTable)
        assert accessor.get_by_name("Germany").iso3 == "DEU"
        assert get_risk_dataset() is accessor
