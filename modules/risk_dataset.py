"""
Risk Dataset Accessor — read-only queries over the country risk table.

The table lives in Supabase in production (``RISK_TABLE``, default
``Voyant``).  When Supabase is not configured the bundled CSV copy under
``data/`` is used instead, through the same query primitives.

Every query is best-effort: a backend failure is logged and reported as
"no match" so the resolution cascade can move on to its next strategy.

Ordering of multiple matches is explicit (see ``rank_by_name``): exact
name first, then names starting with the query, then shorter names, then
alphabetical.  "Guinea" therefore resolves to Guinea, not Equatorial Guinea.
"""

from __future__ import annotations

import csv
import logging
import os
import re
from typing import Any, Callable, Iterable, Protocol

from pydantic import ValidationError

from modules.models import CountryRiskRecord

logger = logging.getLogger(__name__)

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

RISK_TABLE = os.getenv("RISK_TABLE", "Voyant")
RISK_DATASET_CSV = os.getenv(
    "RISK_DATASET_CSV", os.path.join(_PROJECT_ROOT, "data", "country_risk.csv")
)

PARTIAL_MATCH_LIMIT = 5
NAME_MATCH_FETCH = 25
LAST_RESORT_SCAN = 50

# PostgREST filter syntax characters that must not leak in from user text.
_FILTER_UNSAFE = re.compile(r"[,()%*\\]")


def _clean_term(term: str) -> str:
    return _FILTER_UNSAFE.sub(" ", term or "").strip().lower()


def rank_by_name(rows: Iterable[dict[str, Any]], term: str) -> list[dict[str, Any]]:
    """Order name matches: exact, prefix, shorter, alphabetical."""
    term = term.lower()

    def key(row: dict[str, Any]) -> tuple:
        name = str(row.get("country") or "").lower()
        return (name != term, not name.startswith(term), len(name), name)

    return sorted(rows, key=key)


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class RiskTable(Protocol):
    """Raw row queries; each may raise on connectivity problems."""

    def country_equals(self, term: str, limit: int) -> list[dict[str, Any]]: ...
    def country_contains(self, term: str, limit: int) -> list[dict[str, Any]]: ...
    def country_or_iso3_contains(self, term: str, limit: int) -> list[dict[str, Any]]: ...
    def iso3_equals(self, code: str) -> list[dict[str, Any]]: ...
    def scan(self, limit: int | None = None) -> list[dict[str, Any]]: ...


class SupabaseRiskTable:
    """Queries the risk table through the Supabase PostgREST client."""

    def __init__(self, client: Any, table: str = RISK_TABLE):
        self.client = client
        self.table = table

    def _select(self):
        return self.client.table(self.table).select("*")

    def country_equals(self, term: str, limit: int) -> list[dict[str, Any]]:
        result = self._select().ilike("country", term).order("country").limit(limit).execute()
        return result.data or []

    def country_contains(self, term: str, limit: int) -> list[dict[str, Any]]:
        result = (
            self._select().ilike("country", f"%{term}%").order("country").limit(limit).execute()
        )
        return result.data or []

    def country_or_iso3_contains(self, term: str, limit: int) -> list[dict[str, Any]]:
        result = (
            self._select()
            .or_(f"country.ilike.%{term}%,ISO3.ilike.%{term}%")
            .order("country")
            .limit(limit)
            .execute()
        )
        return result.data or []

    def iso3_equals(self, code: str) -> list[dict[str, Any]]:
        # ISO3 casing differs between table revisions; ilike without wildcards is exact.
        result = self._select().ilike("ISO3", code).limit(1).execute()
        return result.data or []

    def scan(self, limit: int | None = None) -> list[dict[str, Any]]:
        query = self._select().order("country")
        if limit is not None:
            query = query.limit(limit)
        return query.execute().data or []


class InMemoryRiskTable:
    """Same primitives over a list of rows (CSV copy, tests)."""

    def __init__(self, rows: Iterable[dict[str, Any]]):
        self.rows = sorted(rows, key=lambda r: str(r.get("country") or "").lower())

    @classmethod
    def from_csv(cls, path: str = RISK_DATASET_CSV) -> "InMemoryRiskTable":
        if not os.path.exists(path):
            logger.warning("Risk dataset CSV not found: %s", path)
            return cls([])
        with open(path, newline="", encoding="utf-8") as fh:
            rows = list(csv.DictReader(fh))
        logger.info("Loaded %d risk rows from %s", len(rows), path)
        return cls(rows)

    @staticmethod
    def _name(row: dict[str, Any]) -> str:
        return str(row.get("country") or "").lower()

    @staticmethod
    def _iso3(row: dict[str, Any]) -> str:
        return str(row.get("ISO3") or row.get("iso3") or "").lower()

    def country_equals(self, term: str, limit: int) -> list[dict[str, Any]]:
        return [r for r in self.rows if self._name(r) == term][:limit]

    def country_contains(self, term: str, limit: int) -> list[dict[str, Any]]:
        return [r for r in self.rows if term in self._name(r)][:limit]

    def country_or_iso3_contains(self, term: str, limit: int) -> list[dict[str, Any]]:
        return [r for r in self.rows if term in self._name(r) or term in self._iso3(r)][:limit]

    def iso3_equals(self, code: str) -> list[dict[str, Any]]:
        return [r for r in self.rows if self._iso3(r) == code][:1]

    def scan(self, limit: int | None = None) -> list[dict[str, Any]]:
        return list(self.rows if limit is None else self.rows[:limit])


# ---------------------------------------------------------------------------
# Accessor
# ---------------------------------------------------------------------------

class RiskDatasetAccessor:
    """Typed, failure-tolerant reads over a ``RiskTable``."""

    def __init__(self, table: RiskTable):
        self.table = table

    def _query(self, label: str, fn: Callable[[], list[dict[str, Any]]]) -> list[dict[str, Any]]:
        try:
            return fn()
        except Exception as exc:
            logger.warning("Risk dataset query %s failed: %s", label, exc)
            return []

    @staticmethod
    def _records(rows: Iterable[dict[str, Any]]) -> list[CountryRiskRecord]:
        records = []
        for row in rows:
            try:
                records.append(CountryRiskRecord.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping invalid risk row %r: %s", row.get("country"), exc)
        return records

    def _first(self, rows: list[dict[str, Any]]) -> CountryRiskRecord | None:
        records = self._records(rows)
        return records[0] if records else None

    # ---- Single-record lookups ---- #

    def get_by_name(self, country_name: str) -> CountryRiskRecord | None:
        """Case-insensitive substring match; one record, best-ranked first."""
        term = _clean_term(country_name)
        if not term:
            return None
        rows = self._query(
            "get_by_name", lambda: self.table.country_contains(term, NAME_MATCH_FETCH)
        )
        return self._first(rank_by_name(rows, term))

    def get_by_iso3(self, code: str) -> CountryRiskRecord | None:
        term = _clean_term(code)
        if len(term) != 3:
            return None
        return self._first(self._query("get_by_iso3", lambda: self.table.iso3_equals(term)))

    # ---- Cascade primitives ---- #

    def exact_country(self, query: str) -> list[CountryRiskRecord]:
        term = _clean_term(query)
        if not term:
            return []
        return self._records(self._query("exact_country", lambda: self.table.country_equals(term, 1)))

    def partial_country_or_iso3(self, query: str, limit: int = PARTIAL_MATCH_LIMIT) -> list[CountryRiskRecord]:
        term = _clean_term(query)
        if not term:
            return []
        rows = self._query(
            "partial_country_or_iso3",
            lambda: self.table.country_or_iso3_contains(term, NAME_MATCH_FETCH),
        )
        return self._records(rank_by_name(rows, term)[:limit])

    def containment_scan(self, query: str, scan_limit: int = LAST_RESORT_SCAN) -> list[CountryRiskRecord]:
        """Last resort: query and country name contain one another."""
        term = _clean_term(query)
        if not term:
            return []
        rows = self._query("containment_scan", lambda: self.table.scan(scan_limit))
        hits = [
            r for r in rows
            if (name := str(r.get("country") or "").lower())
            and (term in name or name in term)
        ]
        return self._records(rank_by_name(hits, term)[:PARTIAL_MATCH_LIMIT])

    def search_destinations(
        self,
        query: str,
        city_to_iso3: Callable[[str], str | None] | None = None,
    ) -> list[CountryRiskRecord]:
        """General cascade: exact -> partial -> city ISO3 -> containment scan."""
        for step in (self.exact_country, self.partial_country_or_iso3):
            found = step(query)
            if found:
                return found

        if city_to_iso3 is not None:
            iso3 = city_to_iso3(query)
            if iso3:
                record = self.get_by_iso3(iso3)
                if record is not None:
                    return [record]

        return self.containment_scan(query)

    # ---- Full table ---- #

    def get_all_ranked(self) -> list[CountryRiskRecord]:
        return self._records(self._query("get_all_ranked", lambda: self.table.scan()))


# ---------------------------------------------------------------------------
# Process-wide accessor
# ---------------------------------------------------------------------------

_accessor: RiskDatasetAccessor | None = None


def _supabase_table() -> SupabaseRiskTable | None:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        return None
    from supabase import create_client

    return SupabaseRiskTable(create_client(url, key))


def get_risk_dataset() -> RiskDatasetAccessor:
    """Supabase-backed accessor when configured, else the bundled CSV copy."""
    global _accessor
    if _accessor is None:
        table: RiskTable | None = None
        try:
            table = _supabase_table()
        except Exception as exc:
            logger.error("Supabase client could not be created: %s", exc)
        if table is None:
            logger.info("Supabase not configured — using risk dataset CSV %s", RISK_DATASET_CSV)
            table = InMemoryRiskTable.from_csv()
        _accessor = RiskDatasetAccessor(table)
    return _accessor
