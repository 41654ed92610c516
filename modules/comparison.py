"""
Peer comparison — nearest countries by index and adjacent countries by rank.

All functions are pure: they take the full ranked table (from
``RiskDatasetAccessor.get_all_ranked``) and never touch the network.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from modules.models import CountryRiskRecord, PeerComparisonSet, PeerEntry

PEER_COUNT = 3


def _closest(
    target: CountryRiskRecord,
    records: Iterable[CountryRiskRecord],
    value: Callable[[CountryRiskRecord], Optional[float]],
    count: int = PEER_COUNT,
) -> list[PeerEntry]:
    """*count* records closest to the target's value; stable on ties."""
    own = value(target)
    if own is None:
        return []
    candidates = [
        (abs(v - own), r.country, v)
        for r in records
        if r.iso3 != target.iso3 and (v := value(r)) is not None
    ]
    # sorted() is stable, so equal distances keep table order
    candidates = sorted(candidates, key=lambda c: c[0])[:count]
    return [PeerEntry(country=name, value=v) for _, name, v in candidates]


def _rank_neighbours(
    target: CountryRiskRecord,
    records: Iterable[CountryRiskRecord],
    rank: Callable[[CountryRiskRecord], Optional[int]],
) -> tuple[list[PeerEntry], list[PeerEntry]]:
    """(next safer, next riskier): the nearest rank strictly below and above.

    Ranks of 0 or missing are excluded; an empty direction stays empty.
    Equal ranks resolve to the alphabetically first country.
    """
    own = rank(target)
    if not own:
        return [], []
    ranked = [(r.country, rk) for r in records if r.iso3 != target.iso3 and (rk := rank(r))]

    above = [c for c in ranked if c[1] < own]
    below = [c for c in ranked if c[1] > own]

    safer = min(above, key=lambda c: (-c[1], c[0]), default=None)
    riskier = min(below, key=lambda c: (c[1], c[0]), default=None)
    return (
        [PeerEntry(country=safer[0], value=safer[1])] if safer else [],
        [PeerEntry(country=riskier[0], value=riskier[1])] if riskier else [],
    )


def inform_similar(target: CountryRiskRecord, records: list[CountryRiskRecord]) -> list[PeerEntry]:
    return _closest(target, records, lambda r: r.inform_index)


def gdp_similar(target: CountryRiskRecord, records: list[CountryRiskRecord]) -> list[PeerEntry]:
    return _closest(target, records, lambda r: r.gdp_per_capita_usd)


def ranking_peers(target: CountryRiskRecord, records: list[CountryRiskRecord]) -> PeerComparisonSet:
    """Inform-similar countries plus global and peace rank neighbours."""
    global_above, global_below = _rank_neighbours(target, records, lambda r: r.global_rank)
    peace_above, peace_below = _rank_neighbours(target, records, lambda r: r.global_peace_rank)
    return PeerComparisonSet(
        inform_similar=inform_similar(target, records),
        global_rank_above=global_above,
        global_rank_below=global_below,
        peace_rank_above=peace_above,
        peace_rank_below=peace_below,
    )


def merge_ranking_peers(base: PeerComparisonSet | None, ranking: PeerComparisonSet) -> PeerComparisonSet:
    """Copy the ranking slots onto *base*; ``gdp_similar`` already there is kept."""
    if base is None:
        return ranking
    return base.model_copy(update={
        "inform_similar": ranking.inform_similar,
        "global_rank_above": ranking.global_rank_above,
        "global_rank_below": ranking.global_rank_below,
        "peace_rank_above": ranking.peace_rank_above,
        "peace_rank_below": ranking.peace_rank_below,
    })


def compute_peer_set(target: CountryRiskRecord, records: list[CountryRiskRecord]) -> PeerComparisonSet:
    base = PeerComparisonSet(gdp_similar=gdp_similar(target, records))
    return merge_ranking_peers(base, ranking_peers(target, records))
