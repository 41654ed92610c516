"""
Destination Routes — search, comparison, autocomplete, country list.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Query

from api.schemas import CompareRequest, CountriesResponse, SuggestionsResponse
from modules.models import FusedResult
from modules.pipeline import resolve_and_fuse, suggest
from modules.risk_dataset import get_risk_dataset

router = APIRouter()


# ---- Health ---- #

@router.get("/health")
async def health():
    return {"status": "ok"}


# ---- Destinations ---- #

@router.get("/search", response_model=FusedResult)
async def search(
    destination: str = Query(..., min_length=1, description='"City, Country" or a country name'),
    compare: str | None = Query(default=None, description="Optional second destination"),
):
    """Resolve a destination and fuse every data source for it."""
    return await resolve_and_fuse(destination, compare)


@router.post("/compare", response_model=FusedResult)
async def compare(req: CompareRequest):
    """Two destinations side by side; the second is in ``comparison``."""
    return await resolve_and_fuse(req.first_destination, req.second_destination)


@router.get("/city-search", response_model=SuggestionsResponse)
async def city_search(
    q: str = Query(default=""),
    limit: int = Query(default=8, ge=1, le=50),
):
    return SuggestionsResponse(suggestions=suggest(q, limit))


@router.get("/countries", response_model=CountriesResponse)
async def countries():
    """All country names available in the risk dataset."""
    records = await asyncio.to_thread(get_risk_dataset().get_all_ranked)
    return CountriesResponse(countries=sorted({r.country for r in records}))
