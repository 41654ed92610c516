"""
Encyclopedic-Summary Connector (Wikipedia REST summary endpoint).

Returns a short plain-text summary for a place, or ``None`` when nothing
usable is found.  It never raises.
"""

from __future__ import annotations

import logging
import os
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

WIKIPEDIA_SUMMARY_URL = "https://en.wikipedia.org/api/rest_v1/page/summary/"
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
SUMMARY_MAX_CHARS = 2000
USER_AGENT = "Voyant/0.1 (travel destination briefings)"


def candidate_titles(place: str, iso2: str | None = None) -> list[str]:
    """Titles to try, most specific first.

    ``"Vienna, United States"`` -> ``Vienna, United States``,
    ``Vienna (United States)``, ``Vienna, US``, ``Vienna``.
    """
    place = (place or "").strip()
    if "," not in place:
        return [place] if place else []
    city, country = (p.strip() for p in place.split(",", 1))
    titles = [f"{city}, {country}", f"{city} ({country})"]
    if iso2:
        titles.append(f"{city}, {iso2}")
    titles.append(city)
    return list(dict.fromkeys(t for t in titles if t.strip(", ()")))


def _usable_extract(data: dict) -> str | None:
    extract = data.get("extract") or ""
    if not extract or data.get("type") == "disambiguation" or "disambiguation" in extract:
        return None
    return extract


async def fetch_summary(title: str, client: httpx.AsyncClient) -> str | None:
    resp = await client.get(WIKIPEDIA_SUMMARY_URL + quote(title, safe=""))
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return _usable_extract(resp.json())


async def get_summary(place: str, iso2: str | None = None) -> str | None:
    """First usable summary among the candidate titles, truncated."""
    titles = candidate_titles(place, iso2)
    if not titles:
        return None

    async with httpx.AsyncClient(
        timeout=HTTP_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    ) as client:
        for title in titles:
            try:
                extract = await fetch_summary(title, client)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Wikipedia lookup failed for '%s': %s", title, exc)
                continue
            if extract:
                logger.info("Wikipedia summary found for '%s' (title '%s')", place, title)
                return extract[:SUMMARY_MAX_CHARS]

    logger.info("No Wikipedia summary for '%s'", place)
    return None
