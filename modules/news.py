"""
News Connector — one general RSS feed, filtered per destination.

The feed is not destination-specific, so it is fetched once and cached
process-wide for ``NEWS_CACHE_TTL_SECONDS`` (6 h).  Each request scores the
cached items against its place name and keeps the five most relevant.

Scoring:
  +10  place name (or a known alias) in the title
  +5   place name in the snippet
  +2   per tourism keyword anywhere in title + snippet

Keywords only count once the place itself is mentioned; an article that
never names the place scores 0 and is dropped.

A feed that cannot be downloaded or parsed raises ``NewsError``; nothing is
cached, so the next request tries again.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from xml.etree import ElementTree as ET

import httpx
from cachetools import TTLCache

from modules.models import NewsArticle

logger = logging.getLogger(__name__)

NEWS_FEED_URL = os.getenv("NEWS_FEED_URL", "https://news.google.com/rss?hl=en-US&gl=US&ceid=US:en")
NEWS_CACHE_TTL = int(os.getenv("NEWS_CACHE_TTL_SECONDS", "21600"))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

DEFAULT_HOURS_BACK = 72
MAX_ARTICLES = 5

TOURISM_KEYWORDS = (
    "festival", "concert", "event", "exhibition", "holiday", "celebration",
    "demonstration", "protest", "strike",
    "flight", "airport", "train", "metro", "bus",
    "hotel", "restaurant", "food", "market", "ticket", "price", "inflation",
    "crime", "police", "safety", "security", "attack",
    "weather", "storm", "flood", "heatwave", "drought", "landslide", "health", "vaccination",
    "tsunami", "hail", "tornado", "cyclone", "typhoon",
    "travel", "visa",
)

PLACE_ALIASES: dict[str, tuple[str, ...]] = {
    "new york": ("nyc", "manhattan", "brooklyn"),
    "los angeles": ("hollywood", "santa monica"),
    "washington": ("washington dc", "district of columbia"),
    "mumbai": ("bombay",),
    "kolkata": ("calcutta",),
    "chennai": ("madras",),
    "bangalore": ("bengaluru",),
    "st petersburg": ("saint petersburg", "leningrad"),
    "rome": ("roma",),
    "milan": ("milano",),
    "naples": ("napoli",),
    "florence": ("firenze",),
    "venice": ("venezia",),
    "munich": ("münchen",),
    "cologne": ("köln",),
    "vienna": ("wien",),
    "prague": ("praha",),
    "warsaw": ("warszawa",),
    "copenhagen": ("københavn",),
    "lisbon": ("lisboa",),
    "athens": ("athina",),
    "hong kong": ("hongkong",),
}

# Outlet names that contain a city name and would otherwise count as a mention.
PUBLICATION_NAMES = (
    "washington post", "washington times", "washington examiner",
    "new york times", "new york post", "new york daily news",
    "los angeles times", "chicago tribune", "chicago sun-times",
    "boston globe", "boston herald", "miami herald", "houston chronicle",
    "dallas morning news", "seattle times", "denver post", "baltimore sun",
    "philadelphia inquirer", "detroit free press", "san francisco chronicle",
)

_FEED_KEY = "feed"
_feed_cache: TTLCache = TTLCache(maxsize=1, ttl=NEWS_CACHE_TTL)


class NewsError(Exception):
    """The news feed could not be fetched or parsed."""


@dataclass
class FeedItem:
    title: str
    link: str
    description: str
    pub_date: str
    source: str


@dataclass
class FeedSnapshot:
    items: list[FeedItem] = field(default_factory=list)
    fetched_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------

def _strip_html(text: str) -> str:
    text = re.sub(r"<[^>]+>", " ", text or "")
    return re.sub(r"\s+", " ", text).strip()


def parse_feed(xml_text: str) -> list[FeedItem]:
    root = ET.fromstring(xml_text)
    items: list[FeedItem] = []
    for item in root.findall(".//item"):
        items.append(FeedItem(
            title=item.findtext("title", default="").strip() or "No title",
            link=item.findtext("link", default="").strip() or "#",
            description=_strip_html(item.findtext("description", default="")) or "No description available",
            pub_date=item.findtext("pubDate", default="").strip(),
            source=item.findtext("source", default="").strip() or "Unknown",
        ))
    return items


async def _download_feed() -> str:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True) as client:
        resp = await client.get(NEWS_FEED_URL, headers={"User-Agent": "Voyant/0.1"})
        resp.raise_for_status()
        return resp.text


async def fetch_feed(force_refresh: bool = False) -> FeedSnapshot:
    """Cached feed.

    Raises:
        NewsError: the feed could not be downloaded or parsed (nothing is cached).
    """
    if not force_refresh:
        cached = _feed_cache.get(_FEED_KEY)
        if cached is not None:
            logger.info("Using cached news feed (%d items)", len(cached.items))
            return cached

    try:
        xml_text = await _download_feed()
    except httpx.HTTPError as exc:
        raise NewsError(f"Failed to fetch RSS feed: {exc}") from exc

    try:
        items = parse_feed(xml_text)
    except ET.ParseError as exc:
        raise NewsError(f"Failed to parse RSS feed: {exc}") from exc

    snapshot = FeedSnapshot(items=items, fetched_at=datetime.now(timezone.utc))
    _feed_cache[_FEED_KEY] = snapshot
    logger.info("News feed fetched: %d items", len(items))
    return snapshot


def clear_news_cache() -> None:
    _feed_cache.clear()


# ---------------------------------------------------------------------------
# Relevance
# ---------------------------------------------------------------------------

def place_names(place: str) -> list[str]:
    """The place itself, its city part, and any known aliases (lowercase)."""
    full = (place or "").strip().lower()
    city = full.split(",")[0].strip()
    names = [n for n in dict.fromkeys((full, city)) if n]
    names.extend(PLACE_ALIASES.get(full, ()) or PLACE_ALIASES.get(city, ()))
    return names


def _mentions(text: str, names: list[str]) -> bool:
    return any(re.search(rf"\b{re.escape(n)}\b", text) for n in names)


def _without_publications(text: str) -> str:
    for pub in PUBLICATION_NAMES:
        text = text.replace(pub, " ")
    return text


def score_article(title: str, description: str, place: str) -> int:
    names = place_names(place)
    if not names:
        return 0
    title_l = _without_publications(title.lower())
    desc_l = _without_publications(description.lower())

    in_title = _mentions(title_l, names)
    in_desc = _mentions(desc_l, names)
    if not (in_title or in_desc):
        return 0

    score = (10 if in_title else 0) + (5 if in_desc else 0)
    combined = f"{title_l} {desc_l}"
    score += 2 * sum(1 for kw in TOURISM_KEYWORDS if kw in combined)
    return score


def _published(item: FeedItem) -> datetime:
    try:
        dt = parsedate_to_datetime(item.pub_date)
    except (TypeError, ValueError):
        return datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def rank_articles(
    items: list[FeedItem],
    place: str,
    hours_back: int | None = DEFAULT_HOURS_BACK,
    limit: int = MAX_ARTICLES,
) -> list[NewsArticle]:
    """Score, drop zero scores and stale items, keep the top *limit*."""
    cutoff = None
    if hours_back is not None:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours_back)

    scored: list[NewsArticle] = []
    for item in items:
        score = score_article(item.title, item.description, place)
        if score <= 0:
            continue
        if cutoff is not None and _published(item) < cutoff:
            continue
        scored.append(NewsArticle(
            title=item.title,
            link=item.link,
            description=item.description,
            pub_date=item.pub_date,
            source=item.source,
            relevance_score=score,
        ))

    scored.sort(key=lambda a: a.relevance_score, reverse=True)
    return scored[:limit]


async def get_city_news(
    place: str,
    hours_back: int | None = DEFAULT_HOURS_BACK,
    force_refresh: bool = False,
) -> list[NewsArticle]:
    feed = await fetch_feed(force_refresh=force_refresh)
    articles = rank_articles(feed.items, place, hours_back=hours_back)
    logger.info("News: %d relevant articles for '%s'", len(articles), place)
    return articles
