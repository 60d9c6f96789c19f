"""Prahari — GDELT Armed-Conflict Article Collector.

Uses the GDELT DOC 2.0 API (artlist mode) — completely FREE, no API key.
Every matching article counts as one event; the article title is the
location text handed to the country resolver, so headlines that name no
country are dropped downstream.

The API returns at most 250 articles per query, newest first, so one query
over both windows would come back filled from the current window alone.
The prior and current windows are therefore queried separately with
startdatetime/enddatetime, and each is capped the same way.

GDELT refreshes every 15 minutes, which is why the result cache TTL
defaults to 900 s.

Reference:
  https://blog.gdeltproject.org/gdelt-doc-2-0-api-debuts/
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from backend.models import RawEvent, StoryEntry
from collectors.base_collector import EventCollector, extract_casualties
from fusion_engine.window_aggregator import rolling_windows

logger = logging.getLogger("prahari.collector")

# ── GDELT API endpoint ─────────────────────────────────────────────────────
GDELT_DOC_URL = "https://api.gdeltproject.org/api/v2/doc/doc"

# Max articles per query (API ceiling is 250)
MAX_RECORDS = 250

CONFLICT_QUERY = (
    '(airstrike OR shelling OR "armed clashes" OR insurgents OR militants '
    'OR "killed in" OR offensive OR bombardment) sourcelang:english'
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GDELTCollector(EventCollector):
    """Fetches armed-conflict headlines from the GDELT DOC API."""

    def __init__(
        self,
        window_days: int = 7,
        doc_url: str = GDELT_DOC_URL,
        query: str = CONFLICT_QUERY,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(name="gdelt", timeout=timeout, http_client=http_client)
        self._doc_url = doc_url
        self._query = query
        self._window = timedelta(days=window_days)
        self._clock = clock

    async def collect(self) -> list[RawEvent]:
        prior, current = rolling_windows(self._clock(), self._window)
        # Both windows or nothing
        batches = await asyncio.gather(
            self._fetch_window(*prior),
            self._fetch_window(*current),
        )
        return [event for batch in batches for event in batch]

    async def _fetch_window(self, start: datetime, end: datetime) -> list[RawEvent]:
        params = {
            "query": self._query,
            "mode": "artlist",
            "format": "json",
            "maxrecords": MAX_RECORDS,
            "sort": "datedesc",
            "startdatetime": _gdelt_stamp(start),
            "enddatetime": _gdelt_stamp(end),
        }

        data = await self.fetch_json(self._doc_url, params=params)
        articles = (data.get("articles") or []) if isinstance(data, dict) else []
        if len(articles) >= MAX_RECORDS:
            logger.warning("[gdelt] Window %s → %s hit the %d-article cap",
                           params["startdatetime"], params["enddatetime"], MAX_RECORDS)

        events = []
        for article in articles:
            try:
                event = self._parse_article(article)
            except (TypeError, ValueError, ValidationError) as e:
                logger.debug("[gdelt] Skipping article: %s", e)
                continue
            if event:
                events.append(event)

        logger.info("[gdelt] %s → %s: %d articles → %d events",
                    params["startdatetime"], params["enddatetime"], len(articles), len(events))
        return events

    def _parse_article(self, article: dict) -> RawEvent | None:
        title = (article.get("title") or "").strip()
        occurred_at = _parse_gdelt_date(article.get("seendate", ""))
        if not title or occurred_at is None:
            return None

        return RawEvent(
            entity_text=title,
            occurred_at=occurred_at,
            weight=1.0,
            source="gdelt",
            story=StoryEntry(
                title=title,
                link=article.get("url") or "",
                source=article.get("domain") or "GDELT",
                published_at=occurred_at,
                casualties=extract_casualties(title),
            ),
        )


def _gdelt_stamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")


def _parse_gdelt_date(date_str: str) -> datetime | None:
    """Parse GDELT date formats: '20240215T120000Z', '20240215120000' or '2024-02-15'."""
    if not date_str:
        return None
    date_str = str(date_str).strip()
    for fmt in ("%Y%m%dT%H%M%SZ", "%Y%m%d%H%M%S", "%Y%m%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(date_str, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None
