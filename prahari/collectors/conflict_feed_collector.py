"""Prahari — Conflict News Feed Collector.

Al Jazeera's conflict RSS feed, parsed with ElementTree. Each item becomes
one event whose location text is the title plus the stripped description.
Syndicated duplicates are collapsed on the first 60 characters of the
lowercased title. Every item also carries its headline as a story, with
any casualty figure quoted in it.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from backend.models import RawEvent, StoryEntry
from collectors.base_collector import EventCollector, extract_casualties, parse_rss_items

logger = logging.getLogger("prahari.collector")

CONFLICT_FEED_URL = "https://www.aljazeera.com/xml/rss/subjects/conflict.xml"

DEDUP_PREFIX_LEN = 60
SUMMARY_LEN = 300


class ConflictFeedCollector(EventCollector):
    """Fetches conflict headlines from an RSS feed.

    The feed only carries its latest items, so it cannot speak for the
    prior window.
    """

    current_only = True

    def __init__(
        self,
        feed_url: str = CONFLICT_FEED_URL,
        outlet: str = "Al Jazeera",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(name="conflict_feed", timeout=timeout, http_client=http_client)
        self._feed_url = feed_url
        self._outlet = outlet

    async def collect(self) -> list[RawEvent]:
        xml_text = await self.fetch_text(self._feed_url)
        items = parse_rss_items(xml_text)

        seen: set[str] = set()
        events = []
        for item in items:
            key = item["title"].lower()[:DEDUP_PREFIX_LEN]
            if key in seen:
                continue
            seen.add(key)

            if item["published"] is None:
                logger.debug("[conflict_feed] No pubDate on %r", item["title"][:60])
                continue
            text = f"{item['title']} {item['description']}".strip()
            try:
                events.append(RawEvent(
                    entity_text=text,
                    occurred_at=item["published"],
                    weight=1.0,
                    source="conflict_feed",
                    story=StoryEntry(
                        title=item["title"],
                        summary=item["description"][:SUMMARY_LEN],
                        link=item["link"],
                        source=self._outlet,
                        published_at=item["published"],
                        casualties=extract_casualties(text),
                    ),
                ))
            except ValidationError as e:
                logger.debug("[conflict_feed] Skipping item: %s", e)

        return events
