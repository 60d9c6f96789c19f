"""Prahari — Abstract Base Collector.

Every upstream provider is wrapped in a collector whose `safe_collect()`
never raises: network errors, timeouts and malformed payloads are logged
and degrade to an empty result so one bad feed cannot abort a cycle.

Two shapes exist:
  - EventCollector → list[RawEvent]            (rolling-window counts)
  - HintCollector  → list[SourceSeverityHint]  (secondary severity hints)
"""

import asyncio
import logging
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import httpx

logger = logging.getLogger("prahari.collector")

USER_AGENT = "Prahari/1.0 (conflict-signal aggregator)"

_TAG_RE = re.compile(r"<[^>]*>")

_CASUALTY_WORDS = r"(?:killed|dead|casualties|deaths|wounded|injured)"
_CASUALTY_RE = re.compile(
    rf"(\d{{1,5}})\s+(?:[a-z]+\s+)?{_CASUALTY_WORDS}|{_CASUALTY_WORDS}\s+(\d{{1,5}})",
    re.IGNORECASE,
)


class BaseCollector(ABC):
    """Base class for all provider adapters."""

    kind = "event"

    def __init__(self, name: str, timeout: float = 10.0, http_client: Optional[httpx.AsyncClient] = None):
        self.name = name
        self.timeout = timeout
        self._http_client = http_client
        self._last_fetch: Optional[datetime] = None

    async def safe_collect(self) -> list:
        """Run collect() under the per-call timeout; never raises."""
        try:
            results = await asyncio.wait_for(self.collect(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("[%s] Timed out after %.1fs", self.name, self.timeout)
            return []
        except Exception as e:
            logger.error("[%s] Collection error: %s", self.name, e)
            return []

        self._last_fetch = datetime.now(timezone.utc)
        if results:
            logger.info("[%s] Collected %d records", self.name, len(results))
        else:
            logger.debug("[%s] No records", self.name)
        return results

    async def stop(self):
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.info("[%s] Collector stopped", self.name)

    @property
    def last_fetch(self) -> Optional[datetime]:
        return self._last_fetch

    @abstractmethod
    async def collect(self) -> list:
        """Fetch and normalize records from the data source."""
        ...

    def _client(self) -> httpx.AsyncClient:
        if not self._http_client:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )
        return self._http_client

    async def fetch_json(self, url: str, params: dict = None, headers: dict = None):
        """Helper to fetch JSON from a URL."""
        resp = await self._client().get(url, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()

    async def fetch_text(self, url: str, params: dict = None) -> str:
        resp = await self._client().get(url, params=params)
        resp.raise_for_status()
        return resp.text


class EventCollector(BaseCollector):
    """Adapter returning point-in-time occurrences (RawEvent).

    `current_only` marks sources that only expose their latest items, so
    their history cannot stand in for the prior window. Their events add
    volume but are kept out of the acceleration comparison.
    """

    kind = "event"
    current_only = False


class HintCollector(BaseCollector):
    """Adapter returning coarse per-entity hints (SourceSeverityHint)."""

    kind = "hint"


# ── RSS helpers ──────────────────────────────────────────────────────────────

def strip_html(text: str) -> str:
    return re.sub(r"\s+", " ", _TAG_RE.sub("", text or "")).strip()


def parse_rss_date(value: str) -> Optional[datetime]:
    """Parse an RFC 822 pubDate into an aware UTC datetime."""
    if not value:
        return None
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_rss_items(xml_text: str) -> list[dict]:
    """Return [{title, link, description, published}] for every <item>."""
    root = ET.fromstring(xml_text)
    items = []
    for item in root.findall(".//item"):
        title = (item.findtext("title") or "").strip()
        if not title:
            continue
        items.append({
            "title": title,
            "link": (item.findtext("link") or "").strip(),
            "description": strip_html(item.findtext("description") or ""),
            "published": parse_rss_date(item.findtext("pubDate") or ""),
        })
    return items


def extract_casualties(text: str) -> Optional[int]:
    """Largest casualty figure quoted in a headline, e.g. '30 people killed' → 30."""
    figures = [int(a or b) for a, b in _CASUALTY_RE.findall(text or "")]
    return max(figures) if figures else None
