"""Prahari — Ongoing-Conflict Watch Collector.

Scans conflict-tracking RSS feeds (International Crisis Group + Army
Recognition) against a catalogue of long-running conflict zones. A zone
counts as ongoing while either feed has mentioned it within the last
ONGOING_TTL; once the press goes quiet for that long it expires on its
own — the catalogue only says *which* zones to look for and how severe
they are when active.

Catalogue severity maps to hint levels:
  red → high · orange → elevated · green → low
"""

import asyncio
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

import httpx

from backend.models import SourceSeverityHint, ThreatLevel
from collectors.base_collector import HintCollector, parse_rss_items

logger = logging.getLogger("prahari.collector")

CRISIS_WATCH_FEEDS = (
    "https://www.crisisgroup.org/rss-0",
    "https://www.armyrecognition.com/focus-analysis-conflicts/army/conflicts-in-the-world/feed/rss",
)

ONGOING_TTL = timedelta(days=30)

SEVERITY_TO_LEVEL = {
    "red": ThreatLevel.HIGH,
    "orange": ThreatLevel.ELEVATED,
    "green": ThreatLevel.LOW,
}


@dataclass(frozen=True)
class ConflictZone:
    name: str
    country: str
    pattern: re.Pattern
    severity: str


def _zone(pattern: str, name: str, country: str, severity: str) -> ConflictZone:
    return ConflictZone(name, country, re.compile(pattern, re.IGNORECASE), severity)


# ── Known conflict zone catalogue ─────────────────────────────────────────
# `country` is resolved by the CountryResolver downstream.
CONFLICT_ZONES: tuple[ConflictZone, ...] = (
    _zone(r"russia.{0,15}ukraine|ukraine.{0,15}russia|war in ukraine",
          "Russia–Ukraine War", "Ukraine", "red"),
    _zone(r"sudan.{0,15}civil|sudanese.{0,10}war|rsf.{0,10}saf|saf.{0,10}rsf",
          "Sudan Civil War", "Sudan", "red"),
    _zone(r"gaza|israel.{0,15}hamas|hamas.{0,15}israel",
          "Israel–Gaza War", "Gaza", "red"),
    _zone(r"yemen.{0,10}civil|houthi|huthi",
          "Yemen Civil War", "Yemen", "red"),
    _zone(r"congo.{0,10}m23|m23.{0,10}congo|drc.{0,10}rebel|eastern.{0,10}congo",
          "DRC – M23 Conflict", "DR Congo", "red"),
    _zone(r"ethiopia.{0,15}conflict|oromo.{0,10}liberation|fano.{0,10}militia|amhara.{0,10}conflict",
          "Ethiopian Civil Conflict", "Ethiopia", "red"),
    _zone(r"myanmar.{0,10}civil|myanmar.{0,10}military|myanmar.{0,10}coup|burma.{0,10}conflict",
          "Myanmar Civil War", "Myanmar", "orange"),
    _zone(r"haiti.{0,10}gang|haiti.{0,10}violence|haiti.{0,10}crisis",
          "Haiti Gang Crisis", "Haiti", "orange"),
    _zone(r"cameroon.{0,15}anglophone|ambaz",
          "Cameroon Anglophone Conflict", "Cameroon", "orange"),
    _zone(r"colombia.{0,10}farc|farc.{0,10}colombia|eln.{0,10}colombia",
          "Colombia Armed Groups", "Colombia", "orange"),
    _zone(r"mexico.{0,10}cartel|cartel.{0,10}mexico|drug.{0,10}war.{0,10}mexico",
          "Mexico Drug War", "Mexico", "orange"),
    _zone(r"south\s*sudan.{0,15}(?:conflict|civil|tension)",
          "South Sudan Tensions", "South Sudan", "orange"),
    _zone(r"sahel.{0,10}jihadism|burkina.{0,10}islamist|mali.{0,10}jihadist|niger.{0,10}insurgency",
          "Sahel Insurgency", "Burkina Faso", "orange"),
    _zone(r"somalia.{0,10}al.shabaab|shabaab.{0,10}somalia",
          "Somalia – Al-Shabaab", "Somalia", "orange"),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CrisisWatchCollector(HintCollector):
    """Flags catalogued conflict zones recently covered by watch feeds."""

    def __init__(
        self,
        feed_urls: Sequence[str] = CRISIS_WATCH_FEEDS,
        zones: Sequence[ConflictZone] = CONFLICT_ZONES,
        ttl: timedelta = ONGOING_TTL,
        clock: Callable[[], datetime] = _utcnow,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(name="crisis_watch", timeout=timeout, http_client=http_client)
        self._feed_urls = list(feed_urls)
        self._zones = list(zones)
        self._ttl = ttl
        self._clock = clock

    async def collect(self) -> list[SourceSeverityHint]:
        now = self._clock()

        # Tolerate individual feed failures
        results = await asyncio.gather(
            *(self.fetch_text(url) for url in self._feed_urls),
            return_exceptions=True,
        )

        last_seen: dict[str, datetime] = {}
        for url, result in zip(self._feed_urls, results):
            if isinstance(result, Exception):
                logger.warning("[crisis_watch] Feed %s failed: %s", url, result)
                continue
            try:
                items = parse_rss_items(result)
            except ET.ParseError as e:
                logger.warning("[crisis_watch] Unparseable feed %s: %s", url, e)
                continue

            for item in items:
                text = f"{item['title']} {item['description']}"
                published = item["published"] or now
                for zone in self._zones:
                    if not zone.pattern.search(text):
                        continue
                    seen = last_seen.get(zone.name)
                    if seen is None or published > seen:
                        last_seen[zone.name] = published

        hints = []
        for zone in self._zones:
            seen = last_seen.get(zone.name)
            if seen is None or now - seen > self._ttl:
                continue
            hints.append(SourceSeverityHint(
                entity_text=zone.country,
                hint_level=SEVERITY_TO_LEVEL[zone.severity],
                source="crisis_watch",
                note=f"{zone.name} ongoing, last reported {seen.date().isoformat()}",
            ))

        logger.info("[crisis_watch] %d of %d catalogued zones active", len(hints), len(self._zones))
        return hints
