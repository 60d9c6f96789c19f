"""Prahari — ReliefWeb Humanitarian Reports Collector.

Pulls the latest reports from the ReliefWeb API (free, `appname` only),
keeps those created in the last 24 h with a conflict/violence theme and
counts them per country. Three or more reports → high, otherwise
elevated.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx

from backend.models import SourceSeverityHint, ThreatLevel
from collectors.base_collector import HintCollector

logger = logging.getLogger("prahari.collector")

RELIEFWEB_URL = "https://api.reliefweb.int/v1/reports"

LOOKBACK = timedelta(hours=24)
HIGH_REPORT_COUNT = 3
MAX_REPORTS = 100

CONFLICT_THEMES = {
    "conflict and violence",
    "violence and conflict",
    "armed conflict",
    "armed clashes",
}
CONFLICT_THEME_WORDS = ("conflict", "violence", "war", "armed", "attack", "security")


def has_conflict_theme(themes: list) -> bool:
    for theme in themes or []:
        name = (theme.get("name") or "").lower() if isinstance(theme, dict) else ""
        if name in CONFLICT_THEMES or any(w in name for w in CONFLICT_THEME_WORDS):
            return True
    return False


def _parse_iso(value: str) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReliefWebCollector(HintCollector):
    """Counts fresh conflict-themed ReliefWeb reports per country."""

    def __init__(
        self,
        api_url: str = RELIEFWEB_URL,
        appname: str = "prahari",
        clock: Callable[[], datetime] = _utcnow,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(name="reliefweb", timeout=timeout, http_client=http_client)
        self._api_url = api_url
        self._appname = appname
        self._clock = clock

    async def collect(self) -> list[SourceSeverityHint]:
        params = [
            ("appname", self._appname),
            ("limit", MAX_REPORTS),
            ("fields[include][]", "date"),
            ("fields[include][]", "title"),
            ("fields[include][]", "theme"),
            ("fields[include][]", "country"),
            ("sort[]", "date.created:desc"),
        ]
        data = await self.fetch_json(self._api_url, params=params, headers={"Accept": "application/json"})
        reports = (data.get("data") or []) if isinstance(data, dict) else []

        cutoff = self._clock() - LOOKBACK
        counts: Counter[str] = Counter()
        for report in reports:
            fields = (report.get("fields") or {}) if isinstance(report, dict) else {}
            created = _parse_iso((fields.get("date") or {}).get("created", ""))
            if created is None or created < cutoff:
                continue
            if not has_conflict_theme(fields.get("theme")):
                continue
            for country in fields.get("country") or []:
                name = (country.get("name") or "").strip()
                if name:
                    counts[name] += 1

        hints = [
            SourceSeverityHint(
                entity_text=name,
                hint_level=ThreatLevel.HIGH if n >= HIGH_REPORT_COUNT else ThreatLevel.ELEVATED,
                source="reliefweb",
                note=f"{n} conflict report{'s' if n != 1 else ''} in 24h",
            )
            for name, n in sorted(counts.items())
        ]
        logger.info("[reliefweb] %d reports → %d country hints", len(reports), len(hints))
        return hints
