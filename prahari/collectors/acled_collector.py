"""Prahari — ACLED Conflict Events Collector.

Uses the ACLED read API — requires an access key and registered email.
Register at: https://developer.acleddata.com/

Only violent event types are requested, so every event carries the same
weight and BASE_WEIGHT in the scoring model stands for their average
severity. If credentials are not configured, this collector logs a
warning and returns empty results.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Optional

import httpx
from pydantic import ValidationError

from backend.models import RawEvent
from collectors.base_collector import EventCollector

logger = logging.getLogger("prahari.collector")

# ACLED API endpoint
ACLED_API_URL = "https://api.acleddata.com/acled/read"

VIOLENT_EVENT_TYPES = (
    "Battles",
    "Explosions/Remote violence",
    "Violence against civilians",
)

RESPONSE_FIELDS = "event_id_cnty,country,iso,latitude,longitude,event_type,event_date,timestamp,fatalities"


class ACLEDCollector(EventCollector):
    """Fetches violent conflict events from the ACLED API."""

    MAX_EVENTS = 5000

    def __init__(
        self,
        api_key: Optional[str],
        email: Optional[str],
        lookback_days: int = 14,
        api_url: str = ACLED_API_URL,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(name="acled", timeout=timeout, http_client=http_client)
        self._api_key = api_key or ""
        self._email = email or ""
        self._api_url = api_url
        self._lookback_days = lookback_days
        self._configured = bool(self._api_key and self._email)

        if not self._configured:
            logger.warning(
                "[acled] ACLED key or email not configured. "
                "Set PRAHARI_ACLED_API_KEY / PRAHARI_ACLED_EMAIL or add "
                '"acled_api_key" and "acled_email" to credentials.json'
            )

    @property
    def configured(self) -> bool:
        return self._configured

    async def collect(self) -> list[RawEvent]:
        """Fetch ACLED events covering both aggregation windows."""
        if not self._configured:
            logger.debug("[acled] Skipping — credentials not configured")
            return []

        today = datetime.now(timezone.utc).date()
        since = today - timedelta(days=self._lookback_days)

        params = {
            "key": self._api_key,
            "email": self._email,
            "event_date": f"{since.isoformat()}|{today.isoformat()}",
            "event_date_where": "BETWEEN",
            "event_type": "|".join(VIOLENT_EVENT_TYPES),
            "fields": RESPONSE_FIELDS,
            "limit": self.MAX_EVENTS,
        }

        data = await self.fetch_json(self._api_url, params=params, headers={"Accept": "application/json"})
        if not isinstance(data, dict) or data.get("success") is False:
            logger.warning("[acled] Unsuccessful response: %s", str(data)[:200])
            return []

        results = data.get("data") or []
        events = []
        for record in results:
            try:
                event = self._parse_acled_event(record)
            except (TypeError, ValueError, ValidationError) as e:
                logger.debug("[acled] Skipping record: %s", e)
                continue
            if event:
                events.append(event)

        logger.info("[acled] Returned %d conflict events", len(events))
        return events

    def _parse_acled_event(self, record: dict) -> RawEvent | None:
        """Parse a single ACLED record into a RawEvent."""
        country = (record.get("country") or "").strip()
        if not country:
            return None

        lat = record.get("latitude")
        lon = record.get("longitude")
        lat = float(lat) if lat not in (None, "") else None
        lon = float(lon) if lon not in (None, "") else None

        # Prefer the unix timestamp; fall back to the event date
        timestamp_int = record.get("timestamp")
        if timestamp_int:
            occurred_at = datetime.fromtimestamp(int(timestamp_int), timezone.utc)
        else:
            occurred_at = datetime.strptime(record["event_date"], "%Y-%m-%d").replace(tzinfo=timezone.utc)

        return RawEvent(
            entity_text=country,
            occurred_at=occurred_at,
            weight=1.0,
            latitude=lat,
            longitude=lon,
            source="acled",
            fatalities=_parse_fatalities(record.get("fatalities")),
        )


def _parse_fatalities(value) -> int:
    """ACLED reports fatalities as a string; anything unreadable counts as 0."""
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0

