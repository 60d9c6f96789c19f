"""Tests for provider adapters against mocked HTTP transports."""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from backend.models import ThreatLevel
from collectors.acled_collector import ACLEDCollector
from collectors.base_collector import EventCollector, extract_casualties, parse_rss_items
from collectors.conflict_feed_collector import ConflictFeedCollector
from collectors.crisis_watch_collector import CrisisWatchCollector
from collectors.gdelt_collector import GDELTCollector, _parse_gdelt_date
from collectors.reliefweb_collector import ReliefWebCollector, has_conflict_theme

from conftest import NOW, FakeClock


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _json_handler(payload, status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload)
    return handler


def _rss(*items: tuple[str, str, str]) -> str:
    body = "".join(
        f"<item><title>{t}</title><description>{d}</description><pubDate>{p}</pubDate></item>"
        for t, d, p in items
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>feed</title>{body}</channel></rss>'


def _text_handler(text, status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=text)
    return handler


class _SlowCollector(EventCollector):
    async def collect(self):
        await asyncio.sleep(1.0)
        return ["never"]


class _BrokenCollector(EventCollector):
    async def collect(self):
        raise KeyError("payload")


class TestSafeCollect:
    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self):
        assert await _SlowCollector(name="slow", timeout=0.05).safe_collect() == []

    @pytest.mark.asyncio
    async def test_exception_returns_empty(self):
        assert await _BrokenCollector(name="broken").safe_collect() == []

    @pytest.mark.asyncio
    async def test_http_error_returns_empty(self):
        collector = GDELTCollector(http_client=_client(_json_handler({}, status=503)))
        assert await collector.safe_collect() == []

    @pytest.mark.asyncio
    async def test_malformed_json_returns_empty(self):
        collector = GDELTCollector(http_client=_client(_text_handler("<html>rate limited</html>")))
        assert await collector.safe_collect() == []


class TestACLEDCollector:
    @pytest.mark.asyncio
    async def test_parses_events_and_sends_credentials(self):
        seen = []
        payload = {
            "success": True,
            "data": [
                {"country": "Sudan", "latitude": "13.63", "longitude": "25.35",
                 "event_date": "2025-02-27", "timestamp": "1740700800", "fatalities": "5"},
                {"country": "Myanmar", "latitude": "", "longitude": "",
                 "event_date": "2025-02-26"},
                {"country": "", "latitude": "1", "longitude": "1", "event_date": "2025-02-26"},
                {"country": "Mali", "latitude": "not-a-number", "longitude": "1",
                 "event_date": "2025-02-26"},
            ],
        }
        collector = ACLEDCollector("key123", "analyst@example.org",
                                   http_client=_client(_json_handler(payload, seen=seen)))
        events = await collector.safe_collect()

        assert [e.entity_text for e in events] == ["Sudan", "Myanmar"]
        sudan, myanmar = events
        assert (sudan.latitude, sudan.longitude) == (13.63, 25.35)
        assert sudan.occurred_at == datetime.fromtimestamp(1740700800, timezone.utc)
        assert myanmar.latitude is None
        assert myanmar.occurred_at == datetime(2025, 2, 26, tzinfo=timezone.utc)
        assert all(e.weight == 1.0 and e.source == "acled" for e in events)
        assert (sudan.fatalities, myanmar.fatalities) == (5, 0)

        params = seen[0].url.params
        assert params["key"] == "key123"
        assert params["email"] == "analyst@example.org"
        assert params["event_date_where"] == "BETWEEN"
        assert "Battles" in params["event_type"]
        assert "fatalities" in params["fields"].split(",")

    @pytest.mark.asyncio
    async def test_unreadable_fatalities_count_as_zero(self):
        payload = {"success": True, "data": [
            {"country": "Mali", "event_date": "2025-02-26", "fatalities": "n/a"},
        ]}
        collector = ACLEDCollector("k", "e@x.org", http_client=_client(_json_handler(payload)))
        (mali,) = await collector.safe_collect()
        assert mali.fatalities == 0

    @pytest.mark.asyncio
    async def test_unconfigured_skips_network(self):
        seen = []
        collector = ACLEDCollector(None, None, http_client=_client(_json_handler({}, seen=seen)))
        assert not collector.configured
        assert await collector.safe_collect() == []
        assert seen == []

    @pytest.mark.asyncio
    async def test_unsuccessful_response_is_empty(self):
        payload = {"success": False, "error": [{"message": "Access denied"}]}
        collector = ACLEDCollector("k", "e@x.org", http_client=_client(_json_handler(payload)))
        assert await collector.safe_collect() == []


class TestCasualtyExtraction:
    @pytest.mark.parametrize("text,expected", [
        ("Israeli strikes kill 12 in Gaza; 30 wounded", 30),
        ("At least 18 people killed in Khartoum", 18),
        ("Death toll: killed 7, injured 22", 22),
        ("Ceasefire talks resume in Doha", None),
        ("", None),
    ])
    def test_largest_figure_wins(self, text, expected):
        assert extract_casualties(text) == expected


class TestGDELTCollector:
    @pytest.mark.asyncio
    async def test_prior_and_current_windows_queried_separately(self):
        seen = []
        by_window = {
            "20250215120000": {"articles": [
                {"title": "Shelling in Donetsk", "seendate": "20250218T080000Z"},
            ]},
            "20250222120000": {"articles": [
                {"title": "Airstrike hits Khartoum market, 14 killed", "seendate": "20250228T101500Z",
                 "url": "https://news.test/khartoum", "domain": "news.test"},
                {"title": "", "seendate": "20250228T101500Z"},
                {"title": "Clashes near Goma", "seendate": "garbage"},
            ]},
        }

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=by_window[request.url.params["startdatetime"]])

        collector = GDELTCollector(window_days=7, clock=FakeClock(), http_client=_client(handler))
        events = await collector.safe_collect()

        windows = sorted((r.url.params["startdatetime"], r.url.params["enddatetime"]) for r in seen)
        assert windows == [
            ("20250215120000", "20250222120000"),
            ("20250222120000", "20250301120000"),
        ]
        assert all("timespan" not in r.url.params for r in seen)
        assert all(r.url.params["maxrecords"] == "250" for r in seen)

        by_title = {e.entity_text: e for e in events}
        assert set(by_title) == {"Shelling in Donetsk", "Airstrike hits Khartoum market, 14 killed"}
        khartoum = by_title["Airstrike hits Khartoum market, 14 killed"]
        assert khartoum.occurred_at == datetime(2025, 2, 28, 10, 15, tzinfo=timezone.utc)
        assert khartoum.latitude is None
        assert khartoum.story.link == "https://news.test/khartoum"
        assert khartoum.story.source == "news.test"
        assert khartoum.story.casualties == 14

    @pytest.mark.asyncio
    async def test_one_failed_window_drops_both(self):
        def handler(request):
            if request.url.params["startdatetime"] == "20250215120000":
                return httpx.Response(503)
            return httpx.Response(200, json={"articles": [
                {"title": "Shelling in Donetsk", "seendate": "20250228T080000Z"},
            ]})

        collector = GDELTCollector(clock=FakeClock(), http_client=_client(handler))
        assert await collector.safe_collect() == []

    @pytest.mark.asyncio
    async def test_empty_payload(self):
        collector = GDELTCollector(clock=FakeClock(), http_client=_client(_json_handler({})))
        assert await collector.safe_collect() == []

    @pytest.mark.parametrize("raw,expected", [
        ("20250228T101500Z", datetime(2025, 2, 28, 10, 15, tzinfo=timezone.utc)),
        ("20250228101500", datetime(2025, 2, 28, 10, 15, tzinfo=timezone.utc)),
        ("2025-02-28", datetime(2025, 2, 28, tzinfo=timezone.utc)),
        ("", None),
        ("yesterday", None),
    ])
    def test_parse_gdelt_date(self, raw, expected):
        assert _parse_gdelt_date(raw) == expected


class TestConflictFeedCollector:
    @pytest.mark.asyncio
    async def test_items_deduplicated_by_title_prefix(self):
        prefix = "Dozens killed as fighting intensifies across eastern Democratic "
        xml = _rss(
            (prefix + "Republic of Congo", "&lt;p&gt;M23 advance on Goma&lt;/p&gt;", "Fri, 28 Feb 2025 09:00:00 GMT"),
            (prefix.upper() + "REPUBLIC OF THE CONGO", "duplicate", "Fri, 28 Feb 2025 10:00:00 GMT"),
            ("Strikes on Gaza", "Overnight raids", "Thu, 27 Feb 2025 22:30:00 +0000"),
            ("No date here", "", ""),
        )
        collector = ConflictFeedCollector(http_client=_client(_text_handler(xml)))
        events = await collector.safe_collect()

        assert len(events) == 2
        assert events[0].entity_text.endswith("M23 advance on Goma")
        assert events[0].occurred_at == datetime(2025, 2, 28, 9, 0, tzinfo=timezone.utc)
        assert events[1].entity_text == "Strikes on Gaza Overnight raids"

    @pytest.mark.asyncio
    async def test_items_carry_stories(self):
        xml = _rss(
            ("Dozens killed in Sudan market attack", "At least 40 people killed, officials say", "Fri, 28 Feb 2025 09:00:00 GMT"),
            ("Haiti gangs seize port", "", "Fri, 28 Feb 2025 07:00:00 GMT"),
        )
        collector = ConflictFeedCollector(http_client=_client(_text_handler(xml)))
        sudan, haiti = await collector.safe_collect()

        assert sudan.story.title == "Dozens killed in Sudan market attack"
        assert sudan.story.summary == "At least 40 people killed, officials say"
        assert sudan.story.source == "Al Jazeera"
        assert sudan.story.published_at == datetime(2025, 2, 28, 9, 0, tzinfo=timezone.utc)
        assert sudan.story.casualties == 40
        assert haiti.story.casualties is None

    def test_feed_is_current_only(self):
        assert ConflictFeedCollector.current_only
        assert not GDELTCollector.current_only
        assert not ACLEDCollector.current_only

    @pytest.mark.asyncio
    async def test_invalid_xml_returns_empty(self):
        collector = ConflictFeedCollector(http_client=_client(_text_handler("<rss><channel>")))
        assert await collector.safe_collect() == []

    def test_parse_rss_items_strips_html(self):
        items = parse_rss_items(_rss(("Title", "&lt;b&gt;bold&lt;/b&gt;  and &lt;i&gt;more&lt;/i&gt;", "")))
        assert items[0]["description"] == "bold and more"
        assert items[0]["published"] is None


class TestCrisisWatchCollector:
    @pytest.mark.asyncio
    async def test_recent_zone_mentions_become_hints(self):
        recent = (NOW - timedelta(days=3)).strftime("%a, %d %b %Y %H:%M:%S +0000")
        stale = (NOW - timedelta(days=45)).strftime("%a, %d %b %Y %H:%M:%S +0000")
        feeds = {
            "https://feed-a.test/rss": _rss(
                ("Houthi missiles target shipping", "", recent),
                ("Colombia FARC dissidents regroup", "", stale),
            ),
            "https://feed-b.test/rss": _rss(
                ("Inside the Myanmar military offensive", "", recent),
            ),
        }

        def handler(request):
            return httpx.Response(200, text=feeds[str(request.url)])

        collector = CrisisWatchCollector(
            feed_urls=list(feeds), clock=FakeClock(), http_client=_client(handler),
        )
        hints = await collector.safe_collect()

        by_text = {h.entity_text: h for h in hints}
        assert set(by_text) == {"Yemen", "Myanmar"}
        assert by_text["Yemen"].hint_level == ThreatLevel.HIGH
        assert by_text["Myanmar"].hint_level == ThreatLevel.ELEVATED
        assert all(h.source == "crisis_watch" for h in hints)

    @pytest.mark.asyncio
    async def test_one_failing_feed_is_tolerated(self):
        recent = (NOW - timedelta(days=1)).strftime("%a, %d %b %Y %H:%M:%S +0000")

        def handler(request):
            if "bad" in str(request.url):
                return httpx.Response(500)
            return httpx.Response(200, text=_rss(("Sudan civil war enters third year", "", recent)))

        collector = CrisisWatchCollector(
            feed_urls=["https://bad.test/rss", "https://good.test/rss"],
            clock=FakeClock(), http_client=_client(handler),
        )
        hints = await collector.safe_collect()
        assert [h.entity_text for h in hints] == ["Sudan"]


class TestReliefWebCollector:
    @staticmethod
    def _report(created, themes, countries):
        return {"fields": {
            "date": {"created": created},
            "theme": [{"name": t} for t in themes],
            "country": [{"name": c} for c in countries],
        }}

    @pytest.mark.asyncio
    async def test_counts_fresh_conflict_reports(self):
        fresh = (NOW - timedelta(hours=2)).isoformat()
        old = (NOW - timedelta(hours=30)).isoformat()
        payload = {"data": [
            self._report(fresh, ["Contributions", "Conflict and Violence"], ["Sudan"]),
            self._report(fresh, ["Protection and Human Rights", "Armed Conflict"], ["Sudan", "Chad"]),
            self._report(fresh, ["Conflict and Violence"], ["Sudan"]),
            self._report(fresh, ["Health"], ["Sudan"]),
            self._report(old, ["Conflict and Violence"], ["Haiti"]),
        ]}
        seen = []
        collector = ReliefWebCollector(clock=FakeClock(), http_client=_client(_json_handler(payload, seen=seen)))
        hints = await collector.safe_collect()

        levels = {h.entity_text: h.hint_level for h in hints}
        assert levels == {"Sudan": ThreatLevel.HIGH, "Chad": ThreatLevel.ELEVATED}
        assert seen[0].url.params["appname"] == "prahari"

    def test_conflict_theme_detection(self):
        assert has_conflict_theme([{"name": "Safety and Security"}])
        assert not has_conflict_theme([{"name": "Food and Nutrition"}])
        assert not has_conflict_theme(None)

    @pytest.mark.asyncio
    async def test_non_dict_payload_is_empty(self):
        collector = ReliefWebCollector(clock=FakeClock(), http_client=_client(_text_handler(json.dumps([1, 2]))))
        assert await collector.safe_collect() == []
