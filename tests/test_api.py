"""
API tests: proxy relays, hazard feed endpoints, health probes.

Upstream HTTP is replaced with httpx.MockTransport through FastAPI
dependency overrides, so nothing here touches the network.

Run with:
    pytest tests/test_api.py -v
"""

from __future__ import annotations

import asyncio
import copy

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app.core.config import settings
from backend.app.core.errors import EarthquakeFeedUnavailable
from backend.app.core.http_clients import build_relay_client, get_upstream_client
from backend.app.hazards.aggregator import HazardAggregator, build_aggregator
from backend.app.hazards.models import HazardEvent, HazardFeed, HazardType, SourceName, SourceResult
from backend.app.hazards.refresher import HazardFeedRefresher
from backend.app.api.v1.hazards import get_aggregator, get_refresher
from backend.app.main import app


TSUNAMI_XML = (
    '<feed xmlns="http://www.w3.org/2005/Atom" xmlns:georss="http://www.georss.org/georss">'
    "<entry><title>Tsunami Warning</title><published>2024-01-01T00:00:00Z</published>"
    "<georss:point>38.3 142.4</georss:point></entry></feed>"
)
FIRMS_CSV = "latitude,longitude,bright_ti4,acq_date\n-33.9,151.2,367.2,2024-01-02\n"
NWS_ALERTS = {
    "type": "FeatureCollection",
    "features": [{
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [-95.4, 29.8]},
        "properties": {"event": "Tornado Warning", "severity": "Extreme",
                       "sent": "2024-01-03T00:00:00Z"},
    }],
}
NWIS = {"value": {"timeSeries": [
    {
        "sourceInfo": {
            "siteName": "GUADALUPE RV AT VICTORIA, TX",
            "siteCode": [{"value": "08176500"}],
            "geoLocation": {"geogLocation": {"latitude": 28.79, "longitude": -97.01}},
            "siteProperty": [{"name": "stateCd", "value": "48"}],
        },
        "values": [{"value": [
            {"value": "18.0", "dateTime": "2024-01-04T06:00:00.000-06:00"},
            {"value": "21.3", "dateTime": "2024-01-04T06:15:00.000-06:00"},
        ]}],
    },
    {
        "sourceInfo": {"siteName": "NO DATA", "siteCode": [{"value": "1"}]},
        "values": [{"value": []}],
    },
]}}
QUAKES = {"type": "FeatureCollection", "features": [{
    "id": "us6000xyz",
    "properties": {"mag": 6.2, "place": "X", "time": 1700000000000},
    "geometry": {"type": "Point", "coordinates": [10, 20, 5]},
}]}


def _upstream_handler(request: httpx.Request) -> httpx.Response:
    host = request.url.host
    if host == "earthquake.usgs.gov":
        return httpx.Response(200, json=QUAKES)
    if host == "www.tsunami.gov":
        return httpx.Response(200, text=TSUNAMI_XML)
    if host == "firms.modaps.eosdis.nasa.gov":
        return httpx.Response(200, text=FIRMS_CSV)
    if host == "api.weather.gov":
        return httpx.Response(200, json=NWS_ALERTS)
    if host == "waterservices.usgs.gov":
        return httpx.Response(200, json=NWIS)
    return httpx.Response(404)


def _use_upstream(handler):
    async def override():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as upstream:
            yield upstream

    app.dependency_overrides[get_upstream_client] = override


def _make_event(hazard_type=HazardType.EARTHQUAKE, magnitude=6.2, i=0):
    return HazardEvent(
        id=f"{hazard_type.value}-{i}", title="t", description="d",
        lat=20.0, lng=10.0, magnitude=magnitude,
        date="2023-11-14T22:13:20.000Z", type=hazard_type, source="USGS",
    )


class _FixedAggregator(HazardAggregator):
    def __init__(self, feed=None, error=None):
        self.feed = feed
        self.error = error

    async def fetch_all(self):
        if self.error is not None:
            raise self.error
        return self.feed


def _make_feed():
    return HazardFeed(
        events=[
            _make_event(),
            _make_event(HazardType.FIRE, 3.5, 1),
            _make_event(HazardType.FLOOD, 2.0, 2),
        ],
        sources="USGS Earthquakes, NASA FIRMS Wildfires, USGS Water Services",
        timestamp="Tue Nov 14 22:13:20 2023",
        results=[SourceResult(SourceName.EARTHQUAKE)],
    )


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def firms_key(monkeypatch):
    monkeypatch.setattr(settings, "FIRMS_API_KEY", "server-key")


# ═══════════════════════════════════════════════════════════════════════════
# Proxy relays
# ═══════════════════════════════════════════════════════════════════════════

class TestTsunamiRelay:
    def test_passthrough(self, client):
        _use_upstream(_upstream_handler)
        r = client.get("/api/v1/proxy/tsunami")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/xml")
        assert r.text == TSUNAMI_XML

    def test_body_relayed_byte_for_byte(self, client):
        body = (
            '<?xml version="1.0" encoding="ISO-8859-1"?>'
            "<feed><title>Île de Pâques</title></feed>"
        ).encode("latin-1")
        _use_upstream(lambda request: httpx.Response(200, content=body))
        r = client.get("/api/v1/proxy/tsunami")
        assert r.status_code == 200
        assert r.content == body

    def test_upstream_status_relayed(self, client):
        _use_upstream(lambda request: httpx.Response(503))
        r = client.get("/api/v1/proxy/tsunami")
        assert r.status_code == 503
        assert r.json()["error"] == "Failed to fetch tsunami data: 503"

    def test_network_error_is_500(self, client):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        _use_upstream(handler)
        r = client.get("/api/v1/proxy/tsunami")
        assert r.status_code == 500
        assert r.json()["error"] == "Internal server error fetching tsunami data"

    def test_no_store(self, client):
        _use_upstream(_upstream_handler)
        r = client.get("/api/v1/proxy/tsunami")
        assert r.headers["cache-control"] == "no-store"
        assert "x-request-id" in r.headers


class TestWildfireRelay:
    def test_missing_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "FIRMS_API_KEY", None)
        _use_upstream(_upstream_handler)
        r = client.get("/api/v1/proxy/wildfires")
        assert r.status_code == 400
        assert r.json()["error"] == "FIRMS API key not provided"

    def test_placeholder_key_rejected(self, client, monkeypatch):
        monkeypatch.setattr(settings, "FIRMS_API_KEY", None)
        _use_upstream(_upstream_handler)
        r = client.get("/api/v1/proxy/wildfires", params={"apiKey": "FIRMS_API_KEY_PLACEHOLDER"})
        assert r.status_code == 400

    def test_query_key_used(self, client, firms_key):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, text=FIRMS_CSV)

        _use_upstream(handler)
        r = client.get("/api/v1/proxy/wildfires", params={"apiKey": "client-key"})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/csv")
        assert r.text == FIRMS_CSV
        assert "/client-key/" in seen["path"]

    def test_body_relayed_byte_for_byte(self, client, firms_key):
        body = "latitude,longitude,bright_ti4,satellite\n1,2,330,Suomi-NPP \xb0\n".encode("latin-1")
        _use_upstream(lambda request: httpx.Response(200, content=body))
        r = client.get("/api/v1/proxy/wildfires")
        assert r.status_code == 200
        assert r.content == body

    def test_server_key_fallback(self, client, firms_key):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, text=FIRMS_CSV)

        _use_upstream(handler)
        assert client.get("/api/v1/proxy/wildfires").status_code == 200
        assert "/server-key/" in seen["path"]

    def test_upstream_status_relayed(self, client, firms_key):
        _use_upstream(lambda request: httpx.Response(403, text="Invalid MAP_KEY"))
        r = client.get("/api/v1/proxy/wildfires")
        assert r.status_code == 403
        assert r.json()["error"] == "Failed to fetch wildfire data: 403"


class TestWeatherRelay:
    def test_passthrough(self, client):
        seen = {}

        def handler(request):
            seen["accept"] = request.headers.get("accept")
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200, json=NWS_ALERTS)

        _use_upstream(handler)
        r = client.get("/api/v1/proxy/weather")
        assert r.status_code == 200
        assert r.json() == NWS_ALERTS
        assert seen["accept"] == "application/geo+json"
        assert seen["ua"] == "DisasterTracker/1.0"

    def test_invalid_json_is_500(self, client):
        _use_upstream(lambda request: httpx.Response(200, text="<html>"))
        r = client.get("/api/v1/proxy/weather")
        assert r.status_code == 500
        assert r.json()["error"] == "Internal server error fetching weather data"


class TestFloodRelay:
    def test_reshaped(self, client):
        _use_upstream(_upstream_handler)
        r = client.get("/api/v1/proxy/floods")
        assert r.status_code == 200
        sites = r.json()
        assert len(sites) == 1
        site = sites[0]
        assert site["siteCode"] == "08176500"
        assert site["waterLevel"] == 21.3
        assert site["floodSeverity"] == 5
        assert site["status"] == "Major Flooding"
        assert site["state"] == "48"
        assert site["dateTime"] == "2024-01-04T12:15:00.000Z"

    def test_non_string_site_fields_defaulted(self, client):
        doc = copy.deepcopy(NWIS)
        info = doc["value"]["timeSeries"][0]["sourceInfo"]
        info["siteName"] = 8176500
        info["siteCode"] = [{"value": ["08176500"]}]
        info["siteProperty"] = [{"name": "stateCd", "value": 48}]
        _use_upstream(lambda request: httpx.Response(200, json=doc))

        r = client.get("/api/v1/proxy/floods")
        assert r.status_code == 200
        site = r.json()[0]
        assert site["name"] == "Unknown Location"
        assert site["siteCode"] == "unknown-0"
        assert site["state"] == "Unknown"

    def test_upstream_status_relayed(self, client):
        _use_upstream(lambda request: httpx.Response(502))
        r = client.get("/api/v1/proxy/floods")
        assert r.status_code == 502
        assert r.json()["error"] == "Failed to fetch flood data: 502"


# ═══════════════════════════════════════════════════════════════════════════
# Hazard feed endpoints
# ═══════════════════════════════════════════════════════════════════════════

class TestHazardFeedEndpoint:
    def test_feed(self, client):
        app.dependency_overrides[get_aggregator] = lambda: _FixedAggregator(_make_feed())
        r = client.get("/api/v1/hazards")
        assert r.status_code == 200
        body = r.json()
        assert body["sources"] == "USGS Earthquakes, NASA FIRMS Wildfires, USGS Water Services"
        assert body["count"] == 3
        first = body["events"][0]
        assert first["lat"] == 20.0 and first["lng"] == 10.0
        assert first["date"] == "2023-11-14T22:13:20.000Z"
        assert first["type"] == "earthquake"
        assert "style" not in first
        assert "url" not in first

    def test_type_filter(self, client):
        app.dependency_overrides[get_aggregator] = lambda: _FixedAggregator(_make_feed())
        r = client.get("/api/v1/hazards", params=[("type", "fire"), ("type", "flood")])
        body = r.json()
        assert body["count"] == 2
        assert {e["type"] for e in body["events"]} == {"fire", "flood"}
        # provenance describes the aggregation, not the filter
        assert body["sources"].startswith("USGS Earthquakes")

    def test_unknown_type_rejected(self, client):
        app.dependency_overrides[get_aggregator] = lambda: _FixedAggregator(_make_feed())
        assert client.get("/api/v1/hazards", params={"type": "volcano"}).status_code == 422

    def test_style(self, client):
        app.dependency_overrides[get_aggregator] = lambda: _FixedAggregator(_make_feed())
        body = client.get("/api/v1/hazards", params={"style": "true"}).json()
        style = body["events"][0]["style"]
        assert style["color"] == "#d7191c"
        assert style["radius"] == pytest.approx(18.6)
        assert body["events"][2]["style"]["radius"] == 6.0

    def test_earthquake_outage_is_502(self, client):
        app.dependency_overrides[get_aggregator] = lambda: _FixedAggregator(
            error=EarthquakeFeedUnavailable(3, "HTTP 503"))
        r = client.get("/api/v1/hazards")
        assert r.status_code == 502
        assert r.json()["code"] == "EXTERNAL_SERVICE_ERROR"
        assert "error" in r.json()

    def test_non_string_titles_defaulted(self, client):
        quakes = {"type": "FeatureCollection", "features": [{
            "properties": {"mag": 6.2, "place": 42, "title": ["x"], "time": 1700000000000},
            "geometry": {"type": "Point", "coordinates": [10, 20, 5]},
        }]}
        alerts = {"features": [{
            "geometry": None,
            "properties": {"headline": 12345, "event": ["Heat"], "severity": "Moderate",
                           "affectedZones": ["z"]},
        }]}

        def relay(request):
            if request.url.path.endswith("/weather"):
                return httpx.Response(200, json=alerts)
            return httpx.Response(500)

        upstream = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=quakes)))
        relay_client = httpx.AsyncClient(transport=httpx.MockTransport(relay),
                                         base_url="http://relay.test")
        app.dependency_overrides[get_aggregator] = lambda: build_aggregator(
            upstream, relay_client, earthquake_feeds=["https://quake.test/all_hour.geojson"])

        r = client.get("/api/v1/hazards")
        assert r.status_code == 200
        body = r.json()
        assert body["sources"] == "USGS Earthquakes, NOAA Weather"
        assert [e["title"] for e in body["events"]] == ["M6.2 - Unknown location", "Weather Alert"]


class TestLatestEndpoint:
    def test_no_refresher(self, client):
        app.dependency_overrides[get_refresher] = lambda: None
        r = client.get("/api/v1/hazards/latest")
        assert r.status_code == 404
        assert r.json()["error"] == "Hazard feed snapshot not found"

    def test_snapshot(self, client):
        refresher = HazardFeedRefresher(_FixedAggregator(_make_feed()))
        asyncio.run(refresher.refresh())
        app.dependency_overrides[get_refresher] = lambda: refresher
        r = client.get("/api/v1/hazards/latest", params={"type": "earthquake"})
        assert r.status_code == 200
        assert r.json()["count"] == 1


class TestLegendEndpoint:
    def test_legend(self, client):
        legend = client.get("/api/v1/hazards/legend").json()
        assert len(legend) == 8
        assert legend[0] == {"label": "Major Earthquake (6.0+)", "color": "#d7191c", "type": "earthquake"}
        assert {e["type"] for e in legend} == {t.value for t in HazardType}


# ═══════════════════════════════════════════════════════════════════════════
# In-process relay: fetchers → ASGI proxy routes → mocked upstreams
# ═══════════════════════════════════════════════════════════════════════════

class TestInProcessRelay:
    def test_full_aggregation(self, firms_key):
        _use_upstream(_upstream_handler)

        async def run():
            upstream = httpx.AsyncClient(transport=httpx.MockTransport(_upstream_handler))
            relay = build_relay_client(app)
            async with upstream, relay:
                return await build_aggregator(upstream, relay).fetch_all()

        try:
            feed = asyncio.run(run())
        finally:
            app.dependency_overrides.clear()

        assert feed.sources == (
            "USGS Earthquakes, NOAA Tsunamis, NASA FIRMS Wildfires, "
            "NOAA Weather, USGS Water Services"
        )
        assert [e.type for e in feed.events] == [
            HazardType.EARTHQUAKE, HazardType.TSUNAMI, HazardType.FIRE,
            HazardType.WEATHER, HazardType.FLOOD,
        ]
        flood = feed.events[-1]
        assert flood.magnitude == 5
        assert flood.title == "Major Flooding - GUADALUPE RV AT VICTORIA, TX"

    def test_relays_failing_leave_earthquakes(self):
        def handler(request):
            if request.url.host == "earthquake.usgs.gov":
                return httpx.Response(200, json=QUAKES)
            return httpx.Response(500)

        _use_upstream(handler)

        async def run():
            upstream = httpx.AsyncClient(transport=httpx.MockTransport(handler))
            relay = build_relay_client(app)
            async with upstream, relay:
                return await build_aggregator(upstream, relay, firms_api_key="k").fetch_all()

        try:
            feed = asyncio.run(run())
        finally:
            app.dependency_overrides.clear()

        assert feed.sources == "USGS Earthquakes"
        assert len(feed.events) == 1


# ═══════════════════════════════════════════════════════════════════════════
# Root & health
# ═══════════════════════════════════════════════════════════════════════════

class TestHealth:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["service"] == settings.APP_NAME
        assert len(body["sources"]) == 5

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_degraded_without_firms_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "FIRMS_API_KEY", None)
        body = client.get("/health").json()
        assert body["status"] == "degraded"
        names = [c["name"] for c in body["components"]]
        assert names == ["upstream_feeds", "hazard_refresher"]

    def test_healthy_with_key(self, client, firms_key):
        assert client.get("/health").json()["status"] == "healthy"
        assert client.get("/health/ready").status_code == 200

    def test_not_ready_without_earthquake_feeds(self, client, monkeypatch):
        monkeypatch.setattr(settings, "USGS_EARTHQUAKE_FEEDS", [])
        r = client.get("/health/ready")
        assert r.status_code == 503
        assert r.json()["status"] == "unhealthy"
