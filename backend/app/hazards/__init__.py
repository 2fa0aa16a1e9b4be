"""
hazards — Live multi-source hazard feed.

Sub-modules:
    models             — HazardEvent, HazardFeed, SourceResult
    normalize          — date / coordinate helpers shared by the fetchers
    base               — SourceFetcher base class (failure isolation)
    earthquake_source  — USGS GeoJSON feeds (mandatory source)
    tsunami_source     — NOAA tsunami Atom feed
    wildfire_source    — NASA FIRMS VIIRS hotspots (CSV)
    weather_source     — NWS active alerts (GeoJSON)
    flood_source       — USGS water services gauge levels
    aggregator         — merges all sources into one HazardFeed
    presentation       — marker colour / radius and legend for the map
    refresher          — periodic re-aggregation with an in-memory snapshot
"""
