"""Pollution source aggregation across independent geospatial providers."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from .cache import CacheTTL, ResultCache, canonical_key
from .config import Settings
from .data_ingest import fetch_firms_csv, fetch_overpass
from .parsers import PollutionSource, parse_firms_csv, parse_highways, parse_industrial
from .synthetic import SyntheticFireProvider
from .utils_geo import GeoPoint, GeoRegion, bounding_box

logger = logging.getLogger(__name__)

HIGHWAY_QUERY = """
[out:json][timeout:25];
(
  way["highway"~"motorway|trunk|primary"]({bbox});
);
out center;
"""

INDUSTRIAL_QUERY = """
[out:json][timeout:25];
(
  node["aeroway"="aerodrome"]({bbox});
  node["industrial"]({bbox});
  way["landuse"="industrial"]({bbox});
  way["landuse"="port"]({bbox});
);
out center;
"""


class HighwayProvider:
    name = "overpass-highways"

    def __init__(self, session: requests.Session, settings: Settings):
        self.session = session
        self.settings = settings

    def fetch(self, region: GeoRegion, center: GeoPoint, radius_km: float) -> List[PollutionSource]:
        query = HIGHWAY_QUERY.format(bbox=region.overpass_bbox())
        elements = fetch_overpass(self.session, self.settings, query, provider=self.name)
        parsed = parse_highways(elements, limit=self.settings.max_highways)
        parsed.log_errors(self.name)
        return parsed.sources


class IndustrialProvider:
    name = "overpass-industrial"

    def __init__(self, session: requests.Session, settings: Settings):
        self.session = session
        self.settings = settings

    def fetch(self, region: GeoRegion, center: GeoPoint, radius_km: float) -> List[PollutionSource]:
        query = INDUSTRIAL_QUERY.format(bbox=region.overpass_bbox())
        elements = fetch_overpass(self.session, self.settings, query, provider=self.name)
        parsed = parse_industrial(elements, limit=self.settings.max_industrial)
        parsed.log_errors(self.name)
        return parsed.sources


class FirmsProvider:
    name = "nasa-firms"

    def __init__(self, session: requests.Session, settings: Settings):
        self.session = session
        self.settings = settings

    def fetch(self, region: GeoRegion, center: GeoPoint, radius_km: float) -> List[PollutionSource]:
        parsed = parse_firms_csv(fetch_firms_csv(self.session, self.settings, region))
        parsed.log_errors(self.name)
        return parsed.sources


class FallbackProvider:
    """Use ``primary`` when it is configured and succeeds, otherwise ``fallback``."""

    def __init__(self, primary: Optional[Any], fallback: Any, name: str = "wildfires"):
        self.primary = primary
        self.fallback = fallback
        self.name = name

    def fetch(self, region: GeoRegion, center: GeoPoint, radius_km: float) -> List[PollutionSource]:
        if self.primary is None:
            logger.info("%s: primary provider not configured, using %s", self.name, self.fallback.name)
            return self.fallback.fetch(region, center, radius_km)
        try:
            return self.primary.fetch(region, center, radius_km)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("%s failed (%s), using %s", self.primary.name, exc, self.fallback.name)
            return self.fallback.fetch(region, center, radius_km)


@dataclass
class ProviderOutcome:
    """Result of one provider call: its sources, or the error that replaced them."""

    provider: str
    sources: List[PollutionSource] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SourceReport:
    center: GeoPoint
    radius_km: float
    sources: List[PollutionSource]
    outcomes: List[ProviderOutcome] = field(default_factory=list)

    @property
    def has_wildfires(self) -> bool:
        return any(source.source_type == "wildfire" for source in self.sources)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sources": [source.to_dict() for source in self.sources],
            "center": {"latitude": self.center.lat, "longitude": self.center.lon},
            "radius": self.radius_km,
            "count": len(self.sources),
        }


class SourceAggregator:
    """Query every provider for a region and merge the results by distance.

    Providers are called one after another. A provider that raises contributes
    nothing; the others are unaffected. Merged reports are cached for
    ``CacheTTL.WILDFIRES`` when they contain wildfires and for
    ``CacheTTL.POLLUTION_SOURCES`` otherwise.
    """

    def __init__(self, providers: Sequence[Any], cache: Optional[ResultCache] = None):
        self.providers = list(providers)
        self.cache = cache

    @staticmethod
    def cache_key(center: GeoPoint, radius_km: float) -> str:
        return canonical_key(
            "pollution-sources",
            {"lat": f"{center.lat:.4f}", "lon": f"{center.lon:.4f}", "radius": radius_km},
        )

    def _run(self, provider: Any, region: GeoRegion, center: GeoPoint, radius_km: float) -> ProviderOutcome:
        try:
            sources = provider.fetch(region, center, radius_km)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Provider %s failed: %s", provider.name, exc)
            return ProviderOutcome(provider=provider.name, error=exc)
        return ProviderOutcome(provider=provider.name, sources=list(sources))

    def collect(self, center: GeoPoint, radius_km: float, use_cache: bool = True) -> SourceReport:
        key = self.cache_key(center, radius_km)
        if use_cache and self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("Returning cached pollution sources for %s", key)
                return cached

        region = bounding_box(center, radius_km)
        outcomes = [self._run(provider, region, center, radius_km) for provider in self.providers]

        merged: List[PollutionSource] = []
        seen = set()
        for outcome in outcomes:
            if not outcome.ok:
                continue
            for source in outcome.sources:
                if source.id in seen:
                    continue
                seen.add(source.id)
                merged.append(source.with_distance_from(center))
        merged.sort(key=lambda source: source.distance_km)

        report = SourceReport(center=center, radius_km=radius_km, sources=merged, outcomes=outcomes)
        if self.cache is not None:
            ttl = CacheTTL.WILDFIRES if report.has_wildfires else CacheTTL.POLLUTION_SOURCES
            self.cache.set(key, report, ttl)
        failed = [outcome.provider for outcome in outcomes if not outcome.ok]
        logger.info(
            "Collected %d pollution sources (%d providers, failed: %s)",
            len(merged),
            len(outcomes),
            ", ".join(failed) or "none",
        )
        return report


def build_source_aggregator(
    session: requests.Session,
    settings: Settings,
    cache: Optional[ResultCache] = None,
    synthetic: Optional[SyntheticFireProvider] = None,
) -> SourceAggregator:
    """Wire the highway, wildfire (with simulated fallback) and industrial providers."""
    firms = FirmsProvider(session, settings) if settings.firms_configured else None
    fires = FallbackProvider(firms, synthetic or SyntheticFireProvider())
    return SourceAggregator(
        [HighwayProvider(session, settings), fires, IndustrialProvider(session, settings)],
        cache=cache,
    )


__all__ = [
    "FallbackProvider",
    "FirmsProvider",
    "HighwayProvider",
    "IndustrialProvider",
    "ProviderOutcome",
    "SourceAggregator",
    "SourceReport",
    "build_source_aggregator",
]
