"""Region-wide products: sampled AQI grid, wind vector field, national snapshot."""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import requests

from .config import Settings
from .data_ingest import fetch_current_pollutants
from .errors import NoReadingsError, UpstreamError
from .index_engine import AQI_CATEGORIES, IndexResult, compute_index, readings_from_levels, ugm3_to_index_units
from .utils_geo import GeoPoint, grid_points

logger = logging.getLogger(__name__)

AQI_GRID_SIZE = 5
WIND_GRID_SIZE = 10
WIND_GRID_SPACING = 0.1  # degrees
WIND_SPEED_JITTER = 1.0  # m/s either way
WIND_DIRECTION_JITTER = 10.0  # degrees either way

# (name, lat, lon, county FIPS)
SAMPLE_LOCATIONS: List[Tuple[str, float, float, str]] = [
    ("New York, NY", 40.7128, -74.006, "36061"),
    ("Boston, MA", 42.3601, -71.0589, "25025"),
    ("Philadelphia, PA", 39.9526, -75.1652, "42101"),
    ("Albany, NY", 42.6526, -73.7562, "36001"),
    ("Atlanta, GA", 33.749, -84.388, "13121"),
    ("Miami, FL", 25.7617, -80.1918, "12086"),
    ("Charlotte, NC", 35.2271, -80.8431, "37119"),
    ("Nashville, TN", 36.1627, -86.7816, "47037"),
    ("New Orleans, LA", 29.9511, -90.0715, "22071"),
    ("Chicago, IL", 41.8781, -87.6298, "17031"),
    ("Detroit, MI", 42.3314, -83.0458, "26163"),
    ("Minneapolis, MN", 44.9778, -93.265, "27053"),
    ("St. Louis, MO", 38.627, -90.1994, "29510"),
    ("Indianapolis, IN", 39.7684, -86.1581, "18097"),
    ("Houston, TX", 29.7604, -95.3698, "48201"),
    ("Dallas, TX", 32.7767, -96.797, "48113"),
    ("Phoenix, AZ", 33.4484, -112.074, "04013"),
    ("San Antonio, TX", 29.4241, -98.4936, "48029"),
    ("Los Angeles, CA", 34.0522, -118.2437, "06037"),
    ("San Francisco, CA", 37.7749, -122.4194, "06075"),
    ("Seattle, WA", 47.6062, -122.3321, "53033"),
    ("Portland, OR", 45.5152, -122.6784, "41051"),
    ("Denver, CO", 39.7392, -104.9903, "08031"),
    ("Las Vegas, NV", 36.1699, -115.1398, "32003"),
    ("Salt Lake City, UT", 40.7608, -111.891, "49035"),
    ("Boise, ID", 43.615, -116.2023, "16001"),
    ("Anchorage, AK", 61.2181, -149.9003, "02020"),
    ("Honolulu, HI", 21.3099, -157.8581, "15003"),
]


def current_index(session: requests.Session, settings: Settings, point: GeoPoint) -> IndexResult:
    """Index the current pollutant levels at one point."""
    levels = fetch_current_pollutants(session, settings, point)
    converted = {
        kind: ugm3_to_index_units(kind, float(value))
        for kind, value in levels.items()
        if value is not None
    }
    return compute_index(readings_from_levels(converted))


def _sample_aqi(session: requests.Session, settings: Settings, lat: float, lon: float) -> int:
    try:
        return current_index(session, settings, GeoPoint(lat, lon)).index
    except (UpstreamError, NoReadingsError, TypeError, ValueError) as exc:
        logger.debug("Grid point %.4f,%.4f unavailable: %s", lat, lon, exc)
        return 0


def sample_aqi_grid(
    session: requests.Session,
    settings: Settings,
    center: GeoPoint,
    radius_deg: float,
    size: int = AQI_GRID_SIZE,
) -> List[List[float]]:
    """Fetch every lattice point concurrently; failed points (AQI 0) are dropped."""
    points = grid_points(center, radius_deg, size)
    with ThreadPoolExecutor(max_workers=max(1, settings.grid_workers)) as executor:
        values = list(executor.map(lambda p: _sample_aqi(session, settings, p[0], p[1]), points))
    return [[lat, lon, aqi] for (lat, lon), aqi in zip(points, values) if aqi > 0]


def wind_to_uv(speed: float, direction_deg: float) -> Tuple[float, float]:
    """Meteorological direction (blowing from) -> (u east, v north) components."""
    rad = math.radians(direction_deg)
    return -speed * math.sin(rad), -speed * math.cos(rad)


def build_wind_field(
    current: Dict[str, Any],
    center: GeoPoint,
    rng: Optional[np.random.Generator] = None,
    size: int = WIND_GRID_SIZE,
    spacing: float = WIND_GRID_SPACING,
) -> Dict[str, Any]:
    """Spread the observed wind over a small jittered grid for a velocity layer."""
    rng = rng if rng is not None else np.random.default_rng()
    speed = float(current.get("wind_speed_10m") or 0.0)
    direction = float(current.get("wind_direction_10m") or 0.0)
    gusts = float(current.get("wind_gusts_10m") or 0.0)

    half_span = size / 2 * spacing
    grid = []
    for lat, lon in grid_points(center, half_span, size):
        cell_speed = max(0.0, speed + (rng.random() - 0.5) * 2 * WIND_SPEED_JITTER)
        cell_direction = (direction + (rng.random() - 0.5) * 2 * WIND_DIRECTION_JITTER + 360) % 360
        u, v = wind_to_uv(cell_speed, cell_direction)
        grid.append(
            {"lat": lat, "lon": lon, "u": u, "v": v, "speed": cell_speed, "direction": cell_direction}
        )

    velocity = {
        "header": {
            "parameterUnit": "m/s",
            "parameterNumber": 2,
            "dx": spacing,
            "dy": spacing,
            "nx": size,
            "ny": size,
            "la1": center.lat - half_span,
            "la2": center.lat + half_span,
            "lo1": center.lon - half_span,
            "lo2": center.lon + half_span,
        },
        "data": [
            {"header": {"parameterCategory": 2, "parameterNumber": 2}, "data": [cell["u"], cell["v"]]}
            for cell in grid
        ],
    }
    return {
        "current": {
            "speed": speed,
            "direction": direction,
            "gusts": gusts,
            "timestamp": current.get("time"),
        },
        "grid": grid,
        "velocity": velocity,
    }


def _city_aqi(
    session: requests.Session, settings: Settings, location: Tuple[str, float, float, str]
) -> Optional[Dict[str, Any]]:
    name, lat, lon, fips = location
    try:
        result = current_index(session, settings, GeoPoint(lat, lon))
    except (UpstreamError, NoReadingsError, TypeError, ValueError) as exc:
        logger.warning("National AQI sample %s failed: %s", name, exc)
        return None
    return {
        "fips": fips,
        "name": name,
        "aqi": result.index,
        "category": result.category,
        "label": AQI_CATEGORIES[result.category][0],
        "primaryPollutant": result.primary_pollutant,
        "latitude": lat,
        "longitude": lon,
    }


def national_snapshot(
    session: requests.Session, settings: Settings, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Index a fixed sample of U.S. cities with the six-pollutant engine."""
    locations = SAMPLE_LOCATIONS[: max(0, settings.national_sample_size)]
    with ThreadPoolExecutor(max_workers=max(1, settings.grid_workers)) as executor:
        results = list(executor.map(lambda loc: _city_aqi(session, settings, loc), locations))
    counties = [county for county in results if county is not None]
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "counties": counties,
        "timestamp": timestamp,
        "count": len(counties),
        "coverage": "Major U.S. cities representing national air quality",
    }


__all__ = [
    "SAMPLE_LOCATIONS",
    "build_wind_field",
    "current_index",
    "national_snapshot",
    "sample_aqi_grid",
    "wind_to_uv",
]
