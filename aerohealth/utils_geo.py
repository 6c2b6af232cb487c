"""Geospatial helper utilities: search regions, distances and sample lattices."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

from .errors import DegenerateRegionError, ValidationError

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE_LAT = 111.0
# cos(lat) below this is treated as the pole
_POLAR_COS_EPSILON = 1e-9


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

    @classmethod
    def validated(cls, lat: float, lon: float) -> "GeoPoint":
        """Build a point, rejecting non-finite or out of range coordinates."""
        try:
            lat, lon = float(lat), float(lon)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Latitude and longitude must be numeric") from exc
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise ValidationError("Latitude and longitude must be finite")
        if not -90.0 <= lat <= 90.0:
            raise ValidationError(f"Latitude {lat} outside [-90, 90]")
        if not -180.0 <= lon <= 180.0:
            raise ValidationError(f"Longitude {lon} outside [-180, 180]")
        return cls(lat, lon)


@dataclass(frozen=True)
class GeoRegion:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, point: GeoPoint) -> bool:
        return (
            self.min_lat <= point.lat <= self.max_lat
            and self.min_lon <= point.lon <= self.max_lon
        )

    def overpass_bbox(self) -> str:
        """Overpass QL bbox order: south,west,north,east."""
        return f"{self.min_lat},{self.min_lon},{self.max_lat},{self.max_lon}"

    def firms_area(self) -> str:
        """FIRMS area order: west,south,east,north."""
        return f"{self.min_lon},{self.min_lat},{self.max_lon},{self.max_lat}"


def longitude_delta(lat: float, km: float) -> float:
    """Degrees of longitude spanned by ``km`` along the parallel at ``lat``."""
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < _POLAR_COS_EPSILON:
        raise DegenerateRegionError(f"longitude span undefined at latitude {lat}")
    return km / (KM_PER_DEGREE_LAT * cos_lat)


def bounding_box(center: GeoPoint, radius_km: float) -> GeoRegion:
    """Rectangular region approximating a circle of ``radius_km`` around ``center``.

    Near the poles the longitude delta grows without bound; once it reaches
    180 degrees (or cos(lat) vanishes) the region spans every longitude.
    The antimeridian is not wrapped: bounds are clamped to [-180, 180].
    """
    if radius_km < 0:
        raise ValidationError("radius must not be negative")
    lat_delta = radius_km / KM_PER_DEGREE_LAT
    try:
        lon_delta = longitude_delta(center.lat, radius_km)
    except DegenerateRegionError:
        lon_delta = 180.0
    if lon_delta >= 180.0:
        min_lon, max_lon = -180.0, 180.0
    else:
        min_lon = max(-180.0, center.lon - lon_delta)
        max_lon = min(180.0, center.lon + lon_delta)
    return GeoRegion(
        min_lat=max(-90.0, center.lat - lat_delta),
        max_lat=min(90.0, center.lat + lat_delta),
        min_lon=min_lon,
        max_lon=max_lon,
    )


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle (haversine) distance in kilometres."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lon - a.lon)

    h = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def wrap_longitude(lon: float) -> float:
    """Fold any longitude into [-180, 180)."""
    return (lon + 180.0) % 360.0 - 180.0


def offset_point(center: GeoPoint, km: float, bearing_rad: float) -> GeoPoint:
    """Great-circle destination ``km`` from ``center`` along ``bearing_rad`` (0 = north, clockwise).

    The result is ``km`` away as measured by :func:`distance_km`. Paths over a pole
    come back down the opposite meridian and longitudes wrap across the
    antimeridian, so the point is always on the globe.
    """
    delta = km / EARTH_RADIUS_KM
    phi1 = math.radians(center.lat)
    sin_phi2 = math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(bearing_rad)
    sin_phi2 = min(1.0, max(-1.0, sin_phi2))
    dlambda = math.atan2(
        math.sin(bearing_rad) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * sin_phi2,
    )
    return GeoPoint(math.degrees(math.asin(sin_phi2)), wrap_longitude(center.lon + math.degrees(dlambda)))


def grid_points(center: GeoPoint, radius_deg: float, size: int) -> List[Tuple[float, float]]:
    """Return the ``size`` x ``size`` lattice starting at the south-west corner."""
    if size < 1:
        raise ValueError("grid size must be positive")
    step = (radius_deg * 2) / size
    return [
        (center.lat - radius_deg + i * step, center.lon - radius_deg + j * step)
        for i in range(size)
        for j in range(size)
    ]


__all__ = [
    "EARTH_RADIUS_KM",
    "GeoPoint",
    "GeoRegion",
    "bounding_box",
    "distance_km",
    "grid_points",
    "longitude_delta",
    "offset_point",
    "wrap_longitude",
]
