import math

import pytest

from aerohealth.errors import DegenerateRegionError, ValidationError
from aerohealth.utils_geo import (
    GeoPoint,
    bounding_box,
    distance_km,
    grid_points,
    longitude_delta,
    offset_point,
    wrap_longitude,
)

KM_PER_DEGREE = 6371 * math.pi / 180


def test_bounding_box_contains_center():
    center = GeoPoint(40.71, -74.0)
    region = bounding_box(center, 50)
    assert region.min_lat < 40.71 < region.max_lat
    assert region.min_lon < -74.0 < region.max_lon
    assert region.contains(center)


def test_bounding_box_latitude_delta():
    region = bounding_box(GeoPoint(10.0, 20.0), 111.0)
    assert region.min_lat == pytest.approx(9.0)
    assert region.max_lat == pytest.approx(11.0)


def test_bounding_box_widens_longitude_towards_poles():
    equator = bounding_box(GeoPoint(0.0, 10.0), 100)
    north = bounding_box(GeoPoint(60.0, 10.0), 100)
    assert north.max_lat - north.min_lat == pytest.approx(equator.max_lat - equator.min_lat)
    assert north.max_lon - north.min_lon == pytest.approx(2 * (equator.max_lon - equator.min_lon), rel=1e-6)


@pytest.mark.parametrize("lat", [90.0, -90.0, 89.99])
def test_bounding_box_at_pole_spans_all_longitudes(lat):
    region = bounding_box(GeoPoint(lat, 15.0), 50)
    assert region.min_lon == -180.0
    assert region.max_lon == 180.0
    assert -90.0 <= region.min_lat <= region.max_lat <= 90.0
    assert all(math.isfinite(v) for v in (region.min_lat, region.max_lat, region.min_lon, region.max_lon))


def test_bounding_box_clamps_at_antimeridian():
    region = bounding_box(GeoPoint(0.0, 179.9), 50)
    assert region.max_lon == 180.0
    assert region.min_lon < 179.9


def test_bounding_box_rejects_negative_radius():
    with pytest.raises(ValidationError):
        bounding_box(GeoPoint(0.0, 0.0), -1)


def test_longitude_delta_undefined_at_pole():
    with pytest.raises(DegenerateRegionError):
        longitude_delta(90.0, 10)


def test_distance_zero_for_same_point():
    p = GeoPoint(51.5074, -0.1278)
    assert distance_km(p, p) == 0


def test_distance_symmetric():
    a = GeoPoint(40.7128, -74.006)
    b = GeoPoint(34.0522, -118.2437)
    assert distance_km(a, b) == distance_km(b, a)
    assert distance_km(a, b) == pytest.approx(3936, abs=5)


def test_distance_one_degree_latitude():
    assert distance_km(GeoPoint(0, 0), GeoPoint(1, 0)) == pytest.approx(6371 * math.pi / 180)


def test_distance_antipodal_is_finite():
    d = distance_km(GeoPoint(0, 0), GeoPoint(0, 180))
    assert d == pytest.approx(math.pi * 6371)


def test_offset_point_moves_requested_distance():
    center = GeoPoint(45.0, 7.0)
    moved = offset_point(center, 10, math.pi / 2)
    assert moved.lat == pytest.approx(center.lat, abs=1e-3)
    assert moved.lon > center.lon
    assert distance_km(center, moved) == pytest.approx(10)


def test_grid_points_lattice():
    points = grid_points(GeoPoint(40.0, -75.0), 0.5, 5)
    assert len(points) == 25
    assert points[0] == pytest.approx((39.5, -75.5))
    assert points[1] == pytest.approx((39.5, -75.3))
    assert points[-1] == pytest.approx((40.3, -74.7))


def test_validated_point_accepts_strings():
    point = GeoPoint.validated("40.5", "-73.25")
    assert point == GeoPoint(40.5, -73.25)


@pytest.mark.parametrize(
    "lat, lon",
    [("abc", "0"), ("91", "0"), ("0", "-180.5"), ("nan", "0"), ("0", "inf")],
)
def test_validated_point_rejects_bad_input(lat, lon):
    with pytest.raises(ValidationError):
        GeoPoint.validated(lat, lon)


def test_offset_point_reflects_over_the_pole():
    center = GeoPoint(89.95, 179.95)
    moved = offset_point(center, 22.5, 0.0)
    assert moved.lat == pytest.approx(180.0 - (89.95 + 22.5 / KM_PER_DEGREE))
    assert moved.lon == pytest.approx(-0.05)
    assert distance_km(center, moved) == pytest.approx(22.5)


def test_offset_point_wraps_across_antimeridian():
    moved = offset_point(GeoPoint(0.0, 179.95), 20.0, math.pi / 2)
    assert -180.0 <= moved.lon < -179.0
    assert distance_km(GeoPoint(0.0, 179.95), moved) == pytest.approx(20.0)


def test_offset_point_from_the_pole_itself():
    moved = offset_point(GeoPoint(-90.0, 10.0), 5.0, math.pi)
    assert moved.lat == pytest.approx(-90.0 + 5.0 / KM_PER_DEGREE)
    assert -180.0 <= moved.lon < 180.0


def test_wrap_longitude():
    assert wrap_longitude(190.0) == pytest.approx(-170.0)
    assert wrap_longitude(-181.0) == pytest.approx(179.0)
    assert wrap_longitude(45.0) == 45.0
