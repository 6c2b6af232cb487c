from datetime import datetime, timezone

import numpy as np
import pytest
from fakes import FakeResponse, FakeSession

from aerohealth import spatial
from aerohealth.config import Settings
from aerohealth.utils_geo import GeoPoint

CENTER = GeoPoint(40.0, -75.0)


def _current(pm2_5=10.0, **extra):
    current = {"time": "2024-06-01T12:00", "pm2_5": pm2_5, "pm10": 20.0}
    current.update(extra)
    return FakeResponse(payload={"current": current})


def test_current_index_converts_gas_units():
    session = FakeSession(lambda url, params: _current(pm2_5=None, pm10=None, nitrogen_dioxide=191.8))
    result = spatial.current_index(session, Settings(), CENTER)
    # 191.8 µg/m³ NO2 ~ 101.9 ppb, truncated to 101
    assert result.primary_pollutant == "no2"
    assert result.index == 101


def test_grid_drops_failed_points():
    def handler(url, params):
        if params["latitude"] < 39.6:
            return FakeResponse(status_code=500, text="boom")
        if params["longitude"] > -74.8:
            return _current(pm2_5=None, pm10=None)
        return _current()

    session = FakeSession(handler)
    points = spatial.sample_aqi_grid(session, Settings(grid_workers=4), CENTER, 0.5)

    assert len(session.calls) == 25
    assert len(points) == 16
    assert all(aqi == 42 for _, _, aqi in points)
    assert min(lat for lat, _, _ in points) == pytest.approx(39.7)


def test_grid_with_every_point_failing_is_empty():
    session = FakeSession(lambda url, params: FakeResponse(status_code=429, text="slow down"))
    assert spatial.sample_aqi_grid(session, Settings(), CENTER, 0.5) == []


@pytest.mark.parametrize(
    "direction, expected",
    [(0, (0.0, -10.0)), (90, (-10.0, 0.0)), (180, (0.0, 10.0)), (270, (10.0, 0.0))],
)
def test_wind_to_uv(direction, expected):
    u, v = spatial.wind_to_uv(10.0, direction)
    assert u == pytest.approx(expected[0], abs=1e-9)
    assert v == pytest.approx(expected[1], abs=1e-9)


def test_wind_field_is_jittered_around_observation():
    current = {"time": "2024-06-01T12:00", "wind_speed_10m": 4.0, "wind_direction_10m": 355.0, "wind_gusts_10m": 7.5}

    field = spatial.build_wind_field(current, CENTER, rng=np.random.default_rng(7))

    assert field["current"] == {"speed": 4.0, "direction": 355.0, "gusts": 7.5, "timestamp": "2024-06-01T12:00"}
    assert len(field["grid"]) == 100
    for cell in field["grid"]:
        assert 3.0 <= cell["speed"] <= 5.0
        assert 0 <= cell["direction"] < 360
        offset = (cell["direction"] - 355.0 + 180) % 360 - 180
        assert abs(offset) <= 10.0
    header = field["velocity"]["header"]
    assert (header["nx"], header["ny"]) == (10, 10)
    assert header["la1"] == pytest.approx(39.5)
    assert len(field["velocity"]["data"]) == 100


def test_wind_field_reproducible_with_seed():
    current = {"wind_speed_10m": 2.0, "wind_direction_10m": 90.0}
    first = spatial.build_wind_field(current, CENTER, rng=np.random.default_rng(3))
    second = spatial.build_wind_field(current, CENTER, rng=np.random.default_rng(3))
    assert first == second


def test_calm_wind_never_negative():
    field = spatial.build_wind_field({}, CENTER, rng=np.random.default_rng(0))
    assert all(cell["speed"] >= 0 for cell in field["grid"])


def test_national_snapshot_skips_failed_cities():
    boston_lat = spatial.SAMPLE_LOCATIONS[1][1]

    def handler(url, params):
        if params["latitude"] == boston_lat:
            return FakeResponse(status_code=502, text="bad gateway")
        return _current()

    now = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)
    snapshot = spatial.national_snapshot(
        FakeSession(handler), Settings(national_sample_size=4), now=now
    )

    assert snapshot["count"] == 3
    assert [county["name"] for county in snapshot["counties"]] == [
        "New York, NY",
        "Philadelphia, PA",
        "Albany, NY",
    ]
    assert snapshot["counties"][0]["fips"] == "36061"
    assert snapshot["counties"][0]["label"] == "Good"
    assert snapshot["timestamp"] == "2024-06-01T12:00:00+00:00"
