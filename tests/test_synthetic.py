from datetime import datetime, timezone

import math

import numpy as np
import pytest

from aerohealth.synthetic import SyntheticFireProvider
from aerohealth.utils_geo import GeoPoint, bounding_box, distance_km

CENTER = GeoPoint(38.5, -121.5)
KM_PER_DEGREE = 6371 * math.pi / 180


class ScriptedRng:
    def __init__(self, draws, count=1):
        self.draws = list(draws)
        self.count = count

    def random(self):
        return self.draws.pop(0)

    def integers(self, low, high):
        assert low <= self.count < high
        return self.count


def _clock(month):
    return lambda: datetime(2024, month, 15, tzinfo=timezone.utc)


def _fetch(provider, radius=20.0):
    return provider.fetch(bounding_box(CENTER, radius), CENTER, radius)


def test_no_fires_outside_season():
    rng = ScriptedRng([])
    assert _fetch(SyntheticFireProvider(clock=_clock(1), rng=rng)) == []
    assert _fetch(SyntheticFireProvider(clock=_clock(11), rng=rng)) == []


def test_no_fires_when_draw_misses():
    provider = SyntheticFireProvider(clock=_clock(7), rng=ScriptedRng([0.5]))
    assert _fetch(provider) == []


def test_scripted_fires_in_season():
    rng = ScriptedRng([0.1, 0.0, 0.5, 0.25, 1.0], count=2)
    fires = _fetch(SyntheticFireProvider(clock=_clock(6), rng=rng))

    assert [f.id for f in fires] == ["wildfire-sim-1", "wildfire-sim-2"]
    assert [f.name for f in fires] == ["Simulated Fire 1", "Simulated Fire 2"]
    assert all(f.source_type == "wildfire" and f.severity == "high" for f in fires)

    north, east = fires
    assert north.location.lat == pytest.approx(CENTER.lat + 10 / KM_PER_DEGREE)
    assert north.location.lon == pytest.approx(CENTER.lon)
    assert east.location.lat == pytest.approx(CENTER.lat, abs=1e-3)
    assert east.location.lon > CENTER.lon
    assert east.distance_km == pytest.approx(20.0)


def test_seeded_generator_is_reproducible_and_bounded():
    outputs = []
    for _ in range(2):
        provider = SyntheticFireProvider(clock=_clock(8), rng=np.random.default_rng(1234))
        outputs.append([_fetch(provider) for _ in range(30)])
    assert outputs[0] == outputs[1]

    for fires in outputs[0]:
        assert len(fires) <= 2
        for fire in fires:
            assert fire.distance_km == distance_km(CENTER, fire.location)
            assert fire.distance_km <= 20.0


def test_fires_near_pole_and_antimeridian_stay_on_the_globe():
    center = GeoPoint(89.95, 179.95)
    rng = ScriptedRng([0.1, 0.0, 0.9])
    (fire,) = SyntheticFireProvider(clock=_clock(7), rng=rng).fetch(
        bounding_box(center, 25.0), center, 25.0
    )
    assert -90.0 <= fire.location.lat <= 90.0
    assert -180.0 <= fire.location.lon <= 180.0
    assert fire.distance_km <= 25.0

    provider = SyntheticFireProvider(clock=_clock(7), rng=np.random.default_rng(99))
    for _ in range(50):
        for fire in provider.fetch(bounding_box(center, 25.0), center, 25.0):
            assert -90.0 <= fire.location.lat <= 90.0
            assert -180.0 <= fire.location.lon <= 180.0
