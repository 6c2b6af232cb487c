"""Simulated wildfire detections used when FIRMS is unavailable."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, List, Optional

import numpy as np

from .parsers import PollutionSource
from .utils_geo import GeoPoint, GeoRegion, distance_km, offset_point

logger = logging.getLogger(__name__)

FIRE_SEASON_MONTHS = range(6, 11)  # June through October
FIRE_PROBABILITY = 0.3
MAX_SIMULATED_FIRES = 2


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyntheticFireProvider:
    """Seasonally gated generator of 0-2 fires inside the search radius.

    ``clock`` returns the current datetime and ``rng`` is a
    :class:`numpy.random.Generator` (anything with ``random()`` and
    ``integers(low, high)`` works), so output is reproducible in tests.
    Generated sources are always ``high`` severity and named "Simulated".
    """

    name = "simulated-wildfires"

    def __init__(
        self,
        clock: Callable[[], datetime] = _utc_now,
        rng: Optional[np.random.Generator] = None,
    ):
        self.clock = clock
        self.rng = rng if rng is not None else np.random.default_rng()

    def in_season(self) -> bool:
        return self.clock().month in FIRE_SEASON_MONTHS

    def fetch(self, region: GeoRegion, center: GeoPoint, radius_km: float) -> List[PollutionSource]:
        if not self.in_season():
            return []
        if self.rng.random() >= FIRE_PROBABILITY:
            return []

        count = int(self.rng.integers(1, MAX_SIMULATED_FIRES + 1))
        fires = []
        for i in range(count):
            bearing = self.rng.random() * 2 * math.pi
            distance = self.rng.random() * radius_km
            location = offset_point(center, distance, bearing)
            fires.append(
                PollutionSource(
                    id=f"wildfire-sim-{i + 1}",
                    source_type="wildfire",
                    name=f"Simulated Fire {i + 1}",
                    location=location,
                    description="Simulated wildfire data (NASA FIRMS unavailable)",
                    severity="high",
                    distance_km=distance_km(center, location),
                )
            )
        logger.info("Generated %d simulated wildfire(s) near %s", len(fires), center)
        return fires


__all__ = ["FIRE_SEASON_MONTHS", "SyntheticFireProvider"]
