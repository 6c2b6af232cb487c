"""EPA piecewise-linear Air Quality Index engine.

Every pollutant has an ordered breakpoint table of ``(c_low, c_high, i_low,
i_high)`` tuples. Concentrations are truncated to the precision the table is
written in (EPA reporting practice), so consecutive segments such as
12.0 / 12.1 leave no gaps, then interpolated linearly inside their segment.

Units: particulates in µg/m³, gases in ppb, except CO in ppm.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import NoReadingsError

# Canonical order; also the tie-break order for the primary pollutant.
POLLUTANTS: Tuple[str, ...] = ("pm2_5", "pm10", "ozone", "no2", "so2", "co")

Breakpoint = Tuple[float, float, int, int]

BREAKPOINTS: Dict[str, List[Breakpoint]] = {
    "pm2_5": [
        (0.0, 12.0, 0, 50),
        (12.1, 35.4, 51, 100),
        (35.5, 55.4, 101, 150),
        (55.5, 150.4, 151, 200),
        (150.5, 250.4, 201, 300),
        (250.5, 500.4, 301, 500),
    ],
    "pm10": [
        (0, 54, 0, 50),
        (55, 154, 51, 100),
        (155, 254, 101, 150),
        (255, 354, 151, 200),
        (355, 424, 201, 300),
        (425, 604, 301, 500),
    ],
    # 8-hour ozone; the table stops at 300
    "ozone": [
        (0, 54, 0, 50),
        (55, 70, 51, 100),
        (71, 85, 101, 150),
        (86, 105, 151, 200),
        (106, 200, 201, 300),
    ],
    "no2": [
        (0, 53, 0, 50),
        (54, 100, 51, 100),
        (101, 360, 101, 150),
        (361, 649, 151, 200),
        (650, 1249, 201, 300),
        (1250, 2049, 301, 500),
    ],
    "so2": [
        (0, 35, 0, 50),
        (36, 75, 51, 100),
        (76, 185, 101, 150),
        (186, 304, 151, 200),
        (305, 604, 201, 300),
        (605, 1004, 301, 500),
    ],
    "co": [
        (0.0, 4.4, 0, 50),
        (4.5, 9.4, 51, 100),
        (9.5, 12.4, 101, 150),
        (12.5, 15.4, 151, 200),
        (15.5, 30.4, 201, 300),
        (30.5, 50.4, 301, 500),
    ],
}

_TRUNCATION = {
    "pm2_5": Decimal("0.1"),
    "pm10": Decimal("1"),
    "ozone": Decimal("1"),
    "no2": Decimal("1"),
    "so2": Decimal("1"),
    "co": Decimal("0.1"),
}

AQI_CATEGORIES: Dict[str, Tuple[str, int, int]] = {
    "good": ("Good", 0, 50),
    "moderate": ("Moderate", 51, 100),
    "unhealthy_sensitive": ("Unhealthy for Sensitive Groups", 101, 150),
    "unhealthy": ("Unhealthy", 151, 200),
    "very_unhealthy": ("Very Unhealthy", 201, 300),
    "hazardous": ("Hazardous", 301, 500),
}

# g/mol, for µg/m³ -> ppb at 25 °C and 1 atm
MOLECULAR_WEIGHTS = {"ozone": 48.00, "no2": 46.01, "so2": 64.07, "co": 28.01}
MOLAR_VOLUME = 24.45

POLLEN_CATEGORIES: Tuple[Tuple[float, str], ...] = (
    (2.4, "low"),
    (4.8, "moderate"),
    (7.2, "high"),
)


@dataclass(frozen=True)
class PollutantReading:
    kind: str
    concentration: float


@dataclass
class IndexResult:
    index: int
    category: str
    primary_pollutant: str
    sub_indices: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "aqi": self.index,
            "category": self.category,
            "label": AQI_CATEGORIES[self.category][0],
            "primaryPollutant": self.primary_pollutant,
            "subIndices": dict(self.sub_indices),
        }


def _truncate(kind: str, concentration: float) -> float:
    value = Decimal(str(concentration)).quantize(_TRUNCATION[kind], rounding=ROUND_DOWN)
    return float(value)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def index_for(kind: str, concentration: float) -> int:
    """Sub-index for one pollutant concentration, saturating at the table top."""
    try:
        table = BREAKPOINTS[kind]
    except KeyError:
        raise ValueError(f"Unknown pollutant kind: {kind!r}") from None
    if concentration is None or not math.isfinite(concentration):
        raise ValueError(f"Concentration for {kind} must be a finite number")

    c = max(0.0, float(concentration))
    if c > table[-1][1]:
        return table[-1][3]
    c = _truncate(kind, c)
    for c_low, c_high, i_low, i_high in table:
        if c_low <= c <= c_high:
            return _round_half_up((i_high - i_low) / (c_high - c_low) * (c - c_low) + i_low)
    return table[-1][3]


def category_for(index: int) -> str:
    if index < 0:
        raise ValueError("AQI cannot be negative")
    for name, (_, _low, high) in AQI_CATEGORIES.items():
        if index <= high:
            return name
    return "hazardous"


def readings_from_levels(levels: Mapping[str, Optional[float]]) -> List[PollutantReading]:
    """Turn a ``{kind: concentration}`` mapping into readings, skipping gaps."""
    readings = []
    for kind in POLLUTANTS:
        value = levels.get(kind)
        if value is None:
            continue
        value = float(value)
        if math.isnan(value):
            continue
        readings.append(PollutantReading(kind, value))
    return readings


def primary_pollutant(readings: Iterable[PollutantReading]) -> Tuple[str, Dict[str, int]]:
    """Pick the pollutant with the highest sub-index.

    Ties go to the kind that comes first in ``POLLUTANTS``
    (pm2_5, pm10, ozone, no2, so2, co), whatever the input order.
    """
    sub_indices: Dict[str, int] = {}
    for reading in readings:
        value = index_for(reading.kind, reading.concentration)
        sub_indices[reading.kind] = max(value, sub_indices.get(reading.kind, value))
    if not sub_indices:
        raise NoReadingsError("no pollutant readings to index")

    best_kind = None
    for kind in POLLUTANTS:
        if kind in sub_indices and (best_kind is None or sub_indices[kind] > sub_indices[best_kind]):
            best_kind = kind
    ordered = {kind: sub_indices[kind] for kind in POLLUTANTS if kind in sub_indices}
    return best_kind, ordered


def compute_index(readings: Iterable[PollutantReading]) -> IndexResult:
    kind, sub_indices = primary_pollutant(readings)
    index = sub_indices[kind]
    return IndexResult(
        index=index,
        category=category_for(index),
        primary_pollutant=kind,
        sub_indices=sub_indices,
    )


def ugm3_to_index_units(kind: str, value: float) -> float:
    """Convert a µg/m³ concentration to the unit the breakpoint table expects."""
    if kind not in MOLECULAR_WEIGHTS:
        return value
    ppb = value * MOLAR_VOLUME / MOLECULAR_WEIGHTS[kind]
    return ppb / 1000.0 if kind == "co" else ppb


def pollen_category(level: float) -> str:
    for upper, name in POLLEN_CATEGORIES:
        if level <= upper:
            return name
    return "very_high"


__all__ = [
    "AQI_CATEGORIES",
    "BREAKPOINTS",
    "POLLUTANTS",
    "IndexResult",
    "PollutantReading",
    "category_for",
    "compute_index",
    "index_for",
    "pollen_category",
    "primary_pollutant",
    "readings_from_levels",
    "ugm3_to_index_units",
]
