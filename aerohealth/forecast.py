"""Hourly and daily AQI / pollen forecasts built from Open-Meteo time series."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .data_ingest import OPEN_METEO_POLLUTANTS
from .errors import NoReadingsError, UpstreamError
from .index_engine import (
    category_for,
    compute_index,
    pollen_category,
    readings_from_levels,
    ugm3_to_index_units,
)

logger = logging.getLogger(__name__)

HOURS_AHEAD = 24
MAX_DAYS = 7
UNITS = {
    "pm2_5": "µg/m³",
    "pm10": "µg/m³",
    "ozone": "ppb",
    "no2": "ppb",
    "so2": "ppb",
    "co": "ppm",
}
TREE_POLLEN = ["alder_pollen", "birch_pollen", "olive_pollen"]
WEED_POLLEN = ["mugwort_pollen", "ragweed_pollen"]


def _column(hourly: Dict[str, List[Any]], name: str, length: int) -> List[Optional[float]]:
    values = hourly.get(name) or []
    if not isinstance(values, list):
        raise UpstreamError("open-meteo", f"{name} is not a list")
    values = list(values[:length])
    return values + [None] * (length - len(values))


def _hourly_frame(hourly: Dict[str, List[Any]], columns: List[str]) -> pd.DataFrame:
    times = hourly["time"]
    if not times:
        raise UpstreamError("open-meteo", "forecast contains no hours")
    frame = pd.DataFrame({name: _column(hourly, name, len(times)) for name in columns})
    frame = frame.apply(pd.to_numeric, errors="coerce")
    frame.insert(0, "timestamp", times)
    frame["date"] = pd.to_datetime(frame["timestamp"]).dt.strftime("%Y-%m-%d")
    return frame


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def levels_at(frame: pd.DataFrame, position: int) -> Dict[str, Optional[float]]:
    """Concentrations for one hour, converted to breakpoint-table units."""
    row = frame.iloc[position]
    levels: Dict[str, Optional[float]] = {}
    for kind, variable in OPEN_METEO_POLLUTANTS.items():
        value = row[variable]
        levels[kind] = None if pd.isna(value) else round(ugm3_to_index_units(kind, float(value)), 3)
    return levels


def build_aqi_forecast(hourly: Dict[str, List[Any]]) -> Dict[str, Any]:
    """``{current, hourly[24], daily[<=7]}`` with every AQI from the index engine."""
    frame = _hourly_frame(hourly, list(OPEN_METEO_POLLUTANTS.values()))

    entries = []
    for position in range(len(frame)):
        levels = levels_at(frame, position)
        try:
            result = compute_index(readings_from_levels(levels))
        except NoReadingsError:
            continue
        entry = {"timestamp": frame.at[position, "timestamp"], **result.to_dict(), "pollutants": levels}
        entries.append((position, entry))
    if not entries:
        raise UpstreamError("open-meteo-air-quality", "forecast contains no pollutant readings")

    indexed = pd.DataFrame(
        {
            "date": [frame.at[position, "date"] for position, _ in entries],
            "aqi": [entry["aqi"] for _, entry in entries],
        }
    )
    daily = []
    for date, group in indexed.groupby("date", sort=True):
        peak = int(group["aqi"].max())
        daily.append(
            {
                "date": date,
                "peakAQI": peak,
                "avgAQI": _round_half_up(group["aqi"].mean()),
                "category": category_for(peak),
            }
        )

    return {
        "current": entries[0][1],
        "hourly": [entry for position, entry in entries if position < HOURS_AHEAD],
        "daily": daily[:MAX_DAYS],
        "units": dict(UNITS),
    }


def build_pollen_forecast(hourly: Dict[str, List[Any]]) -> Dict[str, Any]:
    """Tree / grass / weed pollen: current levels, next 24 hours and daily peaks."""
    frame = _hourly_frame(hourly, TREE_POLLEN + ["grass_pollen"] + WEED_POLLEN)
    frame = frame.fillna(0.0)
    frame["tree"] = frame[TREE_POLLEN].max(axis=1)
    frame["grass"] = frame["grass_pollen"]
    frame["weed"] = frame[WEED_POLLEN].max(axis=1)

    first = frame.iloc[0]
    current = {
        kind: {"level": float(first[kind]), "category": pollen_category(float(first[kind]))}
        for kind in ("tree", "grass", "weed")
    }
    current["timestamp"] = first["timestamp"]

    hourly_rows = [
        {
            "timestamp": row.timestamp,
            "tree": float(row.tree),
            "grass": float(row.grass),
            "weed": float(row.weed),
        }
        for row in frame.head(HOURS_AHEAD).itertuples(index=False)
    ]
    peaks = frame.groupby("date", sort=True)[["tree", "grass", "weed"]].max().head(MAX_DAYS)
    daily = [
        {"date": date, "tree": float(row["tree"]), "grass": float(row["grass"]), "weed": float(row["weed"])}
        for date, row in peaks.iterrows()
    ]
    return {"current": current, "hourly": hourly_rows, "daily": daily}


__all__ = ["build_aqi_forecast", "build_pollen_forecast", "levels_at"]
