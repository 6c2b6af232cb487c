"""Runtime settings read from the environment (and .env via python-dotenv)."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

FIRMS_KEY_PLACEHOLDER = "your_map_key_here"


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Container for every tunable of the service."""

    firms_api_key: Optional[str] = None
    firms_source: str = "VIIRS_NOAA20_NRT"
    firms_day_range: int = 1
    firms_base_url: str = "https://firms.modaps.eosdis.nasa.gov/api/area/csv"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    air_quality_url: str = "https://air-quality-api.open-meteo.com/v1/air-quality"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    user_agent: str = "AeroHealth-Forecast/1.0"
    connect_timeout: float = 5.0
    read_timeout: float = 25.0
    cache_sweep_interval: float = 300.0
    grid_workers: int = 8
    national_sample_size: int = 15
    max_highways: int = 10
    max_industrial: int = 5
    max_source_radius_km: float = 500.0
    max_grid_radius_deg: float = 5.0
    log_level: str = "INFO"

    @property
    def firms_configured(self) -> bool:
        return bool(self.firms_api_key) and self.firms_api_key != FIRMS_KEY_PLACEHOLDER

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            firms_api_key=env.get("NASA_FIRMS_API_KEY") or None,
            firms_source=env.get("NASA_FIRMS_SOURCE", defaults.firms_source),
            firms_day_range=_env_int(env, "NASA_FIRMS_DAY_RANGE", defaults.firms_day_range),
            firms_base_url=env.get("NASA_FIRMS_BASE_URL", defaults.firms_base_url),
            overpass_url=env.get("OVERPASS_URL", defaults.overpass_url),
            air_quality_url=env.get("OPEN_METEO_AIR_QUALITY_URL", defaults.air_quality_url),
            forecast_url=env.get("OPEN_METEO_FORECAST_URL", defaults.forecast_url),
            user_agent=env.get("AEROHEALTH_USER_AGENT", defaults.user_agent),
            connect_timeout=_env_float(env, "AEROHEALTH_CONNECT_TIMEOUT", defaults.connect_timeout),
            read_timeout=_env_float(env, "AEROHEALTH_READ_TIMEOUT", defaults.read_timeout),
            cache_sweep_interval=_env_float(
                env, "AEROHEALTH_CACHE_SWEEP_SECONDS", defaults.cache_sweep_interval
            ),
            grid_workers=_env_int(env, "AEROHEALTH_GRID_WORKERS", defaults.grid_workers),
            national_sample_size=_env_int(
                env, "AEROHEALTH_NATIONAL_SAMPLE_SIZE", defaults.national_sample_size
            ),
            max_highways=_env_int(env, "AEROHEALTH_MAX_HIGHWAYS", defaults.max_highways),
            max_industrial=_env_int(env, "AEROHEALTH_MAX_INDUSTRIAL", defaults.max_industrial),
            max_source_radius_km=_env_float(
                env, "AEROHEALTH_MAX_SOURCE_RADIUS_KM", defaults.max_source_radius_km
            ),
            max_grid_radius_deg=_env_float(
                env, "AEROHEALTH_MAX_GRID_RADIUS_DEG", defaults.max_grid_radius_deg
            ),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        )


__all__ = ["Settings", "FIRMS_KEY_PLACEHOLDER"]
