"""HTTP clients for the upstream air-quality, weather and source providers.

Every function performs exactly one request and raises
:class:`~aerohealth.errors.UpstreamError` on a network error, a non-200
response or an undecodable body. Callers decide whether that is fatal.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import Settings
from .errors import UpstreamError
from .utils_geo import GeoPoint, GeoRegion

logger = logging.getLogger(__name__)

# our pollutant kinds -> Open-Meteo air-quality variables (all in µg/m³)
OPEN_METEO_POLLUTANTS: Dict[str, str] = {
    "pm2_5": "pm2_5",
    "pm10": "pm10",
    "ozone": "ozone",
    "no2": "nitrogen_dioxide",
    "so2": "sulphur_dioxide",
    "co": "carbon_monoxide",
}
POLLEN_VARIABLES = (
    "alder_pollen",
    "birch_pollen",
    "grass_pollen",
    "mugwort_pollen",
    "olive_pollen",
    "ragweed_pollen",
)


def build_session(user_agent: str = "AeroHealth-Forecast/1.0") -> requests.Session:
    """Session shared by all provider calls: one attempt per request, no retries."""
    session = requests.Session()
    retries = Retry(total=0, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = user_agent
    return session


def _get(
    session: requests.Session,
    settings: Settings,
    provider: str,
    url: str,
    params: Optional[Mapping[str, Any]] = None,
) -> requests.Response:
    try:
        response = session.get(url, params=params, timeout=settings.timeout)
    except requests.RequestException as exc:
        raise UpstreamError(provider, f"request failed: {exc}") from exc
    if response.status_code != 200:
        raise UpstreamError(
            provider, f"HTTP {response.status_code}: {response.text[:200]}"
        )
    return response


def _json(response: requests.Response, provider: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(provider, "response is not valid JSON") from exc


def _hourly(payload: Any, provider: str) -> Dict[str, List[Any]]:
    hourly = payload.get("hourly") if isinstance(payload, dict) else None
    if not isinstance(hourly, dict) or not isinstance(hourly.get("time"), list):
        raise UpstreamError(provider, "response has no hourly time series")
    return hourly


def fetch_air_quality(
    session: requests.Session, settings: Settings, point: GeoPoint, forecast_days: int = 7
) -> Dict[str, List[Any]]:
    """Hourly pollutant forecast (µg/m³) for one point, keyed by Open-Meteo variable."""
    params = {
        "latitude": point.lat,
        "longitude": point.lon,
        "hourly": ",".join(OPEN_METEO_POLLUTANTS.values()),
        "timezone": "auto",
        "forecast_days": forecast_days,
    }
    response = _get(session, settings, "open-meteo-air-quality", settings.air_quality_url, params)
    return _hourly(_json(response, "open-meteo-air-quality"), "open-meteo-air-quality")


def fetch_current_pollutants(
    session: requests.Session, settings: Settings, point: GeoPoint
) -> Dict[str, Optional[float]]:
    """Current pollutant concentrations (µg/m³) keyed by pollutant kind."""
    params = {
        "latitude": point.lat,
        "longitude": point.lon,
        "current": ",".join(OPEN_METEO_POLLUTANTS.values()),
        "timezone": "auto",
    }
    response = _get(session, settings, "open-meteo-current", settings.air_quality_url, params)
    payload = _json(response, "open-meteo-current")
    current = payload.get("current") if isinstance(payload, dict) else None
    if not isinstance(current, dict):
        raise UpstreamError("open-meteo-current", "response has no current block")
    return {kind: current.get(variable) for kind, variable in OPEN_METEO_POLLUTANTS.items()}


def fetch_pollen(
    session: requests.Session, settings: Settings, point: GeoPoint, forecast_days: int = 5
) -> Dict[str, List[Any]]:
    params = {
        "latitude": point.lat,
        "longitude": point.lon,
        "hourly": ",".join(POLLEN_VARIABLES),
        "timezone": "auto",
        "forecast_days": forecast_days,
    }
    response = _get(session, settings, "open-meteo-pollen", settings.air_quality_url, params)
    return _hourly(_json(response, "open-meteo-pollen"), "open-meteo-pollen")


def fetch_wind(session: requests.Session, settings: Settings, point: GeoPoint) -> Dict[str, Any]:
    """Current 10 m wind (speed, direction, gusts) for one point."""
    params = {
        "latitude": point.lat,
        "longitude": point.lon,
        "current": "wind_speed_10m,wind_direction_10m,wind_gusts_10m",
        "hourly": "wind_speed_10m,wind_direction_10m",
        "timezone": "auto",
        "forecast_days": 1,
    }
    response = _get(session, settings, "open-meteo-wind", settings.forecast_url, params)
    payload = _json(response, "open-meteo-wind")
    current = payload.get("current") if isinstance(payload, dict) else None
    if not isinstance(current, dict):
        raise UpstreamError("open-meteo-wind", "response has no current block")
    return current


def fetch_overpass(
    session: requests.Session, settings: Settings, query: str, provider: str = "overpass"
) -> List[Dict[str, Any]]:
    """Run an Overpass QL query and return its ``elements`` list."""
    response = _get(session, settings, provider, settings.overpass_url, {"data": query})
    payload = _json(response, provider)
    elements = payload.get("elements") if isinstance(payload, dict) else None
    if not isinstance(elements, list):
        raise UpstreamError(provider, "response has no elements list")
    return elements


def fetch_firms_csv(session: requests.Session, settings: Settings, region: GeoRegion) -> str:
    """Raw FIRMS area CSV for the region over the configured day range."""
    if not settings.firms_configured:
        raise UpstreamError("nasa-firms", "NASA_FIRMS_API_KEY not configured")
    url = (
        f"{settings.firms_base_url}/{settings.firms_api_key}/{settings.firms_source}/"
        f"{region.firms_area()}/{settings.firms_day_range}"
    )
    logger.info("Fetching FIRMS detections: area=%s", region.firms_area())
    return _get(session, settings, "nasa-firms", url).text


__all__ = [
    "OPEN_METEO_POLLUTANTS",
    "POLLEN_VARIABLES",
    "build_session",
    "fetch_air_quality",
    "fetch_current_pollutants",
    "fetch_firms_csv",
    "fetch_overpass",
    "fetch_pollen",
    "fetch_wind",
]
