"""Flask blueprint exposing the air quality, pollen and wind endpoints."""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Mapping, Optional

from flask import Blueprint, Response, current_app, jsonify, request

from aerohealth.cache import CacheTTL, canonical_key
from aerohealth.data_ingest import fetch_air_quality, fetch_pollen, fetch_wind
from aerohealth.errors import ValidationError
from aerohealth.forecast import build_aqi_forecast, build_pollen_forecast
from aerohealth.spatial import build_wind_field, national_snapshot, sample_aqi_grid
from aerohealth.utils_geo import GeoPoint

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)


# ---------- helpers ----------
def services() -> Dict[str, Any]:
    return current_app.extensions["aerohealth"]


def parse_point(args: Mapping[str, str]) -> GeoPoint:
    latitude = args.get("latitude")
    longitude = args.get("longitude")
    if not latitude or not longitude:
        raise ValidationError("Latitude and longitude are required")
    return GeoPoint.validated(latitude, longitude)


def parse_radius(args: Mapping[str, str], default: float, maximum: float, unit: str) -> float:
    raw = args.get("radius") or default
    try:
        radius = float(raw)
    except ValueError as exc:
        raise ValidationError("radius must be numeric") from exc
    if not math.isfinite(radius) or radius <= 0:
        raise ValidationError("radius must be a positive number")
    if radius > maximum:
        raise ValidationError(f"radius must not exceed {maximum:g} {unit}")
    return radius


def location_key(operation: str, point: GeoPoint, **extra: Any) -> str:
    return canonical_key(operation, {"lat": f"{point.lat:.4f}", "lon": f"{point.lon:.4f}", **extra})


def json_response(payload: Any, max_age: Optional[int] = None, status: int = 200) -> Response:
    response = jsonify(payload)
    response.status_code = status
    response.headers["Cache-Control"] = f"public, max-age={max_age}" if max_age else "no-store"
    return response


def error_response(message: str, status: int) -> Response:
    return json_response({"error": message}, status=status)


# ---------- /aqi ----------
@bp.route("/aqi")
def aqi() -> Response:
    try:
        point = parse_point(request.args)
    except ValidationError as exc:
        return error_response(str(exc), 400)

    ctx = services()
    try:
        hourly = fetch_air_quality(ctx["session"], ctx["settings"], point)
        payload = build_aqi_forecast(hourly)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error fetching AQI data: %s", exc)
        return error_response("Failed to fetch air quality data", 500)
    return json_response(payload)


# ---------- /aqi-grid ----------
@bp.route("/aqi-grid")
def aqi_grid() -> Response:
    ctx = services()
    try:
        point = parse_point(request.args)
        radius = parse_radius(request.args, 0.5, ctx["settings"].max_grid_radius_deg, "degrees")
    except ValidationError as exc:
        return error_response(str(exc), 400)

    cache = ctx["cache"]
    key = location_key("aqi-grid", point, radius=radius)
    cached = cache.get(key)
    if cached is not None:
        logger.info("Returning cached AQI grid data")
        return json_response(cached, max_age=CacheTTL.AQI_GRID)

    try:
        points = sample_aqi_grid(ctx["session"], ctx["settings"], point, radius)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error fetching grid AQI data: %s", exc)
        return error_response("Failed to fetch grid AQI data", 500)

    payload = {"points": points, "center": [point.lat, point.lon], "radius": radius}
    cache.set(key, payload, CacheTTL.AQI_GRID)
    return json_response(payload, max_age=CacheTTL.AQI_GRID)


# ---------- /pollen ----------
@bp.route("/pollen")
def pollen() -> Response:
    try:
        point = parse_point(request.args)
    except ValidationError as exc:
        return error_response(str(exc), 400)

    ctx = services()
    key = location_key("pollen", point)
    cached = ctx["cache"].get(key)
    if cached is not None:
        return json_response(cached, max_age=CacheTTL.POLLEN)

    try:
        hourly = fetch_pollen(ctx["session"], ctx["settings"], point)
        payload = build_pollen_forecast(hourly)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error fetching pollen data: %s", exc)
        return error_response("Failed to fetch pollen data", 500)

    ctx["cache"].set(key, payload, CacheTTL.POLLEN)
    return json_response(payload, max_age=CacheTTL.POLLEN)


# ---------- /wind ----------
@bp.route("/wind")
def wind() -> Response:
    try:
        point = parse_point(request.args)
    except ValidationError as exc:
        return error_response(str(exc), 400)

    ctx = services()
    key = location_key("wind", point)
    cached = ctx["cache"].get(key)
    if cached is not None:
        logger.info("Returning cached wind data")
        return json_response(cached, max_age=CacheTTL.WIND)

    try:
        current = fetch_wind(ctx["session"], ctx["settings"], point)
        payload = build_wind_field(current, point, rng=ctx["rng"])
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error fetching wind data: %s", exc)
        return error_response("Failed to fetch wind data", 500)

    ctx["cache"].set(key, payload, CacheTTL.WIND)
    return json_response(payload, max_age=CacheTTL.WIND)


# ---------- /national-aqi ----------
@bp.route("/national-aqi")
def national_aqi() -> Response:
    ctx = services()
    key = canonical_key("national-aqi", {})
    cached = ctx["cache"].get(key)
    if cached is not None:
        logger.info("Returning cached national AQI data")
        return json_response(cached, max_age=CacheTTL.NATIONAL_AQI)

    try:
        payload = national_snapshot(ctx["session"], ctx["settings"])
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error fetching national AQI: %s", exc)
        return error_response("Failed to fetch national AQI data", 500)

    ctx["cache"].set(key, payload, CacheTTL.NATIONAL_AQI)
    return json_response(payload, max_age=CacheTTL.NATIONAL_AQI)


# ---------- /health ----------
@bp.route("/health")
def health() -> Response:
    ctx = services()
    stats = ctx["cache"].stats()
    return json_response(
        {
            "status": "ok",
            "firms_configured": ctx["settings"].firms_configured,
            "cache": {"size": stats["size"], "expired": stats["expired"]},
        }
    )


__all__ = ["bp", "parse_point", "parse_radius", "json_response", "error_response", "services"]
