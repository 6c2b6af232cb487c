"""Flask blueprint exposing nearby pollution sources."""
from __future__ import annotations

import logging

from flask import Blueprint, Response, request

from aerohealth.cache import CacheTTL
from aerohealth.errors import ValidationError
from routes import error_response, json_response, parse_point, parse_radius, services

logger = logging.getLogger(__name__)

sources_bp = Blueprint("pollution_sources", __name__)


@sources_bp.route("/pollution-sources")
def pollution_sources() -> Response:
    ctx = services()
    try:
        point = parse_point(request.args)
        radius = parse_radius(request.args, 25, ctx["settings"].max_source_radius_km, "km")
    except ValidationError as exc:
        return error_response(str(exc), 400)

    try:
        report = ctx["aggregator"].collect(point, radius)
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Error fetching pollution sources: %s", exc)
        return error_response("Failed to fetch pollution sources", 500)

    max_age = CacheTTL.WILDFIRES if report.has_wildfires else CacheTTL.POLLUTION_SOURCES
    return json_response(report.to_dict(), max_age=max_age)


__all__ = ["sources_bp"]
