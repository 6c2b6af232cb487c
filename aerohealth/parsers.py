"""Normalization of provider payloads into :class:`PollutionSource` records.

Each parser validates field presence and type before building a source. A bad
record becomes a :class:`~aerohealth.errors.RecordError` in the result and the
rest of the batch is still parsed.
"""
from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .errors import RecordError, UpstreamError
from .utils_geo import GeoPoint, distance_km

logger = logging.getLogger(__name__)

SOURCE_TYPES = ("factory", "highway", "wildfire", "airport", "port")
SEVERITIES = ("low", "medium", "high")

FIRMS_REQUIRED_COLUMNS = (
    "latitude",
    "longitude",
    "acq_date",
    "acq_time",
    "satellite",
    "confidence",
    "frp",
)
FIRMS_HIGH_FRP_MW = 100.0
FIRMS_LOW_FRP_MW = 10.0


@dataclass
class PollutionSource:
    id: str
    source_type: str
    name: str
    location: GeoPoint
    description: str
    severity: Optional[str] = None
    distance_km: float = 0.0

    def __post_init__(self) -> None:
        if self.source_type not in SOURCE_TYPES:
            raise ValueError(f"unknown source type {self.source_type!r}")
        if self.severity is not None and self.severity not in SEVERITIES:
            raise ValueError(f"unknown severity {self.severity!r}")

    def with_distance_from(self, center: GeoPoint) -> "PollutionSource":
        return replace(self, distance_km=distance_km(center, self.location))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.source_type,
            "name": self.name,
            "latitude": self.location.lat,
            "longitude": self.location.lon,
            "description": self.description,
            "severity": self.severity,
            "distance": round(self.distance_km, 1),
        }


@dataclass
class ParsedRecords:
    sources: List[PollutionSource] = field(default_factory=list)
    errors: List[RecordError] = field(default_factory=list)

    def log_errors(self, provider: str) -> None:
        if self.errors:
            logger.warning(
                "%s: skipped %d malformed record(s), first: %s",
                provider,
                len(self.errors),
                self.errors[0].reason,
            )


def _coordinate(value: Any, low: float, high: float) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value) or not low <= value <= high:
        return None
    return value


def _element_point(element: Dict[str, Any]) -> Optional[GeoPoint]:
    """Node position, or the ``out center`` centroid of a way."""
    source = element if "lat" in element or "lon" in element else element.get("center")
    if not isinstance(source, dict):
        return None
    lat = _coordinate(source.get("lat"), -90.0, 90.0)
    lon = _coordinate(source.get("lon"), -180.0, 180.0)
    if lat is None or lon is None:
        return None
    return GeoPoint(lat, lon)


def _element_tags(element: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    tags = element.get("tags", {})
    return tags if isinstance(tags, dict) else None


def highway_severity(highway_class: Optional[str]) -> str:
    return "high" if highway_class == "motorway" else "medium"


def parse_highways(elements: Iterable[Any], limit: Optional[int] = None) -> ParsedRecords:
    """Overpass way records (``out center``) -> ``highway`` sources."""
    result = ParsedRecords()
    for position, element in enumerate(elements):
        if limit is not None and len(result.sources) >= limit:
            break
        if not isinstance(element, dict) or element.get("id") is None:
            result.errors.append(RecordError("overpass-highways", position, "record has no id"))
            continue
        point = _element_point(element)
        if point is None:
            result.errors.append(RecordError("overpass-highways", position, "record has no valid center"))
            continue
        tags = _element_tags(element)
        if tags is None:
            result.errors.append(RecordError("overpass-highways", position, "tags is not an object"))
            continue

        highway_class = tags.get("highway")
        result.sources.append(
            PollutionSource(
                id=f"highway-{element['id']}",
                source_type="highway",
                name=tags.get("name") or f"Highway {tags.get('ref') or position + 1}",
                location=point,
                description=f"{highway_class or 'Road'} - High traffic area",
                severity=highway_severity(highway_class),
            )
        )
    return result


def classify_facility(tags: Dict[str, Any]) -> str:
    if tags.get("aeroway") == "aerodrome":
        return "airport"
    if tags.get("landuse") == "port" or tags.get("industrial") == "port" or tags.get("harbour") == "yes":
        return "port"
    return "factory"


_FACILITY_TEXT = {
    "airport": ("Airport", "Airport - Aircraft emissions"),
    "port": ("Port", "Port - Shipping and cargo emissions"),
    "factory": ("Industrial Area", "Industrial area - Manufacturing emissions"),
}


def parse_industrial(elements: Iterable[Any], limit: Optional[int] = None) -> ParsedRecords:
    """Overpass nodes/ways for aerodromes, ports and industry -> facility sources."""
    result = ParsedRecords()
    for position, element in enumerate(elements):
        if limit is not None and len(result.sources) >= limit:
            break
        if not isinstance(element, dict) or element.get("id") is None:
            result.errors.append(RecordError("overpass-industrial", position, "record has no id"))
            continue
        point = _element_point(element)
        if point is None:
            result.errors.append(RecordError("overpass-industrial", position, "record has no valid position"))
            continue
        tags = _element_tags(element)
        if tags is None:
            result.errors.append(RecordError("overpass-industrial", position, "tags is not an object"))
            continue

        source_type = classify_facility(tags)
        label, description = _FACILITY_TEXT[source_type]
        element_type = element.get("type", "element")
        result.sources.append(
            PollutionSource(
                id=f"industrial-{element_type}-{element['id']}",
                source_type=source_type,
                name=tags.get("name") or f"{label} {position + 1}",
                location=point,
                description=description,
                severity="medium",
            )
        )
    return result


def normalize_confidence(raw: str) -> Optional[str]:
    """VIIRS letters, words or MODIS percentages -> low / nominal / high."""
    value = raw.strip().lower()
    if value in ("h", "high"):
        return "high"
    if value in ("n", "nominal"):
        return "nominal"
    if value in ("l", "low"):
        return "low"
    try:
        percent = float(value)
    except ValueError:
        return None
    if percent >= 80:
        return "high"
    if percent < 30:
        return "low"
    return "nominal"


def firms_severity(confidence: str, frp: float) -> str:
    if confidence == "high" and frp > FIRMS_HIGH_FRP_MW:
        return "high"
    if confidence == "low" or frp < FIRMS_LOW_FRP_MW:
        return "low"
    return "medium"


def _cell(row: Dict[str, Any], name: str) -> Optional[str]:
    value = row.get(name)
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    value = str(value).strip()
    return value or None


def _float_cell(row: Dict[str, Any], name: str) -> Optional[float]:
    value = _cell(row, name)
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _field_count(line: str) -> int:
    return len(next(csv.reader([line])))


def parse_firms_csv(text: str) -> ParsedRecords:
    """FIRMS area CSV (one row per detection) -> ``wildfire`` sources.

    Raises UpstreamError when the payload is not a detection table at all,
    e.g. an error message returned with a 200 status.
    """
    result = ParsedRecords()
    if not text or not text.strip():
        raise UpstreamError("nasa-firms", "empty CSV payload")

    # only rows as wide as the header reach pandas
    header, *lines = [line for line in text.splitlines() if line.strip()]
    width = _field_count(header)
    kept_lines: List[str] = []
    kept_rows: List[int] = []
    for row_number, line in enumerate(lines, start=1):
        count = _field_count(line)
        if count != width:
            result.errors.append(
                RecordError("nasa-firms", row_number, f"wrong field count ({count}, expected {width})")
            )
            continue
        kept_lines.append(line)
        kept_rows.append(row_number)

    try:
        frame = pd.read_csv(
            io.StringIO("\n".join([header] + kept_lines)),
            dtype=str,
            keep_default_na=False,
            index_col=False,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise UpstreamError("nasa-firms", f"unreadable CSV: {exc}") from exc

    frame.columns = [str(column).strip().lower() for column in frame.columns]
    missing = [column for column in FIRMS_REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise UpstreamError("nasa-firms", f"CSV is missing columns {missing}")

    for row_number, row in zip(kept_rows, frame.to_dict("records")):
        if any(_cell(row, column) is None for column in FIRMS_REQUIRED_COLUMNS):
            result.errors.append(RecordError("nasa-firms", row_number, "missing field"))
            continue
        lat = _float_cell(row, "latitude")
        lon = _float_cell(row, "longitude")
        if lat is None or lon is None or not -90 <= lat <= 90 or not -180 <= lon <= 180:
            result.errors.append(RecordError("nasa-firms", row_number, "invalid coordinates"))
            continue
        frp = _float_cell(row, "frp")
        if frp is None:
            result.errors.append(RecordError("nasa-firms", row_number, "non-numeric frp"))
            continue
        confidence = normalize_confidence(_cell(row, "confidence"))
        if confidence is None:
            result.errors.append(RecordError("nasa-firms", row_number, "unrecognised confidence"))
            continue

        acq_date = _cell(row, "acq_date")
        acq_time = _cell(row, "acq_time").zfill(4)
        satellite = _cell(row, "satellite")
        result.sources.append(
            PollutionSource(
                id=f"wildfire-{row_number}-{acq_date}-{acq_time}",
                source_type="wildfire",
                name=f"Active Fire ({satellite})",
                location=GeoPoint(lat, lon),
                description=(
                    f"Fire detected at {acq_time[:2]}:{acq_time[2:4]} UTC on {acq_date}. "
                    f"FRP: {frp:.1f} MW. Confidence: {confidence}"
                ),
                severity=firms_severity(confidence, frp),
            )
        )
    return result


__all__ = [
    "FIRMS_REQUIRED_COLUMNS",
    "ParsedRecords",
    "PollutionSource",
    "SEVERITIES",
    "SOURCE_TYPES",
    "classify_facility",
    "firms_severity",
    "highway_severity",
    "normalize_confidence",
    "parse_firms_csv",
    "parse_highways",
    "parse_industrial",
]
