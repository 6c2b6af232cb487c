"""Error types shared by the AeroHealth services."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class AeroHealthError(Exception):
    """Base class for all AeroHealth errors."""


class ValidationError(AeroHealthError, ValueError):
    """Missing or unusable request parameters (HTTP 400)."""


class UpstreamError(AeroHealthError, RuntimeError):
    """A single upstream provider call failed."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class NoReadingsError(AeroHealthError, ValueError):
    """An index was requested for an empty set of pollutant readings."""


class DegenerateRegionError(AeroHealthError, ValueError):
    """Longitude spans are undefined at the poles."""


@dataclass(frozen=True)
class RecordError:
    """One malformed upstream record, skipped during normalization."""

    provider: str
    row: Optional[int]
    reason: str


__all__ = [
    "AeroHealthError",
    "ValidationError",
    "UpstreamError",
    "NoReadingsError",
    "DegenerateRegionError",
    "RecordError",
]
