"""AeroHealth air quality and pollution source services."""
from . import aggregator
from . import cache
from . import index_engine
from . import utils_geo

__all__ = ["aggregator", "cache", "index_engine", "utils_geo"]
