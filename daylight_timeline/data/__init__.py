"""Data providers for Daylight Timeline."""

from .cache import SeriesCache, TTLCache
from .geocode import GeocodingClient
from .series import DailySample, YearSeries, build_year_series
from .solar import SolarSampler
from .timezone import TimezoneFinderLookup, TimezoneInfo, TimezoneResolver

__all__ = [
    "DailySample",
    "GeocodingClient",
    "SeriesCache",
    "SolarSampler",
    "TTLCache",
    "TimezoneFinderLookup",
    "TimezoneInfo",
    "TimezoneResolver",
    "YearSeries",
    "build_year_series",
]
