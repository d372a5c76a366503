"""Timezone resolution for coordinates with retry and longitude fallback."""

import asyncio
import datetime
import enum
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timezonefinder import TimezoneFinder

from ..errors import TimezoneLookupError
from .cache import TTLCache
from .series import coordinate_key
from .solar import round_half_up

logger = logging.getLogger(__name__)

# Canonical UTC offset range in hours
MIN_OFFSET_HOURS = -12
MAX_OFFSET_HOURS = 14

# A geo lookup returns candidate IANA zone names for (lat, lng), most specific first
GeoLookup = Callable[[float, float], Awaitable[list[str]]]


class TimezoneSource(str, enum.Enum):
    RESOLVED = "resolved"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class TimezoneInfo:
    """Resolved timezone for a coordinate."""

    name: str
    offset_hours: int
    source: TimezoneSource

    @property
    def is_fallback(self) -> bool:
        return self.source == TimezoneSource.FALLBACK


def format_utc_offset(offset_hours: int) -> str:
    """Synthetic zone name such as UTC+5 or UTC-3."""
    sign = "+" if offset_hours >= 0 else "-"
    return f"UTC{sign}{abs(offset_hours)}"


def normalize_offset(offset_hours: int) -> int:
    """Fold an hour offset into the canonical [-12, 14] range."""
    while offset_hours > MAX_OFFSET_HOURS:
        offset_hours -= 24
    while offset_hours < MIN_OFFSET_HOURS:
        offset_hours += 24
    return offset_hours


def timezone_offset_hours(
    timezone_name: str, now: Optional[datetime.datetime] = None
) -> int:
    """
    Get the current UTC offset of a zone in whole hours.

    Formats the same instant as wall-clock time in the zone and in UTC,
    diffs the clock fields and corrects for the two falling on different
    calendar days.

    Args:
        timezone_name: IANA timezone name
        now: Instant to evaluate (default: current time)

    Returns:
        Offset in hours within [-12, 14]

    Raises:
        TimezoneLookupError: If the zone name is unknown
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)

    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise TimezoneLookupError(f"Unknown timezone '{timezone_name}'") from e

    local = now.astimezone(zone)
    utc = now.astimezone(datetime.timezone.utc)

    diff_minutes = (local.hour - utc.hour) * 60 + (local.minute - utc.minute)
    day_shift = (local.date() - utc.date()).days
    if day_shift == 1:
        diff_minutes += 24 * 60
    elif day_shift == -1:
        diff_minutes -= 24 * 60

    return normalize_offset(round_half_up(diff_minutes / 60))


def fallback_timezone(longitude: float) -> TimezoneInfo:
    """Longitude-based estimate: 15 degrees per hour."""
    offset = normalize_offset(round_half_up(longitude / 15))
    return TimezoneInfo(
        name=format_utc_offset(offset),
        offset_hours=offset,
        source=TimezoneSource.FALLBACK,
    )


class TimezoneFinderLookup:
    """
    Geo lookup backed by timezonefinder.

    The finder is created on first use and queried off the event loop.
    """

    def __init__(self):
        self._finder: Optional[TimezoneFinder] = None

    def _get_finder(self) -> TimezoneFinder:
        if self._finder is None:
            self._finder = TimezoneFinder()
        return self._finder

    def _find(self, latitude: float, longitude: float) -> list[str]:
        finder = self._get_finder()
        name = finder.timezone_at(lng=longitude, lat=latitude)
        if not name:
            name = finder.certain_timezone_at(lng=longitude, lat=latitude)
        return [name] if name else []

    async def __call__(self, latitude: float, longitude: float) -> list[str]:
        return await asyncio.to_thread(self._find, latitude, longitude)


class TimezoneResolver:
    """
    Maps coordinates to a UTC offset and zone name.

    Uses a geo lookup with retries when one is available and falls back to
    a longitude estimate otherwise. Results are cached whatever their
    source, and resolve() never raises.
    """

    def __init__(
        self,
        lookup: Optional[GeoLookup] = None,
        ttl_seconds: float = 3600,
        capacity: int = 100,
        max_attempts: int = 3,
        backoff_seconds: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        now: Optional[Callable[[], datetime.datetime]] = None,
    ):
        """
        Initialize timezone resolver.

        Args:
            lookup: Async geo lookup capability, or None if unavailable
            ttl_seconds: Cache entry lifetime
            capacity: Maximum cached coordinates
            max_attempts: Lookup attempts before falling back
            backoff_seconds: Delay unit; attempt n waits n * backoff_seconds
            sleep: Async sleep used between attempts
            clock: Time source for the cache
            now: Current instant used for offset calculation
        """
        self.lookup = lookup
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._now = now
        self.cache: TTLCache[TimezoneInfo] = TTLCache(ttl_seconds, capacity, clock)

        if lookup is None:
            logger.warning("Timezone lookup unavailable, using longitude-based fallback")

    @property
    def available(self) -> bool:
        return self.lookup is not None

    async def resolve(self, latitude: float, longitude: float) -> TimezoneInfo:
        """
        Resolve the timezone for a coordinate.

        Args:
            latitude: Location latitude
            longitude: Location longitude

        Returns:
            TimezoneInfo, resolved or fallback
        """
        key = coordinate_key(latitude, longitude)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        info = None
        if self.lookup is not None:
            try:
                info = await self._resolve_with_lookup(latitude, longitude)
            except TimezoneLookupError as e:
                logger.warning(f"Timezone lookup failed for {key}, using fallback: {e}")

        if info is None:
            info = fallback_timezone(longitude)

        self.cache.put(key, info)
        return info

    async def _resolve_with_lookup(
        self, latitude: float, longitude: float
    ) -> TimezoneInfo:
        name = await self._lookup_name(latitude, longitude)
        now = self._now() if self._now else None
        offset = timezone_offset_hours(name, now)
        logger.debug(f"Resolved {coordinate_key(latitude, longitude)} -> {name}")
        return TimezoneInfo(
            name=name, offset_hours=offset, source=TimezoneSource.RESOLVED
        )

    async def _lookup_name(self, latitude: float, longitude: float) -> str:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                names = await self.lookup(latitude, longitude)
                if names:
                    return names[0]
                last_error = TimezoneLookupError("No timezone found for coordinates")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e

            logger.debug(
                f"Timezone lookup attempt {attempt}/{self.max_attempts} failed: "
                f"{last_error}"
            )
            if attempt < self.max_attempts:
                await self._sleep(self.backoff_seconds * attempt)

        raise TimezoneLookupError(
            f"Lookup failed after {self.max_attempts} attempts: {last_error}"
        )
