"""Astronomical sampler using the astral library."""

import datetime
import logging
import math
from dataclasses import dataclass
from typing import Optional

from astral import Observer
from astral.sun import elevation, noon, sunrise, sunset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SunTimes:
    """Sun event times for a day. Sunrise/sunset are None during polar day/night."""

    sunrise: Optional[datetime.datetime]
    sunset: Optional[datetime.datetime]
    solar_noon: datetime.datetime


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    return math.floor(value + 0.5)


def local_zone(longitude: float) -> datetime.timezone:
    """
    Solar-local fixed offset zone for a longitude (15 degrees per hour).

    Keeps a day's sunrise and sunset on the same calendar date so their
    difference is the daylight length.
    """
    return datetime.timezone(datetime.timedelta(hours=round_half_up(longitude / 15)))


def local_time(
    date: datetime.date, longitude: float, hour: int, minute: int = 0
) -> datetime.datetime:
    """Instant of a wall-clock time on a date in the solar-local zone."""
    return datetime.datetime.combine(
        date, datetime.time(hour, minute), tzinfo=local_zone(longitude)
    )


def is_valid_instant(value: Optional[datetime.datetime]) -> bool:
    """True if a sun event instant is present and usable."""
    if value is None:
        return False
    return math.isfinite(value.timestamp())


class SolarSampler:
    """
    Samples sun position and sun event times.

    Stateless wrapper over astral; the series builder consumes it and
    never reimplements the astronomy.
    """

    def position_at(
        self, instant: datetime.datetime, latitude: float, longitude: float
    ) -> float:
        """
        Get the sun's altitude above the horizon.

        Args:
            instant: Timezone-aware datetime
            latitude: Observer latitude
            longitude: Observer longitude

        Returns:
            Altitude in radians (negative = below horizon)
        """
        observer = Observer(latitude=latitude, longitude=longitude)
        return math.radians(elevation(observer, instant))

    def times_for(
        self, date: datetime.date, latitude: float, longitude: float
    ) -> SunTimes:
        """
        Get sunrise, sunset and solar noon for a date.

        Args:
            date: Calendar date
            latitude: Observer latitude
            longitude: Observer longitude

        Returns:
            SunTimes; sunrise/sunset are None when the sun never crosses
            the horizon that day.
        """
        observer = Observer(latitude=latitude, longitude=longitude)
        tz = local_zone(longitude)

        rise = self._horizon_event(sunrise, observer, date, tz)
        set_ = self._horizon_event(sunset, observer, date, tz)
        return SunTimes(
            sunrise=rise,
            sunset=set_,
            solar_noon=noon(observer, date=date, tzinfo=tz),
        )

    @staticmethod
    def _horizon_event(func, observer, date, tz) -> Optional[datetime.datetime]:
        try:
            return func(observer, date=date, tzinfo=tz)
        except ValueError as e:
            # Sun never reaches the horizon (polar day/night)
            logger.debug(f"No {func.__name__} on {date}: {e}")
            return None
