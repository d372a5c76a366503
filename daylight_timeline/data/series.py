"""Year-long daily daylight series built from sun samples."""

import dataclasses
import datetime
import logging
import math
from dataclasses import dataclass
from typing import Iterator, Optional

from ..errors import SamplerError
from .solar import SolarSampler, is_valid_instant, local_time

logger = logging.getLogger(__name__)

WINDOW_DAYS = 365
DAYS_BEFORE_REFERENCE = 182


def coordinate_key(latitude: float, longitude: float) -> str:
    """Cache/identity key for a coordinate (4 decimals, about 11 m)."""
    return f"{latitude:.4f},{longitude:.4f}"


@dataclass(frozen=True)
class DailySample:
    """Daylight figures for one calendar day at one location."""

    date: datetime.date
    sunrise: Optional[datetime.datetime]
    sunset: Optional[datetime.datetime]
    solar_noon: datetime.datetime
    max_altitude: float  # Degrees, at solar noon
    altitude_9am: float  # Degrees
    altitude_3pm: float  # Degrees
    daylight_hours: float  # 0-24
    is_polar_extreme: bool
    is_today: bool
    change_minutes: Optional[float] = None  # vs previous day

    @property
    def is_polar_day(self) -> bool:
        return self.is_polar_extreme and self.daylight_hours >= 24

    @property
    def is_polar_night(self) -> bool:
        return self.is_polar_extreme and self.daylight_hours <= 0


@dataclass(frozen=True)
class YearSeries:
    """Ordered daily samples for one location, one per calendar day."""

    latitude: float
    longitude: float
    reference_date: datetime.date
    samples: tuple

    @property
    def key(self) -> str:
        return coordinate_key(self.latitude, self.longitude)

    @property
    def dates(self) -> list[datetime.date]:
        return [s.date for s in self.samples]

    def today(self) -> Optional[DailySample]:
        """The sample flagged as today, if any."""
        for sample in self.samples:
            if sample.is_today:
                return sample
        return None

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[DailySample]:
        return iter(self.samples)

    def __getitem__(self, index):
        return self.samples[index]


def _daylight_hours(
    sampler: SolarSampler,
    date: datetime.date,
    latitude: float,
    longitude: float,
    sunrise: Optional[datetime.datetime],
    sunset: Optional[datetime.datetime],
) -> tuple[float, bool]:
    """Return (daylight hours, is polar extreme) for one day."""
    if not (is_valid_instant(sunrise) and is_valid_instant(sunset)):
        # No horizon crossing: decide by the sun's altitude at local noon
        noon_altitude = sampler.position_at(
            local_time(date, longitude, 12), latitude, longitude
        )
        return (24.0 if noon_altitude > 0 else 0.0), True

    hours = (sunset - sunrise).total_seconds() / 3600
    return max(0.0, min(24.0, hours)), False


def _build_sample(
    sampler: SolarSampler,
    date: datetime.date,
    latitude: float,
    longitude: float,
    reference_date: datetime.date,
) -> DailySample:
    try:
        times = sampler.times_for(date, latitude, longitude)
        daylight, polar = _daylight_hours(
            sampler, date, latitude, longitude, times.sunrise, times.sunset
        )
        max_alt = sampler.position_at(times.solar_noon, latitude, longitude)
        alt_9 = sampler.position_at(local_time(date, longitude, 9), latitude, longitude)
        alt_15 = sampler.position_at(
            local_time(date, longitude, 15), latitude, longitude
        )
    except SamplerError:
        raise
    except Exception as e:
        raise SamplerError(latitude, longitude, date, str(e)) from e

    if not all(math.isfinite(v) for v in (daylight, max_alt, alt_9, alt_15)):
        raise SamplerError(latitude, longitude, date, "non-finite sun position")

    return DailySample(
        date=date,
        sunrise=None if polar else times.sunrise,
        sunset=None if polar else times.sunset,
        solar_noon=times.solar_noon,
        max_altitude=math.degrees(max_alt),
        altitude_9am=math.degrees(alt_9),
        altitude_3pm=math.degrees(alt_15),
        daylight_hours=daylight,
        is_polar_extreme=polar,
        is_today=date == reference_date,
    )


def _day_before_daylight(
    sampler: SolarSampler, date: datetime.date, latitude: float, longitude: float
) -> Optional[float]:
    """Daylight of the day before the window, or None if it has no sunrise/sunset."""
    day_before = date - datetime.timedelta(days=1)
    try:
        times = sampler.times_for(day_before, latitude, longitude)
    except Exception as e:
        raise SamplerError(latitude, longitude, day_before, str(e)) from e

    if not (is_valid_instant(times.sunrise) and is_valid_instant(times.sunset)):
        return None
    return (times.sunset - times.sunrise).total_seconds() / 3600


def _with_changes(
    samples: list[DailySample],
    before: Optional[float],
) -> list[DailySample]:
    """Fill change_minutes for every sample."""
    changes: list[float] = [0.0] * len(samples)
    for i in range(1, len(samples)):
        changes[i] = (samples[i].daylight_hours - samples[i - 1].daylight_hours) * 60

    if samples:
        if before is not None:
            changes[0] = (samples[0].daylight_hours - before) * 60
        else:
            changes[0] = changes[1] if len(samples) > 1 else 0.0

    return [
        dataclasses.replace(sample, change_minutes=change)
        for sample, change in zip(samples, changes)
    ]


def build_year_series(
    latitude: float,
    longitude: float,
    reference_date: Optional[datetime.date] = None,
    sampler: Optional[SolarSampler] = None,
    window_days: int = WINDOW_DAYS,
) -> YearSeries:
    """
    Build the daily daylight series centred on a reference date.

    The window starts 182 days before the reference date and covers
    window_days consecutive calendar days.

    Args:
        latitude: Location latitude
        longitude: Location longitude
        reference_date: Day flagged as today (default: today)
        sampler: Sun sampler (default: astral-backed SolarSampler)
        window_days: Number of days in the series

    Returns:
        YearSeries with change_minutes populated on every sample

    Raises:
        SamplerError: If any day cannot be computed
    """
    if reference_date is None:
        reference_date = datetime.date.today()
    if sampler is None:
        sampler = SolarSampler()

    start = reference_date - datetime.timedelta(days=DAYS_BEFORE_REFERENCE)
    samples = [
        _build_sample(
            sampler,
            start + datetime.timedelta(days=i),
            latitude,
            longitude,
            reference_date,
        )
        for i in range(window_days)
    ]

    before = _day_before_daylight(sampler, start, latitude, longitude)
    samples = _with_changes(samples, before)

    logger.debug(
        f"Built {len(samples)}-day series for {coordinate_key(latitude, longitude)} "
        f"from {start}"
    )
    return YearSeries(
        latitude=latitude,
        longitude=longitude,
        reference_date=reference_date,
        samples=tuple(samples),
    )
