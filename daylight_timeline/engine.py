"""Timeline engine: series computation, caching and timezone attachment."""

import asyncio
import datetime
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from .config import Config
from .data.cache import SeriesCache
from .data.series import YearSeries, build_year_series
from .data.solar import SolarSampler
from .data.timezone import TimezoneFinderLookup, TimezoneInfo, TimezoneResolver
from .errors import Notice, SamplerError, data_error_notice
from .views.base import location_color

if TYPE_CHECKING:
    from .locations import Location, LocationDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dataset:
    """A location paired with its computed series."""

    location: "Location"
    series: YearSeries

    @property
    def color(self) -> str:
        return location_color(self.location.color_index)

    @property
    def is_primary(self) -> bool:
        return self.location.is_primary


def primary_dataset(datasets: Sequence[Dataset]) -> Optional[Dataset]:
    """The primary location's dataset, else the first one."""
    for dataset in datasets:
        if dataset.is_primary:
            return dataset
    return datasets[0] if datasets else None


class TimelineEngine:
    """
    Owns the series cache and timezone resolver for one view.

    Every collaborator is passed in or built from config; there is no
    module-level state.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        sampler: Optional[SolarSampler] = None,
        resolver: Optional[TimezoneResolver] = None,
        clock: Callable[[], float] = time.time,
        today: Callable[[], datetime.date] = datetime.date.today,
    ):
        """
        Initialize engine.

        Args:
            config: Application configuration (default: built-in defaults)
            sampler: Sun sampler
            resolver: Timezone resolver (default: built from config)
            clock: Time source for the series cache
            today: Source of the reference date for new series
        """
        self.config = config or Config()
        self.sampler = sampler or SolarSampler()
        self._today = today
        self.series_cache = SeriesCache(
            ttl_seconds=self.config.series.cache_ttl_seconds,
            capacity=self.config.series.cache_capacity,
            clock=clock,
        )
        if resolver is None:
            tz = self.config.timezone
            resolver = TimezoneResolver(
                lookup=TimezoneFinderLookup() if tz.use_geo_lookup else None,
                ttl_seconds=tz.cache_ttl_seconds,
                capacity=tz.cache_capacity,
                max_attempts=tz.max_attempts,
                backoff_seconds=tz.backoff_seconds,
            )
        self.resolver = resolver

    def year_series(
        self,
        latitude: float,
        longitude: float,
        reference_date: Optional[datetime.date] = None,
    ) -> YearSeries:
        """
        Get the year series for a coordinate, from cache when fresh.

        Raises:
            SamplerError: If the series cannot be computed
        """
        reference_date = reference_date or self._today()
        cached = self.series_cache.get(latitude, longitude)
        if cached is not None and cached.reference_date == reference_date:
            logger.debug(f"Series cache hit: {cached.key}")
            return cached
        if cached is not None:
            logger.debug(f"Series {cached.key} built for {cached.reference_date}, rebuilding")

        series = build_year_series(
            latitude,
            longitude,
            reference_date=reference_date,
            sampler=self.sampler,
            window_days=self.config.series.window_days,
        )
        self.series_cache.put(latitude, longitude, series)
        return series

    def compute_datasets(
        self, locations: Sequence["Location"], require_timezone: bool = True
    ) -> tuple[list[Dataset], list[Notice]]:
        """
        Compute datasets for the locations that are ready.

        A location is ready once its timezone is attached. A location whose
        series fails is reported as a notice and left out; the others are
        unaffected.

        Returns:
            (datasets in location order, notices)
        """
        datasets = []
        notices = []
        for location in locations:
            if require_timezone and not location.has_timezone:
                logger.debug(f"Waiting for timezone: {location.name}")
                continue
            try:
                series = self.year_series(location.lat, location.lng)
            except SamplerError as e:
                logger.error(f"Data calculation error for {location.name}: {e}")
                notices.append(data_error_notice(location))
                continue
            datasets.append(Dataset(location=location, series=series))
        return datasets, notices

    async def attach_timezone(
        self, location: "Location", directory: "LocationDirectory"
    ) -> Optional[TimezoneInfo]:
        """
        Resolve and attach a location's timezone.

        The result is dropped if the location left the directory while the
        lookup was in flight.

        Returns:
            The attached TimezoneInfo, or None if discarded
        """
        info = await self.resolver.resolve(location.lat, location.lng)
        if location not in directory:
            logger.debug(f"Discarding timezone for removed location {location.name}")
            return None
        location.apply_timezone(info)
        return info

    async def attach_timezones(self, directory: "LocationDirectory") -> None:
        """Resolve every location still missing a timezone, concurrently."""
        pending = [loc for loc in directory.locations if not loc.has_timezone]
        if pending:
            await asyncio.gather(
                *(self.attach_timezone(loc, directory) for loc in pending)
            )
