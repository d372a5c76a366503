"""Tests for the timeline engine."""

import asyncio
import datetime
import pytest

from daylight_timeline.config import Config, SeriesConfig
from daylight_timeline.data.timezone import TimezoneInfo, TimezoneResolver, TimezoneSource
from daylight_timeline.engine import Dataset, TimelineEngine, primary_dataset
from daylight_timeline.errors import Notice, data_error_notice
from daylight_timeline.locations import Location, LocationDirectory

from conftest import REFERENCE_DATE, FakeSampler, linear_daylight


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class FailingSampler(FakeSampler):
    """Fails for latitudes above a threshold."""

    def __init__(self, threshold):
        super().__init__(daylight=linear_daylight)
        self.threshold = threshold

    def times_for(self, date, latitude, longitude):
        if latitude > self.threshold:
            raise ArithmeticError("no convergence")
        return super().times_for(date, latitude, longitude)


class RemovingResolver:
    """Resolver that removes the location from the directory mid-lookup."""

    def __init__(self, directory):
        self.directory = directory

    async def resolve(self, latitude, longitude):
        self.directory.remove(0)
        return TimezoneInfo("Europe/Oslo", 1, TimezoneSource.RESOLVED)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock, fake_sampler):
    return TimelineEngine(
        sampler=fake_sampler,
        resolver=TimezoneResolver(lookup=None),
        clock=clock,
        today=lambda: REFERENCE_DATE,
    )


class TestDataset:
    def test_color_and_primary(self, linear_series, make_location):
        loc = make_location(primary=True)
        loc.color_index = 2
        dataset = Dataset(loc, linear_series)
        assert dataset.color == "#FF9800"
        assert dataset.is_primary

    def test_primary_dataset(self, linear_series, make_location):
        a = Dataset(make_location("A"), linear_series)
        b = Dataset(make_location("B", primary=True), linear_series)
        assert primary_dataset([a, b]) is b
        assert primary_dataset([a]) is a
        assert primary_dataset([]) is None


class TestYearSeries:
    """Tests for cached series computation."""

    def test_reference_date(self, engine):
        series = engine.year_series(40.0, -74.0)
        assert series.reference_date == REFERENCE_DATE
        assert series.today().date == REFERENCE_DATE

    def test_cache_hit(self, engine, fake_sampler):
        first = engine.year_series(40.0, -74.0)
        calls = fake_sampler.times_calls

        second = engine.year_series(40.00001, -74.00001)

        assert second is first
        assert fake_sampler.times_calls == calls

    def test_cache_expiry(self, engine, clock):
        first = engine.year_series(40.0, -74.0)
        clock.now += 3600
        assert engine.year_series(40.0, -74.0) is not first

    def test_different_reference_date_rebuilds(self, engine):
        spring = datetime.date(2024, 3, 20)
        autumn = datetime.date(2024, 9, 20)

        first = engine.year_series(40.7, -74.0, spring)
        second = engine.year_series(40.7, -74.0, autumn)

        assert first.reference_date == spring
        assert second.reference_date == autumn
        assert second.today().date == autumn
        assert engine.year_series(40.7, -74.0, autumn) is second

    def test_day_rollover_rebuilds(self, fake_sampler, clock):
        days = [REFERENCE_DATE]
        engine = TimelineEngine(
            sampler=fake_sampler,
            resolver=TimezoneResolver(lookup=None),
            clock=clock,
            today=lambda: days[-1],
        )
        before = engine.year_series(40.0, -74.0)

        days.append(REFERENCE_DATE + datetime.timedelta(days=1))
        after = engine.year_series(40.0, -74.0)

        assert after is not before
        assert after.today().date == days[-1]

    def test_window_from_config(self, fake_sampler, clock):
        engine = TimelineEngine(
            config=Config(series=SeriesConfig(window_days=30)),
            sampler=fake_sampler,
            resolver=TimezoneResolver(lookup=None),
            clock=clock,
            today=lambda: REFERENCE_DATE,
        )
        assert len(engine.year_series(1.0, 1.0)) == 30

    def test_default_resolver_follows_config(self, fake_sampler):
        config = Config()
        config.timezone.use_geo_lookup = False
        engine = TimelineEngine(config=config, sampler=fake_sampler)
        assert engine.resolver.available is False
        assert engine.resolver.max_attempts == 3


class TestComputeDatasets:
    """Tests for compute_datasets."""

    def test_waits_for_timezone(self, engine, make_location):
        ready = make_location("Ready", offset=-5)
        waiting = make_location("Waiting", lat=10.0, lng=10.0)

        datasets, notices = engine.compute_datasets([waiting, ready])

        assert [d.location.name for d in datasets] == ["Ready"]
        assert notices == []

    def test_without_timezone_requirement(self, engine, make_location):
        datasets, _ = engine.compute_datasets([make_location()], require_timezone=False)
        assert len(datasets) == 1

    def test_failure_isolated(self, clock, make_location):
        engine = TimelineEngine(
            sampler=FailingSampler(threshold=80),
            resolver=TimezoneResolver(lookup=None),
            clock=clock,
            today=lambda: REFERENCE_DATE,
        )
        good = make_location("Good", offset=0)
        bad = make_location("Near Pole", lat=89.5, lng=0.0, offset=0)

        datasets, notices = engine.compute_datasets([bad, good])

        assert [d.location.name for d in datasets] == ["Good"]
        assert notices == [
            Notice("Location is too close to the poles for accurate calculations")
        ]

    def test_failure_notice_names_location(self, clock, make_location):
        engine = TimelineEngine(
            sampler=FailingSampler(threshold=10),
            resolver=TimezoneResolver(lookup=None),
            clock=clock,
            today=lambda: REFERENCE_DATE,
        )
        _, notices = engine.compute_datasets([make_location("Madrid", lat=40.4, offset=1)])
        assert notices[0].message == "Unable to calculate daylight for Madrid"

    def test_data_error_notice(self, make_location):
        assert "poles" in data_error_notice(make_location(lat=-86.0)).message
        assert "Lima" in data_error_notice(make_location("Lima", lat=-12.0)).message


class TestAttachTimezone:
    """Tests for timezone attachment."""

    def test_attaches_fallback(self, engine):
        directory = LocationDirectory()
        loc = Location("Tokyo", 35.68, 139.69)
        directory.add(loc)

        info = asyncio.run(engine.attach_timezone(loc, directory))

        assert info.name == "UTC+9"
        assert loc.timezone_offset == 9
        assert loc.timezone_source == "fallback"

    def test_discarded_when_removed(self, engine):
        directory = LocationDirectory()
        loc = Location("Oslo", 59.91, 10.75)
        directory.add(loc)
        engine.resolver = RemovingResolver(directory)

        info = asyncio.run(engine.attach_timezone(loc, directory))

        assert info is None
        assert not loc.has_timezone

    def test_readded_location_is_new_entry(self, engine):
        directory = LocationDirectory()
        old = Location("Oslo", 59.91, 10.75)
        directory.add(old)
        directory.remove(0)
        directory.add(Location("Oslo", 59.91, 10.75))

        assert asyncio.run(engine.attach_timezone(old, directory)) is None

    def test_attach_timezones(self, engine):
        directory = LocationDirectory()
        for name, lat, lng in [("A", 1.0, 30.0), ("B", 2.0, -45.0)]:
            directory.add(Location(name, lat, lng))

        asyncio.run(engine.attach_timezones(directory))

        assert all(loc.has_timezone for loc in directory.locations)
        assert {loc.timezone_name for loc in directory.locations} == {"UTC+2", "UTC-3"}
