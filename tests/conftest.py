"""Pytest fixtures for Daylight Timeline tests."""

import datetime
import json
import sys
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from daylight_timeline.data.series import build_year_series  # noqa: E402
from daylight_timeline.data.solar import SunTimes  # noqa: E402
from daylight_timeline.data.timezone import TimezoneInfo, TimezoneSource  # noqa: E402
from daylight_timeline.locations import Location  # noqa: E402
from daylight_timeline.views.base import Size  # noqa: E402

REFERENCE_DATE = datetime.date(2024, 6, 21)


class FakeSampler:
    """
    Sampler with scripted daylight.

    daylight(date) returns hours of daylight centred on 12:00 UTC, or None
    for a day without sunrise/sunset; altitude is what position_at reports
    (radians) for every instant.
    """

    def __init__(self, daylight=None, altitude=0.5):
        self.daylight = daylight or (lambda date: 12.0)
        self.altitude = altitude
        self.times_calls = 0

    def times_for(self, date, latitude, longitude):
        self.times_calls += 1
        noon = datetime.datetime.combine(
            date, datetime.time(12), tzinfo=datetime.timezone.utc
        )
        hours = self.daylight(date)
        if hours is None:
            return SunTimes(sunrise=None, sunset=None, solar_noon=noon)
        half = datetime.timedelta(hours=hours / 2)
        return SunTimes(sunrise=noon - half, sunset=noon + half, solar_noon=noon)

    def position_at(self, instant, latitude, longitude):
        return self.altitude


def linear_daylight(date):
    """12h at the reference date, gaining a minute per day."""
    return 12.0 + (date - REFERENCE_DATE).days / 60


class RecordingRenderer:
    """Chart renderer that records commands; x is the day offset from the start."""

    def __init__(self, start=None):
        self.start = start
        self.datasets = []
        self.markers = []
        self.panel = None
        self.render_calls = 0
        self.panel_size = Size(200, 100)

    def render(self, datasets):
        self.render_calls += 1
        self.datasets = list(datasets)
        if datasets and self.start is None:
            self.start = datasets[0].series[0].date

    def date_at(self, x):
        start = datetime.datetime.combine(self.start, datetime.time())
        return start + datetime.timedelta(days=x)

    def x_for(self, date):
        return float((date - self.start).days)

    def y_for(self, hours):
        return 24 - hours

    def draw_markers(self, markers):
        self.markers.extend(markers)

    def clear_markers(self):
        self.markers = []

    def measure_panel(self, content):
        return self.panel_size

    def show_panel(self, panel):
        self.panel = panel

    def hide_panel(self):
        self.panel = None


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary."""
    return {
        "series": {"window_days": 365, "cache_ttl_seconds": 3600, "cache_capacity": 20},
        "timezone": {
            "use_geo_lookup": False,
            "cache_ttl_seconds": 3600,
            "cache_capacity": 100,
            "max_attempts": 3,
            "backoff_seconds": 0.1,
        },
        "interaction": {"mobile_breakpoint": 768, "hide_delay": 0.1},
        "locations": {
            "max_locations": 3,
            "default_name": "Test City",
            "default_latitude": 40.7128,
            "default_longitude": -74.0060,
        },
        "geocoding": {"user_agent": "test-agent/1.0", "timeout": 5},
        "chart": {"width": 640, "height": 320},
    }


@pytest.fixture
def temp_config_file(tmp_path, sample_config_dict):
    """Create a temporary config file."""
    config_path = tmp_path / "config.json"
    with open(config_path, "w") as f:
        json.dump(sample_config_dict, f)
    return config_path


@pytest.fixture
def sample_config(sample_config_dict, tmp_path):
    """Create a Config object from sample data, storing locations in tmp_path."""
    from daylight_timeline.config import _dict_to_config

    config = _dict_to_config(sample_config_dict)
    config.locations.storage_path = str(tmp_path / "storage.json")
    return config


@pytest.fixture
def fake_sampler():
    return FakeSampler(daylight=linear_daylight)


@pytest.fixture
def reference_date():
    return REFERENCE_DATE


@pytest.fixture
def linear_series(fake_sampler):
    """A 365-day series gaining one minute of daylight per day."""
    return build_year_series(
        40.0, -74.0, reference_date=REFERENCE_DATE, sampler=fake_sampler
    )


@pytest.fixture
def make_location():
    """Factory for locations, optionally with a resolved timezone."""

    def _make(name="Test City", lat=40.7128, lng=-74.0060, primary=False, offset=None):
        loc = Location(name=name, lat=lat, lng=lng, is_primary=primary)
        if offset is not None:
            loc.apply_timezone(
                TimezoneInfo(
                    name=f"Test/Zone{offset}",
                    offset_hours=offset,
                    source=TimezoneSource.RESOLVED,
                )
            )
        return loc

    return _make


@pytest.fixture
def renderer():
    return RecordingRenderer()
