"""Text for the tooltip, bottom sheet and today stats card."""

import datetime
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from .data.series import DailySample
from .selector import MonthlyProjection, index_of, monthly_projection
from .views.base import location_color

if TYPE_CHECKING:
    from .locations import Location

RISE_SYMBOL = "▲"
FALL_SYMBOL = "▼"


@dataclass(frozen=True)
class LocationLine:
    """One location's figures for the selected day."""

    name: str
    color: str
    is_primary: bool
    sun_times: str
    daylight: str
    change: str
    trend: str  # "positive" or "negative"
    projection: Optional[str]


@dataclass(frozen=True)
class PanelContent:
    """Content of the tooltip or bottom sheet."""

    date: datetime.date
    title: str
    lines: tuple

    def text_lines(self) -> list[str]:
        """Flattened text, used for measuring and plain rendering."""
        out = [self.title]
        for line in self.lines:
            out.append(line.name)
            out.append(line.sun_times)
            out.append(f"{line.daylight}  {line.change}")
            if line.projection:
                out.append(line.projection)
        return out


@dataclass(frozen=True)
class StatsCard:
    """Today's figures for the primary location."""

    location_name: str
    color: str
    sunrise: str
    sunset: str
    daylight: str
    change: str
    trend: str
    forecast: str
    forecast_trend: str  # "positive", "negative" or "stable"


def format_time(instant: datetime.datetime, offset_hours: Optional[int] = 0) -> str:
    """Wall-clock HH:MM of an instant at a UTC offset."""
    zone = datetime.timezone(datetime.timedelta(hours=offset_hours or 0))
    return instant.astimezone(zone).strftime("%H:%M")


def format_duration(hours: float) -> str:
    """Decimal hours as 'Hh Mm'."""
    h = math.floor(hours)
    m = round((hours - h) * 60)
    if m == 60:
        h, m = h + 1, 0
    return f"{h}h {m}m"


def format_change(change_minutes: Optional[float]) -> tuple[str, str]:
    """Daily change text and its trend class."""
    change = change_minutes or 0.0
    if change > 0:
        return f"{RISE_SYMBOL} {abs(change):.1f}min/day", "positive"
    return f"{FALL_SYMBOL} {abs(change):.1f}min/day", "negative"


def format_sun_times(sample: DailySample, offset_hours: Optional[int]) -> str:
    if sample.is_polar_extreme:
        return "Polar Day" if sample.is_polar_day else "Polar Night"
    return (
        f"Sunrise {format_time(sample.sunrise, offset_hours)} · "
        f"Sunset {format_time(sample.sunset, offset_hours)}"
    )


def describe_projection(projection: MonthlyProjection, short: bool = True) -> str:
    """Wording for the change over the coming month."""
    minutes = abs(projection.total_change_minutes)
    days = projection.days_ahead
    if projection.total_change_minutes > 0:
        word = "Gaining"
    elif projection.total_change_minutes < 0:
        word = "Losing"
    else:
        return f"Daylight remains stable over the next {days} days"

    if short:
        return f"{word} {minutes:.0f} min over {days} days"
    return f"{word} {minutes:.0f} minutes of daylight over the next {days} days"


def location_line(
    location: "Location", series: Sequence[DailySample], sample: DailySample
) -> LocationLine:
    change, trend = format_change(sample.change_minutes)
    projection = monthly_projection(series, index_of(series, sample.date))
    return LocationLine(
        name=location.short_name,
        color=location_color(location.color_index),
        is_primary=location.is_primary,
        sun_times=format_sun_times(sample, location.timezone_offset),
        daylight=format_duration(sample.daylight_hours),
        change=change,
        trend=trend,
        projection=describe_projection(projection) if projection else None,
    )


def panel_content(date: datetime.date, lines: Sequence[LocationLine]) -> PanelContent:
    return PanelContent(date=date, title=date.strftime("%b %d"), lines=tuple(lines))


def today_stats(
    series: Sequence[DailySample], location: "Location"
) -> Optional[StatsCard]:
    """
    Stats card for the sample flagged as today.

    Returns:
        StatsCard, or None if the series has no today sample
    """
    index = next((i for i, s in enumerate(series) if s.is_today), -1)
    if index < 0:
        return None

    today = series[index]
    if today.is_polar_extreme:
        sunrise = "Polar Day" if today.is_polar_day else "No sunrise"
        sunset = "No sunset" if today.is_polar_day else "Polar Night"
    else:
        sunrise = format_time(today.sunrise, location.timezone_offset)
        sunset = format_time(today.sunset, location.timezone_offset)

    change = today.change_minutes or 0.0
    change_text = f"+{change:.1f}" if change > 0 else f"{change:.1f}"

    projection = monthly_projection(series, index)
    if projection.total_change_minutes > 0:
        forecast_trend = "positive"
    elif projection.total_change_minutes < 0:
        forecast_trend = "negative"
    else:
        forecast_trend = "stable"

    return StatsCard(
        location_name=location.name,
        color=location_color(location.color_index),
        sunrise=sunrise,
        sunset=sunset,
        daylight=format_duration(today.daylight_hours),
        change=f"{change_text} min/day",
        trend="positive" if change > 0 else "negative",
        forecast=describe_projection(projection, short=False),
        forecast_trend=forecast_trend,
    )
