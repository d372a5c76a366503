"""Views for Daylight Timeline."""

from .base import (
    LOCATION_COLORS,
    ChartRenderer,
    Marker,
    MarkerKind,
    Panel,
    PanelMode,
    Point,
    Size,
    location_color,
)
from .chart import PillowChartRenderer

__all__ = [
    "LOCATION_COLORS",
    "ChartRenderer",
    "Marker",
    "MarkerKind",
    "Panel",
    "PanelMode",
    "PillowChartRenderer",
    "Point",
    "Size",
    "location_color",
]
