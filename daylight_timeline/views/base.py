"""Shared view types: colours, geometry and the chart renderer interface."""

import datetime
import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..engine import Dataset
    from ..formatting import PanelContent


# Series colours by location position
LOCATION_COLORS = ["#2196F3", "#4CAF50", "#FF9800"]

# Common colors
BACKGROUND = (18, 18, 24)
WHITE = (255, 255, 255)
GRAY = (128, 128, 128)
LIGHT_GRAY = (180, 180, 180)
DARK_GRAY = (50, 50, 50)
PANEL_FILL = (30, 30, 38)
TODAY_BLUE = (33, 150, 243)
POSITIVE_GREEN = (76, 175, 80)
NEGATIVE_RED = (239, 83, 80)


def location_color(color_index: Optional[int]) -> str:
    return LOCATION_COLORS[(color_index or 0) % len(LOCATION_COLORS)]


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """'#RRGGBB' to an (r, g, b) tuple."""
    value = color.lstrip("#")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


class PanelMode(str, enum.Enum):
    TOOLTIP = "tooltip"
    SHEET = "sheet"


class MarkerKind(str, enum.Enum):
    SELECTION_LINE = "selection-line"
    HOVER_DOT = "hover-dot"


@dataclass(frozen=True)
class Marker:
    """A transient mark on the chart at a day (and daylight value for dots)."""

    kind: MarkerKind
    date: datetime.date
    daylight_hours: Optional[float] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class Panel:
    """Tooltip or bottom sheet to show, already positioned."""

    mode: PanelMode
    content: "PanelContent"
    position: Point


class ChartRenderer(Protocol):
    """
    Drawing surface for the timeline.

    The engine sends plain data and draw/remove commands; the renderer
    owns all drawing state.
    """

    def render(self, datasets: Sequence["Dataset"]) -> None: ...

    def date_at(self, x: float) -> datetime.datetime: ...

    def x_for(self, date: datetime.date) -> float: ...

    def y_for(self, hours: float) -> float: ...

    def draw_markers(self, markers: Sequence[Marker]) -> None: ...

    def clear_markers(self) -> None: ...

    def measure_panel(self, content: "PanelContent") -> Size: ...

    def show_panel(self, panel: Panel) -> None: ...

    def hide_panel(self) -> None: ...
