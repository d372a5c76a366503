"""Daylight chart rendered to an image with Pillow."""

import datetime
import logging
import math
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence, Union

from PIL import Image, ImageDraw, ImageFont

from .base import (
    BACKGROUND,
    DARK_GRAY,
    GRAY,
    LIGHT_GRAY,
    PANEL_FILL,
    TODAY_BLUE,
    WHITE,
    Marker,
    MarkerKind,
    Panel,
    Size,
    hex_to_rgb,
)

if TYPE_CHECKING:
    from ..engine import Dataset
    from ..formatting import PanelContent

logger = logging.getLogger(__name__)

# Font paths (in order of preference)
FONT_PATHS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",  # Debian/Ubuntu
    "/usr/share/fonts/TTF/DejaVuSans.ttf",  # Arch Linux
    "/System/Library/Fonts/Helvetica.ttc",  # macOS
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",  # Alternative Linux path
]

PANEL_PADDING = 10
LINE_SPACING = 4


@lru_cache(maxsize=None)
def get_font(size: int):
    """Load DejaVu Sans (or a platform equivalent), falling back to PIL's default."""
    for path in FONT_PATHS:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    logger.debug(f"No system font found, using PIL default for size {size}")
    return ImageFont.load_default()


def _midnight(date: datetime.date) -> datetime.datetime:
    return datetime.datetime.combine(date, datetime.time())


class PillowChartRenderer:
    """
    Chart renderer drawing the daylight curves, markers and panel to a PIL image.

    Holds the time and hours scales of the last render so pixel positions
    can be mapped back to dates.
    """

    margin_top = 25
    margin_right = 15
    margin_bottom = 40
    margin_left = 45

    # Daily change strip below the daylight plot
    change_margin_top = 25
    change_height = 120
    change_margin_bottom = 30

    def __init__(
        self,
        width: int = 800,
        height: int = 360,
        font_size: int = 12,
        show_change: bool = True,
    ):
        """
        Initialize renderer.

        Args:
            width: Image width in pixels
            height: Daylight plot height in pixels
            font_size: Label and panel font size
            show_change: Draw the daily change strip below the plot
        """
        self.width = width
        self.height = height
        self.show_change = show_change
        self.font = get_font(font_size)
        self.datasets: list["Dataset"] = []
        self.markers: list[Marker] = []
        self.panel: Optional[Panel] = None
        self._start: Optional[datetime.datetime] = None
        self._end: Optional[datetime.datetime] = None
        self._min_hours = 0.0
        self._max_hours = 24.0
        self._max_change = 1.0

    @property
    def plot_width(self) -> int:
        return self.width - self.margin_left - self.margin_right

    @property
    def plot_height(self) -> int:
        return self.height - self.margin_top - self.margin_bottom

    # Scales

    def render(self, datasets: Sequence["Dataset"]) -> None:
        """Take a new set of series and reset the scales to fit them."""
        self.datasets = list(datasets)
        self.markers = []
        self.panel = None

        samples = [s for d in self.datasets for s in d.series]
        if not samples:
            self._start = self._end = None
            return

        self._start = _midnight(min(s.date for s in samples))
        self._end = _midnight(max(s.date for s in samples))
        self._min_hours = math.floor(min(s.daylight_hours for s in samples))
        self._max_hours = math.ceil(max(s.daylight_hours for s in samples))
        if self._max_hours <= self._min_hours:
            self._max_hours = self._min_hours + 1
        self._max_change = max(abs(s.change_minutes or 0.0) for s in samples) or 1.0

    def _span_seconds(self) -> float:
        if self._start is None or self._end is None:
            return 0.0
        return (self._end - self._start).total_seconds()

    def x_for(self, date: datetime.date) -> float:
        span = self._span_seconds()
        if span <= 0:
            return self.margin_left
        offset = (_midnight(date) - self._start).total_seconds()
        return self.margin_left + offset / span * self.plot_width

    def date_at(self, x: float) -> datetime.datetime:
        span = self._span_seconds()
        if span <= 0:
            return self._start or _midnight(datetime.date.today())
        fraction = (x - self.margin_left) / self.plot_width
        return self._start + datetime.timedelta(seconds=fraction * span)

    def y_for(self, hours: float) -> float:
        fraction = (hours - self._min_hours) / (self._max_hours - self._min_hours)
        return self.margin_top + self.plot_height - fraction * self.plot_height

    @property
    def image_height(self) -> int:
        if not self.show_change:
            return self.height
        return self.height + self.change_margin_top + self.change_height + self.change_margin_bottom

    @property
    def change_top(self) -> float:
        return self.height + self.change_margin_top

    @property
    def max_change(self) -> float:
        """Half-extent of the change scale, which is symmetric around zero."""
        return self._max_change

    def change_y(self, minutes: float) -> float:
        half = self.change_height / 2
        return self.change_top + half - minutes / self._max_change * half

    # Transient markers and panel

    def draw_markers(self, markers: Sequence[Marker]) -> None:
        self.markers.extend(markers)

    def clear_markers(self) -> None:
        self.markers = []

    def measure_panel(self, content: "PanelContent") -> Size:
        lines = content.text_lines()
        widths = []
        height = 0
        for line in lines:
            left, top, right, bottom = self.font.getbbox(line)
            widths.append(right - left)
            height += (bottom - top) + LINE_SPACING
        return Size(max(widths, default=0) + 2 * PANEL_PADDING, height + 2 * PANEL_PADDING)

    def show_panel(self, panel: Panel) -> None:
        self.panel = panel

    def hide_panel(self) -> None:
        self.panel = None

    # Drawing

    def to_image(self) -> Image.Image:
        """Draw the current chart state."""
        image = Image.new("RGB", (self.width, self.image_height), BACKGROUND)
        draw = ImageDraw.Draw(image)

        if not self.datasets:
            self._draw_empty(draw)
            return image

        self._draw_axes(draw)
        if self.show_change:
            self._draw_change_strip(draw)
        for dataset in self.datasets:
            self._draw_curve(draw, dataset)
        self._draw_today(draw)
        self._draw_markers(draw)
        if self.panel is not None:
            self._draw_panel(draw, self.panel)
        return image

    def save(self, path: Union[str, Path]) -> None:
        self.to_image().save(path, format="PNG")
        logger.info(f"Chart written to {path}")

    def _draw_empty(self, draw: ImageDraw.ImageDraw) -> None:
        text = "Search for a location to see daylight hours"
        width = draw.textlength(text, font=self.font)
        draw.text(
            ((self.width - width) / 2, self.height / 2),
            text,
            fill=GRAY,
            font=self.font,
        )

    def _draw_axes(self, draw: ImageDraw.ImageDraw) -> None:
        bottom = self.margin_top + self.plot_height
        right = self.margin_left + self.plot_width

        # Hour gridlines and labels
        for hours in range(int(self._min_hours), int(self._max_hours) + 1):
            y = self.y_for(hours)
            draw.line([(self.margin_left, y), (right, y)], fill=DARK_GRAY)
            draw.text((5, y - 6), f"{hours}h", fill=GRAY, font=self.font)

        # Month labels at the first of each month
        day = self._start.date()
        while day <= self._end.date():
            if day.day == 1:
                x = self.x_for(day)
                draw.line([(x, bottom), (x, bottom + 4)], fill=GRAY)
                draw.text((x + 2, bottom + 6), day.strftime("%b"), fill=GRAY, font=self.font)
            day += datetime.timedelta(days=1)

    def _draw_change_strip(self, draw: ImageDraw.ImageDraw) -> None:
        right = self.margin_left + self.plot_width
        draw.text(
            (self.margin_left, self.change_top - 20),
            "Daily change (min/day)",
            fill=LIGHT_GRAY,
            font=self.font,
        )

        for fraction in (-1.0, -0.5, 0.5, 1.0):
            minutes = fraction * self._max_change
            y = self.change_y(minutes)
            draw.line([(self.margin_left, y), (right, y)], fill=DARK_GRAY)
            sign = "+" if minutes > 0 else ""
            draw.text((5, y - 6), f"{sign}{minutes:.1f}", fill=GRAY, font=self.font)

        zero = self.change_y(0)
        for x in range(self.margin_left, right, 6):
            draw.line([(x, zero), (min(x + 3, right), zero)], fill=GRAY)

        for dataset in self.datasets:
            points = [
                (self.x_for(s.date), self.change_y(s.change_minutes or 0.0))
                for s in dataset.series
            ]
            if len(points) > 1:
                draw.line(
                    points,
                    fill=hex_to_rgb(dataset.color),
                    width=2 if dataset.is_primary else 1,
                )

    def _draw_curve(self, draw: ImageDraw.ImageDraw, dataset: "Dataset") -> None:
        points = [(self.x_for(s.date), self.y_for(s.daylight_hours)) for s in dataset.series]
        if len(points) > 1:
            draw.line(
                points,
                fill=hex_to_rgb(dataset.color),
                width=3 if dataset.is_primary else 2,
            )

        if len(self.datasets) > 1 and points:
            last_x, last_y = points[-1]
            draw.text(
                (last_x - 60, last_y - 16),
                dataset.location.short_name,
                fill=hex_to_rgb(dataset.color),
                font=self.font,
            )

    def _draw_today(self, draw: ImageDraw.ImageDraw) -> None:
        primary = next((d for d in self.datasets if d.is_primary), self.datasets[0])
        today = primary.series.today()
        if today is None:
            return

        x = self.x_for(today.date)
        y = self.y_for(today.daylight_hours)
        draw.line([(x, self.margin_top), (x, self.margin_top + self.plot_height)], fill=TODAY_BLUE, width=2)
        draw.ellipse([(x - 6, y - 6), (x + 6, y + 6)], fill=TODAY_BLUE)
        label_width = draw.textlength("TODAY", font=self.font)
        draw.text((x - label_width / 2, 5), "TODAY", fill=TODAY_BLUE, font=self.font)

    def _draw_markers(self, draw: ImageDraw.ImageDraw) -> None:
        for marker in self.markers:
            x = self.x_for(marker.date)
            if marker.kind == MarkerKind.SELECTION_LINE:
                draw.line(
                    [(x, self.margin_top), (x, self.margin_top + self.plot_height)],
                    fill=LIGHT_GRAY,
                )
            elif marker.daylight_hours is not None:
                y = self.y_for(marker.daylight_hours)
                color = hex_to_rgb(marker.color) if marker.color else WHITE
                draw.ellipse([(x - 10, y - 10), (x + 10, y + 10)], outline=color, width=2)
                draw.ellipse([(x - 3, y - 3), (x + 3, y + 3)], fill=color)

    def _draw_panel(self, draw: ImageDraw.ImageDraw, panel: Panel) -> None:
        size = self.measure_panel(panel.content)
        left, top = panel.position.x, panel.position.y
        draw.rectangle(
            [(left, top), (left + size.width, top + size.height)],
            fill=PANEL_FILL,
            outline=GRAY,
        )
        y = top + PANEL_PADDING
        for line in panel.content.text_lines():
            draw.text((left + PANEL_PADDING, y), line, fill=WHITE, font=self.font)
            bbox = self.font.getbbox(line)
            y += (bbox[3] - bbox[1]) + LINE_SPACING
