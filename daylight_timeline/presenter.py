"""Selection presenter: pointer/touch input to tooltip or bottom sheet."""

import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from .config import InteractionConfig
from .data.series import DailySample
from .engine import Dataset, primary_dataset
from .formatting import PanelContent, location_line, panel_content
from .selector import cross_series_lookup, nearest
from .timers import CancellableTimer, Scheduler
from .views.base import ChartRenderer, Marker, MarkerKind, Panel, PanelMode, Point, Size

logger = logging.getLogger(__name__)


class DeviceMode(str, enum.Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"

    @classmethod
    def from_width(cls, width: float, breakpoint: int = 768) -> "DeviceMode":
        return cls.MOBILE if width < breakpoint else cls.DESKTOP


class PresenterState(str, enum.Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    TOOLTIP = "tooltip"
    SHEET = "sheet"


class SelectionMode(str, enum.Enum):
    NONE = "none"
    TOOLTIP = "tooltip"
    SHEET = "sheet"


@dataclass(frozen=True)
class SelectionState:
    """What is selected and how it is shown."""

    active_sample: Optional[DailySample] = None
    mode: SelectionMode = SelectionMode.NONE
    pending_hide_at: Optional[float] = None


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), max(low, high))


def place_panel(
    viewport: Size,
    content: Size,
    anchor: Point,
    mode: DeviceMode,
    offset: float = 40,
    margin: float = 20,
) -> Point:
    """
    Top-left corner for a tooltip or sheet so it stays on screen.

    Desktop prefers the right of the anchor and flips left when that would
    overflow, centred vertically on the anchor. Mobile prefers above the
    anchor, then below. Whatever remains off-screen is clamped.
    """
    if mode == DeviceMode.DESKTOP:
        left = anchor.x + offset
        if left + content.width > viewport.width - margin:
            left = anchor.x - content.width - offset
        top = anchor.y - content.height / 2
    else:
        left = anchor.x - content.width / 2
        top = anchor.y - content.height - offset
        if top < margin:
            top = anchor.y + offset

    left = _clamp(left, margin, viewport.width - content.width - margin)
    top = _clamp(top, margin, viewport.height - content.height - margin)
    return Point(left, top)


class SelectionPresenter:
    """
    State machine behind the chart's hover tooltip and tap bottom sheet.

    IDLE -> PREVIEWING -> TOOLTIP (desktop pointer) or SHEET (mobile tap)
    -> IDLE. Listeners hear about a change only when the selected sample
    or display mode actually changes.
    """

    def __init__(
        self,
        renderer: ChartRenderer,
        scheduler: Scheduler,
        config: Optional[InteractionConfig] = None,
        viewport: Size = Size(1024, 768),
    ):
        """
        Initialize presenter.

        Args:
            renderer: Chart renderer receiving markers and panels
            scheduler: Scheduler for the delayed hide
            config: Interaction settings
            viewport: Initial viewport size; sets the device mode
        """
        self.renderer = renderer
        self.config = config or InteractionConfig()
        self.viewport = viewport
        self.device_mode = DeviceMode.from_width(
            viewport.width, self.config.mobile_breakpoint
        )
        self.datasets: list[Dataset] = []
        self.state = PresenterState.IDLE
        self.selection = SelectionState()
        self._hide_timer = CancellableTimer(scheduler)
        self._listeners: list[Callable[[SelectionState], None]] = []

    def subscribe(self, listener: Callable[[SelectionState], None]) -> None:
        self._listeners.append(listener)

    # Lifecycle

    def set_datasets(self, datasets: Sequence[Dataset]) -> None:
        """Replace the series set; any selection is discarded."""
        self.reset()
        self.datasets = list(datasets)

    def set_viewport(self, viewport: Size) -> None:
        self.viewport = viewport
        self.set_device_mode(
            DeviceMode.from_width(viewport.width, self.config.mobile_breakpoint)
        )

    def set_device_mode(self, mode: DeviceMode) -> None:
        if mode == self.device_mode:
            return
        logger.debug(f"Device mode {self.device_mode.value} -> {mode.value}")
        self.device_mode = mode
        self.reset()

    def reset(self) -> None:
        """Return to IDLE, dropping timers, markers and panels."""
        self._hide_timer.cancel()
        if self.state != PresenterState.IDLE:
            self.renderer.clear_markers()
            self.renderer.hide_panel()
        self.state = PresenterState.IDLE
        self._update(None, SelectionMode.NONE)

    # Desktop pointer

    def pointer_enter(self, x: float, y: float) -> None:
        self.pointer_move(x, y)

    def pointer_move(self, x: float, y: float) -> None:
        if self.device_mode != DeviceMode.DESKTOP:
            return
        self._cancel_hide()

        sample = self._sample_at(x)
        if sample is None:
            return
        if self.state == PresenterState.TOOLTIP and sample == self.selection.active_sample:
            return

        self.state = PresenterState.PREVIEWING
        datasets, samples = self._aligned(sample)
        content = panel_content(
            sample.date,
            [location_line(d.location, d.series, s) for d, s in zip(datasets, samples)],
        )
        self._show(PanelMode.TOOLTIP, content, Point(x, y), datasets, samples)
        self.state = PresenterState.TOOLTIP
        self._update(sample, SelectionMode.TOOLTIP)

    def pointer_leave(self) -> None:
        if self.device_mode != DeviceMode.DESKTOP:
            return
        if self.state == PresenterState.IDLE:
            return
        self._hide_timer.replace(self.config.hide_delay, self.hide)
        self.selection = replace(self.selection, pending_hide_at=self._hide_timer.due_at)

    # Mobile touch

    def touch_start(self, x: float, y: float) -> None:
        if self.device_mode != DeviceMode.MOBILE:
            return

        sample = self._sample_at(x)
        if sample is None:
            return
        if self.state == PresenterState.SHEET and sample == self.selection.active_sample:
            return

        self.state = PresenterState.PREVIEWING
        primary = primary_dataset(self.datasets)
        content = panel_content(
            sample.date, [location_line(primary.location, primary.series, sample)]
        )
        self._show(PanelMode.SHEET, content, Point(x, y), [primary], [sample])
        self.state = PresenterState.SHEET
        self._update(sample, SelectionMode.SHEET)

    def touch_move(self, x: float, y: float) -> None:
        # A new tap is needed to change the selection
        pass

    def touch_end(self) -> None:
        pass

    # Closing

    def close(self, drag_distance: Optional[float] = None) -> bool:
        """
        Close the sheet or tooltip.

        Args:
            drag_distance: Distance the sheet handle was dragged before
                release; short drags leave the sheet open.

        Returns:
            True if the selection was closed
        """
        if drag_distance is not None and drag_distance < self.config.sheet_close_distance:
            return False
        self.hide()
        return True

    def tap_outside(self) -> None:
        self.hide()

    def hide(self) -> None:
        self.reset()

    # Internals

    def _cancel_hide(self) -> None:
        if self._hide_timer.pending:
            self._hide_timer.cancel()
            self.selection = replace(self.selection, pending_hide_at=None)

    def _sample_at(self, x: float) -> Optional[DailySample]:
        primary = primary_dataset(self.datasets)
        if primary is None or len(primary.series) == 0:
            return None
        return nearest(primary.series, self.renderer.date_at(x))

    def _aligned(
        self, sample: DailySample
    ) -> tuple[list[Dataset], list[DailySample]]:
        """Datasets with a sample on the same calendar day, and those samples."""
        found = cross_series_lookup([d.series for d in self.datasets], sample.date)
        pairs = [(d, s) for d, s in zip(self.datasets, found) if s is not None]
        return [d for d, _ in pairs], [s for _, s in pairs]

    def _show(
        self,
        mode: PanelMode,
        content: PanelContent,
        anchor: Point,
        datasets: Sequence[Dataset],
        samples: Sequence[DailySample],
    ) -> None:
        markers = [Marker(MarkerKind.SELECTION_LINE, samples[0].date)]
        markers.extend(
            Marker(MarkerKind.HOVER_DOT, s.date, s.daylight_hours, d.color)
            for d, s in zip(datasets, samples)
        )
        self.renderer.clear_markers()
        self.renderer.draw_markers(markers)

        device = DeviceMode.DESKTOP if mode == PanelMode.TOOLTIP else DeviceMode.MOBILE
        position = place_panel(
            self.viewport,
            self.renderer.measure_panel(content),
            anchor,
            device,
            offset=self.config.tooltip_offset,
            margin=self.config.viewport_margin,
        )
        self.renderer.show_panel(Panel(mode, content, position))

    def _update(self, sample: Optional[DailySample], mode: SelectionMode) -> None:
        previous = self.selection
        self.selection = SelectionState(
            active_sample=sample,
            mode=mode,
            pending_hide_at=self._hide_timer.due_at,
        )
        if previous.active_sample == sample and previous.mode == mode:
            return
        for listener in self._listeners:
            listener(self.selection)
