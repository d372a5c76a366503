"""Wires locations, engine, renderer and presenter into one timeline view."""

import asyncio
import logging
from typing import Callable, Optional

from .engine import Dataset, TimelineEngine, primary_dataset
from .errors import Notice
from .formatting import StatsCard, today_stats
from .locations import Location, LocationDirectory
from .presenter import SelectionPresenter
from .timers import CancellableTimer, Scheduler
from .views.base import ChartRenderer, Size

logger = logging.getLogger(__name__)


class TimelineController:
    """
    Keeps the chart, stats card and selection in step with the locations.

    Location changes recompute the datasets immediately for locations whose
    timezone is known and start timezone resolution for the rest; each
    resolution that lands triggers another refresh.
    """

    def __init__(
        self,
        engine: TimelineEngine,
        directory: LocationDirectory,
        renderer: ChartRenderer,
        presenter: SelectionPresenter,
        scheduler: Scheduler,
    ):
        self.engine = engine
        self.directory = directory
        self.renderer = renderer
        self.presenter = presenter
        self.datasets: list[Dataset] = []
        self.notices: list[Notice] = []
        self.stats: Optional[StatsCard] = None
        self._resize_timer = CancellableTimer(scheduler)
        self._resolving: dict[Location, asyncio.Task] = {}
        self._notice_listeners: list[Callable[[Notice], None]] = []

        directory.subscribe(self._on_locations_changed)

    def on_notice(self, listener: Callable[[Notice], None]) -> None:
        self._notice_listeners.append(listener)

    def refresh(self) -> None:
        """Recompute datasets and push them to the renderer and presenter."""
        datasets, notices = self.engine.compute_datasets(self.directory.locations)
        self.datasets = datasets
        self.renderer.render(datasets)
        self.presenter.set_datasets(datasets)

        primary = primary_dataset(datasets)
        self.stats = today_stats(primary.series, primary.location) if primary else None

        new_notices = [n for n in notices if n not in self.notices]
        self.notices = notices
        for notice in new_notices:
            for listener in self._notice_listeners:
                listener(notice)

    @property
    def resolving(self) -> int:
        """Number of timezone resolutions in flight."""
        return len(self._resolving)

    async def resolve_timezones(self) -> None:
        """Resolve missing timezones, refreshing as each one arrives."""
        loop = asyncio.get_running_loop()
        tasks = [
            self._resolution_for(loc, loop)
            for loc in self.directory.locations
            if not loc.has_timezone
        ]
        if tasks:
            await asyncio.gather(*tasks)

    async def wait_idle(self) -> None:
        """Wait for resolutions started by location changes."""
        while self._resolving:
            await asyncio.gather(*list(self._resolving.values()))

    def _resolution_for(
        self, location: Location, loop: asyncio.AbstractEventLoop
    ) -> asyncio.Task:
        """The in-flight resolution for a location, started if needed."""
        task = self._resolving.get(location)
        if task is None:
            task = loop.create_task(self._resolve_one(location))
            self._resolving[location] = task
            task.add_done_callback(lambda _: self._resolving.pop(location, None))
        return task

    async def _resolve_one(self, location: Location) -> None:
        info = await self.engine.attach_timezone(location, self.directory)
        if info is not None:
            self.refresh()

    def on_resize(self, viewport: Size, debounce: Optional[float] = None) -> None:
        """Handle a viewport resize once resizing settles."""
        delay = (
            debounce
            if debounce is not None
            else self.presenter.config.resize_debounce
        )
        self._resize_timer.replace(delay, lambda: self._apply_resize(viewport))

    def _apply_resize(self, viewport: Size) -> None:
        self.presenter.set_viewport(viewport)
        self.refresh()

    def _on_locations_changed(self, locations: list[Location]) -> None:
        self.refresh()
        if any(not loc.has_timezone for loc in locations):
            self._start_resolution()

    def _start_resolution(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the caller awaits resolve_timezones() itself
            return
        for loc in self.directory.locations:
            if not loc.has_timezone:
                self._resolution_for(loc, loop)
