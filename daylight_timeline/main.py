"""Main entry point for Daylight Timeline."""

import argparse
import asyncio
import datetime
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import Config, load_config
from .controller import TimelineController
from .data.geocode import GeocodingClient, SearchDebouncer
from .engine import TimelineEngine
from .errors import LocationSearchError, Notice
from .locations import (
    JsonStore,
    Location,
    LocationDirectory,
    locations_from_url,
    share_url,
    strip_share_param,
)
from .presenter import SelectionPresenter
from .timers import LoopScheduler
from .views import PillowChartRenderer, Size

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Daylight Timeline - year-long daylight for up to three locations"
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to config.json file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "-l",
        "--location",
        nargs=3,
        action="append",
        metavar=("NAME", "LAT", "LNG"),
        help="Location to show (repeatable, first is primary)",
    )
    parser.add_argument("--share", help="Shared link to load locations from")
    parser.add_argument("-s", "--search", help="Search for a place and add the best match")
    parser.add_argument(
        "--at",
        nargs=2,
        type=float,
        metavar=("LAT", "LNG"),
        help="Add a location by coordinates, named by reverse geocoding",
    )
    parser.add_argument(
        "--share-base", help="Print a share link for the locations using this base URL"
    )
    parser.add_argument(
        "--date", type=_parse_date, help="Reference date instead of today (YYYY-MM-DD)"
    )
    parser.add_argument("-o", "--output", type=Path, help="Write the chart as a PNG")
    parser.add_argument(
        "--no-save", action="store_true", help="Do not persist the location list"
    )
    return parser


class TimelineApp:
    """Command-line timeline session."""

    def __init__(self, config: Config, reference_date: Optional[datetime.date] = None):
        """
        Initialize the application.

        Args:
            config: Application configuration
            reference_date: Day treated as today
        """
        self.config = config
        self.reference_date = reference_date or datetime.date.today()
        self.directory = LocationDirectory(
            store=JsonStore(config.locations.storage_path),
            max_locations=config.locations.max_locations,
            max_recent=config.locations.max_recent,
        )
        self.engine = TimelineEngine(config, today=lambda: self.reference_date)
        self.renderer = PillowChartRenderer(
            config.chart.width, config.chart.height, show_change=config.chart.show_change
        )
        self.scheduler = LoopScheduler()
        self.presenter = SelectionPresenter(
            self.renderer,
            self.scheduler,
            config.interaction,
            viewport=Size(config.chart.width, config.chart.height),
        )
        self.controller = TimelineController(
            self.engine, self.directory, self.renderer, self.presenter, self.scheduler
        )
        self.controller.on_notice(self._print_notice)

    @staticmethod
    def _print_notice(notice: Notice) -> None:
        print(f"! {notice.message}")

    def load_locations(self, args: argparse.Namespace) -> None:
        """Pick locations from a share link, the command line, storage or the default."""
        if args.share:
            try:
                shared = locations_from_url(args.share)
            except ValueError as e:
                logger.error(f"Failed to load locations from link: {e}")
                shared = None
            if shared:
                self.directory.replace_all(shared)
                logger.info(f"Loaded shared locations; link is now {strip_share_param(args.share)}")
                return

        if args.location:
            locations = [
                Location(name=name, lat=float(lat), lng=float(lng), is_primary=i == 0)
                for i, (name, lat, lng) in enumerate(args.location)
            ]
            self.directory.replace_all(locations[: self.directory.max_locations])
            if not args.no_save:
                self.directory.save()
            return

        if not self.directory.load():
            loc = self.config.locations
            self.directory.add(
                Location(
                    name=loc.default_name,
                    lat=loc.default_latitude,
                    lng=loc.default_longitude,
                    is_primary=True,
                ),
                save=False,
            )

    async def search_location(self, query: str, save: bool = True) -> Optional[Location]:
        """
        Add the best geocoding match for a query to the front of the list.

        The query goes through the same debounced path as typed input, so
        too-short queries find nothing.
        """
        found = asyncio.get_running_loop().create_future()
        debouncer = SearchDebouncer.from_config(
            GeocodingClient.from_config(self.config.geocoding),
            self.scheduler,
            self.config.geocoding,
            on_results=found.set_result,
            on_error=found.set_exception,
        )
        debouncer.input(query)
        try:
            results = await found
        except LocationSearchError as e:
            self._print_notice(Notice(str(e)))
            return None

        if not results:
            self._print_notice(Notice(f"No results found for '{query}'", level="warning"))
            return None

        match = results[0]
        location = Location(name=match.name, lat=match.lat, lng=match.lng)
        self.directory.add(location, save=save)
        return location

    async def locate(self, latitude: float, longitude: float, save: bool = True) -> Location:
        """Add a location by coordinates, named after the place found there."""
        client = GeocodingClient.from_config(self.config.geocoding)
        name = await asyncio.to_thread(client.reverse, latitude, longitude)
        location = Location(name=name, lat=latitude, lng=longitude)
        self.directory.add(location, save=save)
        return location

    async def run(self, args: argparse.Namespace) -> int:
        self.load_locations(args)
        if args.search:
            await self.search_location(args.search, save=not args.no_save)
        if args.at:
            await self.locate(args.at[0], args.at[1], save=not args.no_save)
        await self.controller.resolve_timezones()
        await self.controller.wait_idle()
        self.print_summary()

        if args.share_base:
            print(share_url(args.share_base, self.directory.locations))
        if args.output:
            self.renderer.save(args.output)
        return 0

    def print_summary(self) -> None:
        stats = self.controller.stats
        if stats is None:
            print("No daylight data available")
            return

        print(f"{stats.location_name} - {self.reference_date:%B %d, %Y}")
        print(f"  Sunrise   {stats.sunrise}")
        print(f"  Sunset    {stats.sunset}")
        print(f"  Daylight  {stats.daylight} ({stats.change})")
        print(f"  {stats.forecast}")

        for dataset in self.controller.datasets:
            loc = dataset.location
            today = dataset.series.today()
            warning = " (approximate timezone)" if loc.timezone_source == "fallback" else ""
            hours = f"{today.daylight_hours:.2f}h" if today else "-"
            print(f"  [{loc.color_index + 1}] {loc.short_name}: {hours}, {loc.timezone_label}{warning}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error(f"Config file not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    app = TimelineApp(config, reference_date=args.date)
    return asyncio.run(app.run(args))


if __name__ == "__main__":
    sys.exit(main())
