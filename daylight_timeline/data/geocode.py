"""Location search using the Nominatim (OpenStreetMap) geocoding API."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from ..config import GeocodingConfig
from ..errors import LocationSearchError
from ..timers import CancellableTimer, Scheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeocodeResult:
    """A place returned by a search."""

    name: str  # Short display name
    display_name: str  # Full display name from the API
    lat: float
    lng: float


class GeocodingClient:
    """
    Searches for places and reverse-geocodes coordinates.

    Network errors on search are raised as LocationSearchError with a
    message suitable for display; reverse lookups degrade to a generic name.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "daylight-timeline/1.0",
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers["User-Agent"] = user_agent

    @classmethod
    def from_config(cls, config: GeocodingConfig) -> "GeocodingClient":
        return cls(config.base_url, config.user_agent, config.timeout)

    def search(self, query: str, limit: int = 5) -> list[GeocodeResult]:
        """
        Search for places matching a free-text query.

        Args:
            query: Place name
            limit: Maximum number of results

        Returns:
            Matching places, possibly empty

        Raises:
            LocationSearchError: If the request fails
        """
        try:
            resp = self.session.get(
                f"{self.base_url}/search",
                params={"format": "json", "q": query, "limit": limit},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.Timeout as e:
            logger.warning("Location search timed out")
            raise LocationSearchError("Unable to search for location") from e
        except requests.HTTPError as e:
            logger.warning(f"Location search HTTP error: {e}")
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                raise LocationSearchError(
                    "Too many requests. Please wait a moment and try again"
                ) from e
            if status == 404:
                raise LocationSearchError(
                    "Location not found. Try a different search"
                ) from e
            raise LocationSearchError("Unable to search for location") from e
        except requests.RequestException as e:
            logger.warning(f"Location search failed: {e}")
            raise LocationSearchError(
                "Location search requires internet connection"
            ) from e
        except ValueError as e:
            logger.warning(f"Failed to parse search results: {e}")
            raise LocationSearchError("Unable to search for location") from e

        return self._parse_results(data)

    def reverse(self, latitude: float, longitude: float) -> str:
        """
        Get a short place name for coordinates.

        Returns:
            "City, Country", or "Current Location" if unavailable
        """
        try:
            resp = self.session.get(
                f"{self.base_url}/reverse",
                params={"format": "json", "lat": latitude, "lon": longitude},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            address = resp.json().get("address", {})
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Reverse geocoding failed: {e}")
            return "Current Location"

        name = (
            address.get("city")
            or address.get("town")
            or address.get("village")
            or "Current Location"
        )
        country = address.get("country")
        return f"{name}, {country}" if country else name

    @staticmethod
    def _parse_results(data) -> list[GeocodeResult]:
        results = []
        for item in data if isinstance(data, list) else []:
            try:
                display_name = item["display_name"]
                results.append(
                    GeocodeResult(
                        name=",".join(display_name.split(",")[:2]).strip(),
                        display_name=display_name,
                        lat=float(item["lat"]),
                        lng=float(item["lon"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed search result: {e}")
        return results


class SearchDebouncer:
    """
    Runs a search only after typing pauses.

    Each keystroke replaces the pending search; queries shorter than the
    minimum length clear results instead.
    """

    def __init__(
        self,
        client: GeocodingClient,
        scheduler: Scheduler,
        on_results: Callable[[list[GeocodeResult]], None],
        on_error: Optional[Callable[[LocationSearchError], None]] = None,
        delay: float = 0.3,
        min_length: int = 2,
    ):
        self.client = client
        self.on_results = on_results
        self.on_error = on_error
        self.delay = delay
        self.min_length = min_length
        self._timer = CancellableTimer(scheduler)

    @classmethod
    def from_config(
        cls,
        client: GeocodingClient,
        scheduler: Scheduler,
        config: GeocodingConfig,
        on_results: Callable[[list[GeocodeResult]], None],
        on_error: Optional[Callable[[LocationSearchError], None]] = None,
    ) -> "SearchDebouncer":
        return cls(
            client,
            scheduler,
            on_results,
            on_error,
            delay=config.search_debounce,
            min_length=config.min_query_length,
        )

    def input(self, text: str) -> None:
        """Handle a change to the search box text."""
        query = text.strip()
        if len(query) < self.min_length:
            self._timer.cancel()
            self.on_results([])
            return
        self._timer.replace(self.delay, lambda: self._run(query))

    def cancel(self) -> None:
        self._timer.cancel()

    def _run(self, query: str) -> None:
        try:
            results = self.client.search(query)
        except LocationSearchError as e:
            if self.on_error:
                self.on_error(e)
            return
        self.on_results(results)
