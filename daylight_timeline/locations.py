"""Location directory, persistence and shareable links."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from .data.timezone import TimezoneInfo, format_utc_offset

logger = logging.getLogger(__name__)

MAX_LOCATIONS = 3
MAX_RECENT = 10

# Storage keys
ACTIVE_LOCATIONS_KEY = "activeLocations"
RECENT_LOCATIONS_KEY = "recentLocations"

# Query parameter carrying shared locations
SHARE_PARAM = "locs"


@dataclass(eq=False)
class Location:
    """
    A place shown on the timeline.

    Compared by identity: a location removed and added again is a new
    entry, so late results for the old one can be told apart.
    """

    name: str
    lat: float
    lng: float
    is_primary: bool = False
    color_index: int = 0
    timezone_offset: Optional[int] = None
    timezone_name: Optional[str] = None
    timezone_source: Optional[str] = None

    @property
    def short_name(self) -> str:
        return self.name.split(",")[0].strip()

    @property
    def has_timezone(self) -> bool:
        return self.timezone_offset is not None

    @property
    def timezone_label(self) -> str:
        if self.timezone_name:
            return self.timezone_name
        return format_utc_offset(self.timezone_offset or 0)

    def same_place(self, other: "Location") -> bool:
        return self.lat == other.lat and self.lng == other.lng

    def apply_timezone(self, info: TimezoneInfo) -> None:
        """Fill the timezone fields; identity fields are left alone."""
        self.timezone_offset = info.offset_hours
        self.timezone_name = info.name
        self.timezone_source = info.source.value

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "isPrimary": self.is_primary,
            "colorIndex": self.color_index,
            "timezoneOffset": self.timezone_offset,
            "timezoneName": self.timezone_name,
            "timezoneSource": self.timezone_source,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Location":
        return cls(
            name=data.get("name", "Location"),
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            is_primary=bool(data.get("isPrimary", False)),
            color_index=int(data.get("colorIndex") or 0),
            timezone_offset=data.get("timezoneOffset"),
            timezone_name=data.get("timezoneName"),
            timezone_source=data.get("timezoneSource"),
        )


class JsonStore:
    """Key/value storage persisted as a single JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read storage {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to write storage {self.path}: {e}")

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class LocationDirectory:
    """
    Ordered list of up to three locations with exactly one primary.

    New locations go to the front. Adding to a full directory evicts the
    oldest (last) entry. Listeners are called with the current list after
    every change.
    """

    def __init__(
        self,
        store: Optional[JsonStore] = None,
        max_locations: int = MAX_LOCATIONS,
        max_recent: int = MAX_RECENT,
    ):
        self.store = store
        self.max_locations = max_locations
        self.max_recent = max_recent
        self.locations: list[Location] = []
        self.recent: list[Location] = []
        self._listeners: list[Callable[[list[Location]], None]] = []

    def subscribe(self, listener: Callable[[list[Location]], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        snapshot = list(self.locations)
        for listener in self._listeners:
            listener(snapshot)

    def __len__(self) -> int:
        return len(self.locations)

    def __contains__(self, location: Location) -> bool:
        return any(loc is location for loc in self.locations)

    @property
    def primary(self) -> Optional[Location]:
        for loc in self.locations:
            if loc.is_primary:
                return loc
        return self.locations[0] if self.locations else None

    def _reindex(self) -> None:
        for i, loc in enumerate(self.locations):
            loc.color_index = i

    def _ensure_primary(self) -> None:
        if self.locations and not any(loc.is_primary for loc in self.locations):
            self.locations[0].is_primary = True

    def add(self, location: Location, save: bool = True) -> Optional[Location]:
        """
        Add a location to the front of the list.

        Args:
            location: Location to add
            save: Persist the active list afterwards

        Returns:
            The evicted location if the directory was full, else None
        """
        if any(loc.same_place(location) for loc in self.locations):
            logger.debug(f"Location already present: {location.name}")
            return None

        evicted = None
        if len(self.locations) >= self.max_locations:
            evicted = self.locations.pop()
            logger.info(f"Location limit reached, removed {evicted.name}")

        if location.is_primary:
            for loc in self.locations:
                loc.is_primary = False
        elif evicted is not None and evicted.is_primary:
            location.is_primary = True

        self.locations.insert(0, location)
        self._ensure_primary()
        self._reindex()
        self._save_to_recent(location)
        self._notify()

        if save:
            self.save()
        return evicted

    def remove(self, index: int) -> Location:
        """Remove the location at an index; the new first entry inherits primary."""
        removed = self.locations.pop(index)
        if removed.is_primary and self.locations:
            self.locations[0].is_primary = True
        self._reindex()
        self._notify()

        if self.locations:
            self.save()
        elif self.store is not None:
            self.store.remove(ACTIVE_LOCATIONS_KEY)
        return removed

    def set_primary(self, index: int) -> None:
        for i, loc in enumerate(self.locations):
            loc.is_primary = i == index
        self._notify()
        self.save()

    def clear(self) -> None:
        """Remove every location."""
        while self.locations:
            self.remove(0)

    def replace_all(self, locations: list[Location]) -> None:
        """Load a list in order, as from a shared link, without persisting."""
        if locations and not any(loc.is_primary for loc in locations):
            locations[0].is_primary = True
        self.locations = []
        for loc in reversed(locations):
            self.add(loc, save=False)

    def _save_to_recent(self, location: Location) -> None:
        self.recent = [loc for loc in self.recent if not loc.same_place(location)]
        self.recent.insert(0, location)
        self.recent = self.recent[: self.max_recent]
        if self.store is not None:
            self.store.set(RECENT_LOCATIONS_KEY, [loc.to_dict() for loc in self.recent])

    def save(self) -> None:
        if self.store is not None:
            self.store.set(
                ACTIVE_LOCATIONS_KEY, [loc.to_dict() for loc in self.locations]
            )

    def load(self) -> bool:
        """
        Restore active and recent locations from storage.

        Returns:
            True if any active locations were restored
        """
        if self.store is None:
            return False

        self.recent = self._load_list(RECENT_LOCATIONS_KEY)[: self.max_recent]
        active = self._load_list(ACTIVE_LOCATIONS_KEY)[: self.max_locations]
        if not active:
            return False

        self.locations = active
        self._ensure_primary()
        self._reindex()
        self._notify()
        return True

    def _load_list(self, key: str) -> list[Location]:
        raw = self.store.get(key) if self.store is not None else None
        if not isinstance(raw, list):
            return []
        result = []
        for item in raw:
            try:
                result.append(Location.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Failed to load stored location: {e}")
        return result


def encode_share_param(locations: list[Location]) -> str:
    """Compact JSON form of the locations for a share link."""
    return json.dumps(
        [
            {
                "n": loc.name,
                "la": f"{loc.lat:.4f}",
                "ln": f"{loc.lng:.4f}",
                "p": 1 if loc.is_primary else 0,
            }
            for loc in locations
        ],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def share_url(base_url: str, locations: list[Location]) -> str:
    """Link that reopens the view with the same locations."""
    parts = urlsplit(base_url)
    query = urlencode({SHARE_PARAM: encode_share_param(locations)})
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


def decode_share_param(value: str) -> list[Location]:
    """
    Rebuild locations from a share link parameter.

    Raises:
        ValueError: If the value is not a list of location entries
    """
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid shared locations: {e}") from e
    if not isinstance(data, list):
        raise ValueError("Shared locations must be a list")

    locations = []
    for item in data:
        try:
            locations.append(
                Location(
                    name=str(item["n"]),
                    lat=float(item["la"]),
                    lng=float(item["ln"]),
                    is_primary=item.get("p") == 1,
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Invalid shared location entry: {item!r}") from e
    return locations


def locations_from_url(url: str) -> Optional[list[Location]]:
    """Shared locations in a URL, or None if it carries none."""
    values = parse_qs(urlsplit(url).query).get(SHARE_PARAM)
    if not values:
        return None
    return decode_share_param(values[0])


def strip_share_param(url: str) -> str:
    """The URL with the share parameter removed."""
    parts = urlsplit(url)
    query = parse_qs(parts.query, keep_blank_values=True)
    query.pop(SHARE_PARAM, None)
    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(query, doseq=True), "")
    )
