"""Error types and user-facing notices for Daylight Timeline."""

import datetime
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .locations import Location

logger = logging.getLogger(__name__)

# Beyond this latitude failures are reported as a polar-proximity problem
EXTREME_LATITUDE = 85.0


class DaylightError(Exception):
    """Base class for Daylight Timeline errors."""


class SamplerError(DaylightError):
    """Sun position/times could not be computed for a location and day."""

    def __init__(
        self,
        latitude: float,
        longitude: float,
        date: Optional[datetime.date] = None,
        reason: str = "",
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.date = date
        self.reason = reason
        where = f"({latitude:.4f}, {longitude:.4f})"
        when = f" on {date.isoformat()}" if date else ""
        super().__init__(f"Sun calculation failed at {where}{when}: {reason}")


class TimezoneLookupError(DaylightError):
    """Geo timezone lookup failed or produced an unusable zone."""


class LocationSearchError(DaylightError):
    """Location search failed; message is suitable for display."""


@dataclass(frozen=True)
class Notice:
    """A message to surface to the user."""

    message: str
    level: str = "error"  # error, warning, info, success


def data_error_notice(location: "Location") -> Notice:
    """
    Build the notice shown when daylight data for a location fails.

    Locations within a few degrees of a pole get a dedicated message,
    the rest name the location.
    """
    if abs(location.lat) > EXTREME_LATITUDE:
        return Notice("Location is too close to the poles for accurate calculations")
    return Notice(f"Unable to calculate daylight for {location.name}")
