"""Configuration loading and validation for Daylight Timeline."""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Default paths to search for config
CONFIG_PATHS = [
    Path("config.json"),
    Path.home() / ".config" / "daylight-timeline" / "config.json",
    Path("/etc/daylight-timeline/config.json"),
]

DEFAULT_STORAGE_PATH = str(
    Path.home() / ".config" / "daylight-timeline" / "storage.json"
)


@dataclass
class SeriesConfig:
    """Year series and series cache settings."""

    window_days: int = 365
    cache_ttl_seconds: int = 3600  # 1 hour
    cache_capacity: int = 20

    def validate(self) -> list[str]:
        errors = []
        if self.window_days < 1:
            errors.append(f"Invalid window_days {self.window_days}: must be positive")
        if self.cache_ttl_seconds <= 0:
            errors.append("Series cache TTL must be positive")
        if self.cache_capacity < 1:
            errors.append("Series cache capacity must be at least 1")
        return errors


@dataclass
class TimezoneConfig:
    """Timezone resolution settings."""

    use_geo_lookup: bool = True
    cache_ttl_seconds: int = 3600
    cache_capacity: int = 100
    max_attempts: int = 3
    backoff_seconds: float = 0.1  # Multiplied by attempt number

    def validate(self) -> list[str]:
        errors = []
        if self.cache_ttl_seconds <= 0:
            errors.append("Timezone cache TTL must be positive")
        if self.cache_capacity < 1:
            errors.append("Timezone cache capacity must be at least 1")
        if self.max_attempts < 1:
            errors.append(f"Invalid max_attempts {self.max_attempts}: must be >= 1")
        if self.backoff_seconds < 0:
            errors.append("Timezone backoff must not be negative")
        return errors


@dataclass
class InteractionConfig:
    """Pointer/touch interaction settings."""

    mobile_breakpoint: int = 768  # Viewport widths below this are mobile
    hide_delay: float = 0.1
    resize_debounce: float = 0.25
    sheet_close_distance: int = 80
    tooltip_offset: int = 40
    viewport_margin: int = 20

    def validate(self) -> list[str]:
        errors = []
        if self.mobile_breakpoint <= 0:
            errors.append("Mobile breakpoint must be positive")
        if self.hide_delay < 0 or self.resize_debounce < 0:
            errors.append("Interaction delays must not be negative")
        if self.sheet_close_distance <= 0:
            errors.append("Sheet close distance must be positive")
        if self.tooltip_offset < 0 or self.viewport_margin < 0:
            errors.append("Tooltip offset and viewport margin must not be negative")
        return errors


@dataclass
class LocationsConfig:
    """Location directory settings."""

    max_locations: int = 3
    max_recent: int = 10
    storage_path: str = DEFAULT_STORAGE_PATH
    default_name: str = "New York, NY"
    default_latitude: float = 40.7128
    default_longitude: float = -74.0060

    def validate(self) -> list[str]:
        errors = []
        if not 1 <= self.max_locations <= 3:
            errors.append(
                f"Invalid max_locations {self.max_locations}: must be 1-3"
            )
        if self.max_recent < 0:
            errors.append("max_recent must not be negative")
        if not -90 <= self.default_latitude <= 90:
            errors.append(
                f"Invalid latitude {self.default_latitude}: must be -90 to 90"
            )
        if not -180 <= self.default_longitude <= 180:
            errors.append(
                f"Invalid longitude {self.default_longitude}: must be -180 to 180"
            )
        return errors


@dataclass
class GeocodingConfig:
    """Nominatim geocoding settings."""

    base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "daylight-timeline/1.0"
    timeout: float = 10.0
    search_debounce: float = 0.3
    min_query_length: int = 2

    def validate(self) -> list[str]:
        errors = []
        if not self.base_url.startswith(("http://", "https://")):
            errors.append(f"Invalid geocoding base_url '{self.base_url}'")
        if self.timeout <= 0:
            errors.append("Geocoding timeout must be positive")
        if self.min_query_length < 1:
            errors.append("min_query_length must be at least 1")
        return errors


@dataclass
class ChartConfig:
    """Reference chart image settings."""

    width: int = 800
    height: int = 360
    show_change: bool = True  # Daily change strip below the daylight plot

    def validate(self) -> list[str]:
        errors = []
        if self.width <= 0 or self.height <= 0:
            errors.append(f"Invalid chart dimensions: {self.width}x{self.height}")
        return errors


@dataclass
class Config:
    """Main configuration container."""

    series: SeriesConfig = field(default_factory=SeriesConfig)
    timezone: TimezoneConfig = field(default_factory=TimezoneConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)
    locations: LocationsConfig = field(default_factory=LocationsConfig)
    geocoding: GeocodingConfig = field(default_factory=GeocodingConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)

    def validate(self) -> list[str]:
        """Validate all configuration sections. Returns list of errors."""
        errors = []
        errors.extend(self.series.validate())
        errors.extend(self.timezone.validate())
        errors.extend(self.interaction.validate())
        errors.extend(self.locations.validate())
        errors.extend(self.geocoding.validate())
        errors.extend(self.chart.validate())
        return errors


def _dataclass_from_dict(cls, data: dict):
    """Create a dataclass instance from a dict, using field defaults for missing keys."""
    kwargs = {}
    for f in dataclasses.fields(cls):
        if f.name in data:
            kwargs[f.name] = data[f.name]
        elif f.default is not dataclasses.MISSING:
            kwargs[f.name] = f.default
        elif f.default_factory is not dataclasses.MISSING:
            kwargs[f.name] = f.default_factory()
    return cls(**kwargs)


# Mapping from config JSON keys to their dataclass types
_CONFIG_SECTIONS = {
    "series": ("series", SeriesConfig),
    "timezone": ("timezone", TimezoneConfig),
    "interaction": ("interaction", InteractionConfig),
    "locations": ("locations", LocationsConfig),
    "geocoding": ("geocoding", GeocodingConfig),
    "chart": ("chart", ChartConfig),
}


def _dict_to_config(data: dict) -> Config:
    """Convert a dictionary to a Config object."""
    config = Config()
    for key, (attr, cls) in _CONFIG_SECTIONS.items():
        if key in data:
            setattr(config, attr, _dataclass_from_dict(cls, data[key]))
    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from JSON file.

    Args:
        config_path: Explicit path to config file. If None, searches default paths.

    Returns:
        Config object with loaded settings.

    Raises:
        FileNotFoundError: If no config file found and config_path was explicit.
        ValueError: If config file has validation errors.
    """
    if config_path is not None:
        paths_to_try = [config_path]
    else:
        paths_to_try = CONFIG_PATHS

    found_path = None
    for path in paths_to_try:
        if path.exists():
            found_path = path
            break

    if found_path is None:
        if config_path is not None:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.warning("No config file found, using defaults")
        return Config()

    logger.info(f"Loading config from {found_path}")
    try:
        with open(found_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {found_path}: {e}")

    config = _dict_to_config(data)

    errors = config.validate()
    if errors:
        error_msg = "Config validation errors:\n" + "\n".join(
            f"  - {e}" for e in errors
        )
        raise ValueError(error_msg)

    return config
