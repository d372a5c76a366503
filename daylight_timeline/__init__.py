"""Daylight Timeline - year-long daylight curves for up to three locations."""

__version__ = "1.0.0"
