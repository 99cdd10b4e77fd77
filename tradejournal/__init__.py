"""Trade journal analytics: calculators, journal storage and an HTTP API."""

__version__ = "1.0.0"
