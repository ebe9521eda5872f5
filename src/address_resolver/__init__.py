"""Municipal address resolution: normalize, geocode and classify address tables."""

__version__ = "0.1.0"
