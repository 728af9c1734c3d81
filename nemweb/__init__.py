"""NEMweb Data API: filtered NEM time-series and unit reference data."""

__version__ = "1.0.0"
