"""EnrichX admin directory API."""

__version__ = "0.3.0"
