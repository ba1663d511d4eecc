"""An RSS aggregator: a JSON HTTP API over SQLite with a background feed scraper."""

__version__ = "0.1.0"