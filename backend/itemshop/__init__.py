"""Item shop catalog scraper and snapshot API."""

__version__ = "0.1.0"
