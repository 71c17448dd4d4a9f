"""LevScore supplier import: spreadsheet ingestion, scoring and persistence."""

__version__ = "0.3.0"
