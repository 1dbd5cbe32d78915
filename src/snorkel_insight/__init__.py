"""Snorkel suitability forecast ingestion."""

__version__ = "0.1.0"
