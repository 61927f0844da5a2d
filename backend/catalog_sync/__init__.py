"""Catalog Sync -- third-party course catalog ingestion and publishing."""

__version__ = "0.1.0"
