"""Bulk import of social media images with content sniffing and deduplication."""

__version__ = "0.1.0"
