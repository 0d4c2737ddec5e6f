"""Readshelf API: reading-tracker backend with precomputed book statistics."""

__version__ = "1.0.0"
