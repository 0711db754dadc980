"""Aithreya: constitutional-education content and learning progress API."""

__version__ = "1.0.0"
