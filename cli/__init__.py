"""Command-line client for the compensation jobs service."""

__version__ = "1.0.0"
