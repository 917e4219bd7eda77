"""Sync engineering-productivity metrics from GitHub into a Port catalog."""

__version__ = "0.1.0"
