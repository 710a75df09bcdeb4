"""Offline media queue for the crop diagnosis agent."""

__version__ = "0.1.0"
