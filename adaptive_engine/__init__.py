"""Adaptive learning engine: performance aggregation and difficulty adaptation."""

__version__ = "0.1.0"
