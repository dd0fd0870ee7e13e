"""Geometry validation and repair for delivery zones."""

__version__ = "0.1.0"
