"""Persistence layer for tracking Dyson Sphere Program game saves."""

__version__ = "0.1.0"
