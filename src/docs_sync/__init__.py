"""Sync upstream documentation into local skill resources."""

__version__ = "0.1.0"
