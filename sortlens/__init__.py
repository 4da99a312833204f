"""Sortlens — card-sort and tree-test analytics engine."""

__version__ = "0.1.0"
