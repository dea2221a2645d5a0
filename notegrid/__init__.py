"""Notegrid - notes, groups and private groups over a key-value store."""

__version__ = "0.1.0"
