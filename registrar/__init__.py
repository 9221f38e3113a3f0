"""Blockchain name registrar: registration client and analytics API."""

__version__ = "0.1.0"
