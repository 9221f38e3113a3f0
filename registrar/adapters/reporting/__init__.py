"""Reporting adapters - Outcome delivery to the registrar API."""

from .http import HttpRegistrationReporter

__all__ = ["HttpRegistrationReporter"]
