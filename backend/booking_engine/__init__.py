"""Booking lifecycle and scheduled reconciliation engine."""

__version__ = "0.1.0"
