"""Reconciliation of directory teams, channels and users with a local store."""

__version__ = "0.1.0"
