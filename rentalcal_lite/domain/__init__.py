"""Availability cache and synchronization policy."""
