"""Sweep, storage, alert and health services."""
