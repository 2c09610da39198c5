"""Zoom flight planning."""
