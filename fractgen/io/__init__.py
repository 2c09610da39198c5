"""Presets and configuration files."""
