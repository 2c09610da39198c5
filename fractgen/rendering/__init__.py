"""Palettes, coloring and image export."""
