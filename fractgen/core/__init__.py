"""Numeric regimes, view mapping and fractal formulas."""
