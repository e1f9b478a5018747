"""Damped linear oscillatory state-space layers, scans and a small classifier on NumPy."""

__version__ = "0.1.0"