"""Crokinole round-robin tournament scheduler."""

__version__ = "0.1.0"
