"""Minesweeper on the cells of a geodesic sphere."""

__version__ = "0.1.0"
