"""Procedural cave generation and isosurface meshing."""

__version__ = "0.1.0"
