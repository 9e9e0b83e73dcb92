"""Marching squares and marching cubes meshers."""
