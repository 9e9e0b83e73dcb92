"""Occupancy fields, smoothing, regions, rooms and passages."""
