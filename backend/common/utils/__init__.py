"""Common utility functions."""

from .geo import calculate_distance, within_radius

__all__ = [
    "calculate_distance",
    "within_radius",
]
