"""
Elevation processing utilities.

This is the SINGLE SOURCE OF TRUTH for elevation calculations.
"""
from typing import Iterable, List, Optional, Tuple


def present_elevations(elevations: Iterable[Optional[float]]) -> List[float]:
    """Drop samples without elevation, keeping order."""
    return [e for e in elevations if e is not None]


def calculate_elevation_changes(
    elevations: List[float]
) -> Tuple[float, float]:
    """
    Calculate total elevation gain and loss by consecutive deltas.

    Counts every sensor wobble. Prefer ElevationSegmenter for
    de-noised figures.

    Args:
        elevations: List of elevation values

    Returns:
        Tuple of (gain_m, loss_m)
    """
    gain = 0.0
    loss = 0.0

    for i in range(1, len(elevations)):
        diff = elevations[i] - elevations[i - 1]
        if diff > 0:
            gain += diff
        else:
            loss += abs(diff)

    return gain, loss


def elevation_extremes(elevations: List[float]) -> Tuple[float, float]:
    """
    Return (max, min) elevation.

    Both stay at 0.0 when there are no samples.
    """
    if not elevations:
        return 0.0, 0.0
    return max(elevations), min(elevations)
