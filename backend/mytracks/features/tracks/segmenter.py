"""
Elevation Segmenter

De-noised elevation gain/loss. Consecutive samples are grouped into
runs classified as up, down or flat; only the net change of a whole
up (or down) run is credited, so sub-threshold sensor jitter never
adds up.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from mytracks.shared.elevation import present_elevations

UP = "up"
DOWN = "down"
FLAT = "flat"


@dataclass
class ElevationRun:
    """A maximal stretch of samples with one classification."""
    direction: str
    start_index: int
    end_index: int
    start_elevation_m: float
    end_elevation_m: float

    @property
    def net_change_m(self) -> float:
        return self.end_elevation_m - self.start_elevation_m


class ElevationSegmenter:
    """
    Classifies elevation deltas and accumulates gain/loss per run.

    A delta above +NOISE_THRESHOLD_M is "up", below -NOISE_THRESHOLD_M is
    "down", anything in between is "flat". When the classification
    changes, the finished run's net change goes to gain (up run, positive
    net) or loss (down run, negative net). Flat runs contribute nothing.
    """

    # GPS/barometric jitter band (meters)
    NOISE_THRESHOLD_M = 0.5

    @classmethod
    def classify(cls, delta_m: float) -> str:
        if delta_m > cls.NOISE_THRESHOLD_M:
            return UP
        if delta_m < -cls.NOISE_THRESHOLD_M:
            return DOWN
        return FLAT

    @classmethod
    def runs(cls, elevations: List[float]) -> List[ElevationRun]:
        """
        Split a list of elevations into classified runs.

        Adjacent runs share their boundary sample. Fewer than 2 samples
        yields no runs.
        """
        if len(elevations) < 2:
            return []

        runs: List[ElevationRun] = []
        current: Optional[str] = None
        start = 0

        for i in range(1, len(elevations)):
            direction = cls.classify(elevations[i] - elevations[i - 1])

            if current is not None and direction != current:
                runs.append(ElevationRun(
                    direction=current,
                    start_index=start,
                    end_index=i - 1,
                    start_elevation_m=elevations[start],
                    end_elevation_m=elevations[i - 1],
                ))
                start = i - 1

            current = direction

        # Flush the final open run
        runs.append(ElevationRun(
            direction=current,
            start_index=start,
            end_index=len(elevations) - 1,
            start_elevation_m=elevations[start],
            end_elevation_m=elevations[-1],
        ))

        return runs

    @classmethod
    def gain_loss(cls, elevations: Iterable[Optional[float]]) -> Tuple[float, float]:
        """
        Calculate de-noised elevation gain and loss.

        Args:
            elevations: Elevation samples in track order; None entries
                (points without elevation) are dropped first

        Returns:
            Tuple of (gain_m, loss_m), both >= 0
        """
        gain = 0.0
        loss = 0.0

        for run in cls.runs(present_elevations(elevations)):
            net = run.net_change_m
            if run.direction == UP and net > 0:
                gain += net
            elif run.direction == DOWN and net < 0:
                loss += -net

        return gain, loss
