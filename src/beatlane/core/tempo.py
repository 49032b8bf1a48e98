"""
Tempo estimation from onset spacing.

Each plausible inter-onset interval votes for the tempo it implies, plus
its double and half to absorb octave errors. The most-voted BPM wins.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class TempoParams:
    """Interval and BPM ranges for the histogram vote."""

    min_onsets: int = 4
    min_interval: float = 0.2   # seconds, exclusive
    max_interval: float = 1.5   # seconds, exclusive
    min_bpm: int = 60
    max_bpm: int = 200


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


class TempoEstimator:
    """
    Histogram tempo estimator.

    Ties between equally voted BPMs go to the one that received its first
    vote earliest. Candidates are generated per interval in the order
    interval, doubled, halved, so for a steady pulse the directly measured
    tempo beats its half-tempo alias.
    """

    def __init__(self, params: Optional[TempoParams] = None):
        self.params = params or TempoParams()

    def plausible_intervals(self, onsets: np.ndarray) -> np.ndarray:
        """Consecutive onset gaps inside the beat-spacing range."""
        times = np.asarray(onsets, dtype=np.float64)
        if len(times) < 2:
            return np.zeros(0, dtype=np.float64)
        intervals = np.diff(times)
        keep = (intervals > self.params.min_interval) & (intervals < self.params.max_interval)
        return intervals[keep]

    def votes(self, onsets: np.ndarray) -> Counter:
        """
        Build the BPM histogram.

        Returns:
            Counter keyed by integer BPM, in first-vote order.
        """
        hist: Counter = Counter()
        if len(onsets) < self.params.min_onsets:
            return hist

        for dt in self.plausible_intervals(onsets):
            for candidate in (dt, dt * 2.0, dt / 2.0):
                bpm = round_half_up(60.0 / candidate)
                if self.params.min_bpm <= bpm <= self.params.max_bpm:
                    hist[bpm] += 1
        return hist

    def estimate(self, onsets: np.ndarray) -> Optional[int]:
        """
        Estimate tempo in BPM.

        Args:
            onsets: Strictly increasing onset times in seconds.

        Returns:
            Integer BPM in [min_bpm, max_bpm], or None when there are too
            few onsets or no plausible interval.
        """
        hist = self.votes(onsets)
        if not hist:
            logger.debug("Tempo inconclusive from %d onsets", len(onsets))
            return None

        best_bpm = None
        best_count = -1
        for bpm, count in hist.items():
            if count > best_count:
                best_bpm, best_count = bpm, count

        logger.debug("Tempo estimate %d BPM (%d votes)", best_bpm, best_count)
        return best_bpm
