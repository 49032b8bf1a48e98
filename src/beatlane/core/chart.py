"""
Chart synthesis module.

Turns onset times and an optional tempo into a four-lane chart: onsets are
spaced out, snapped to a half-beat grid when a tempo is known, spread over
the lanes and thinned according to difficulty.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

import numpy as np

logger = logging.getLogger(__name__)


class Judgment(str, Enum):
    """Accuracy tier of a judged note."""

    PERFECT = "perfect"
    GREAT = "great"
    GOOD = "good"
    MISS = "miss"


class Difficulty(str, Enum):
    """Chart density and note scroll speed."""

    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"

    @property
    def keep_probability(self) -> float:
        """Chance that each synthesized note survives thinning."""
        return _KEEP_PROBABILITY[self]

    @property
    def lead_time(self) -> float:
        """Seconds a note is on screen before reaching the hit line."""
        return _LEAD_TIME[self]

    @classmethod
    def parse(cls, value: "str | Difficulty") -> "Difficulty":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            names = ", ".join(d.value for d in cls)
            raise ValueError(f"Unknown difficulty {value!r} (expected one of: {names})") from None


_KEEP_PROBABILITY = {
    Difficulty.EASY: 0.5,
    Difficulty.NORMAL: 0.75,
    Difficulty.HARD: 1.0,
}

_LEAD_TIME = {
    Difficulty.EASY: 2.6,
    Difficulty.NORMAL: 2.2,
    Difficulty.HARD: 1.9,
}


@dataclass
class Note:
    """A single timed tap in one lane."""

    time: float
    lane: int
    hit: bool = False
    judged: bool = False
    result: Optional[Judgment] = None

    @property
    def is_pending(self) -> bool:
        """True until the note has been hit or missed."""
        return not (self.hit or self.judged)

    def reset(self) -> None:
        self.hit = False
        self.judged = False
        self.result = None


@dataclass
class Chart:
    """Time-ordered notes plus the settings they were built with."""

    notes: list[Note] = field(default_factory=list)
    bpm: Optional[int] = None
    difficulty: Difficulty = Difficulty.NORMAL
    lane_count: int = 4

    def __len__(self) -> int:
        return len(self.notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(self.notes)

    @property
    def times(self) -> np.ndarray:
        return np.array([n.time for n in self.notes], dtype=np.float64)

    def lane_notes(self, lane: int) -> list[Note]:
        """Notes in *lane*, in time order."""
        return [n for n in self.notes if n.lane == lane]

    def lane_counts(self) -> list[int]:
        counts = [0] * self.lane_count
        for n in self.notes:
            counts[n.lane] += 1
        return counts

    def reset(self) -> None:
        """Return every note to its unjudged state. Times and lanes are kept."""
        for n in self.notes:
            n.reset()


@dataclass
class ChartParams:
    """Spacing, grid search and lane-walk parameters."""

    lane_count: int = 4
    min_spacing: float = 0.12      # seconds between kept onsets
    phase_range: float = 0.2       # grid offset search, +/- seconds
    phase_step: float = 0.01
    phase_sample: int = 50         # onsets scored per candidate offset
    skip_probability: float = 0.2  # chance of stepping two lanes instead of one


class ChartSynthesizer:
    """
    Builds a Chart from onsets.

    All randomness (lane walk and thinning) is drawn from a numpy
    Generator, so a fixed seed reproduces the same chart.
    """

    def __init__(self, params: Optional[ChartParams] = None, seed: Optional[int] = None):
        """
        Initialize the synthesizer.

        Args:
            params: Chart parameters.
            seed: Seed for the default random generator. None draws fresh
                entropy from the OS.
        """
        self.params = params or ChartParams()
        if self.params.lane_count < 1:
            raise ValueError("lane_count must be at least 1")
        self.rng = np.random.default_rng(seed)

    # ------------------------------------------------------------------
    # Onset shaping
    # ------------------------------------------------------------------

    def filter_spacing(self, times: np.ndarray) -> np.ndarray:
        """Keep a time only if it is min_spacing after the last kept one."""
        kept = []
        last = float("-inf")
        for t in np.asarray(times, dtype=np.float64):
            if t - last >= self.params.min_spacing:
                kept.append(t)
                last = t
        return np.array(kept, dtype=np.float64)

    def phase_offsets(self) -> np.ndarray:
        """Candidate grid offsets, from -phase_range to +phase_range."""
        steps = int(round(self.params.phase_range / self.params.phase_step))
        return np.arange(-steps, steps + 1) * self.params.phase_step

    @staticmethod
    def _snap(times: np.ndarray, anchor: float, step: float) -> np.ndarray:
        q = np.floor((times - anchor) / step + 0.5)
        return anchor + q * step

    def find_phase(self, times: np.ndarray, bpm: int) -> float:
        """
        Grid offset (relative to the first onset) with least snapping error.

        Only the first ``phase_sample`` onsets are scored; the first offset
        reaching the minimum error wins.
        """
        half_beat = 60.0 / bpm / 2.0
        t0 = float(times[0])
        sample = times[: min(self.params.phase_sample, len(times))]

        offsets = self.phase_offsets()
        errors = np.array([
            np.sum(np.abs(sample - self._snap(sample, t0 + off, half_beat)))
            for off in offsets
        ])
        return float(offsets[int(np.argmin(errors))])

    def quantize(self, times: np.ndarray, bpm: int) -> np.ndarray:
        """
        Snap spaced onsets onto a half-beat grid.

        Collisions introduced by rounding are removed by re-running the
        spacing filter on the sorted snapped times.
        """
        times = np.asarray(times, dtype=np.float64)
        if len(times) == 0:
            return times
        if bpm <= 0:
            raise ValueError(f"bpm must be positive, got {bpm}")

        offset = self.find_phase(times, bpm)
        anchor = float(times[0]) + offset
        snapped = self._snap(times, anchor, 60.0 / bpm / 2.0)
        snapped = np.sort(np.maximum(snapped, 0.0))
        cleaned = self.filter_spacing(snapped)

        logger.debug(
            "Quantized %d onsets at %d BPM (offset %+.2fs), %d after cleanup",
            len(times), bpm, offset, len(cleaned),
        )
        return cleaned

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def assign_lanes(self, times: np.ndarray, rng: np.random.Generator) -> list[Note]:
        """Walk the lanes, stepping one lane or occasionally two."""
        lane_count = self.params.lane_count
        notes = []
        lane = 0
        for t in times:
            step = 2 if rng.random() < self.params.skip_probability else 1
            lane = (lane + step) % lane_count
            notes.append(Note(time=float(t), lane=lane))
        return notes

    @staticmethod
    def thin(notes: list[Note], keep: float, rng: np.random.Generator) -> list[Note]:
        """Keep each note independently with probability *keep*."""
        if keep >= 0.999:
            return notes
        return [n for n in notes if rng.random() <= keep]

    def synthesize(
        self,
        onsets: np.ndarray,
        bpm: Optional[int],
        difficulty: "Difficulty | str" = Difficulty.NORMAL,
        rng: Optional[np.random.Generator] = None,
    ) -> Chart:
        """
        Build a chart.

        Args:
            onsets: Onset times in seconds, increasing.
            bpm: Tempo estimate; None leaves onsets unquantized.
            difficulty: Controls thinning.
            rng: Random source. Defaults to the synthesizer's generator.

        Returns:
            Chart of unjudged notes ordered by time.
        """
        difficulty = Difficulty.parse(difficulty)
        rng = rng if rng is not None else self.rng

        times = self.filter_spacing(onsets)
        if bpm and len(times):
            times = self.quantize(times, bpm)

        notes = self.assign_lanes(times, rng)
        kept = self.thin(notes, difficulty.keep_probability, rng)
        logger.debug(
            "Synthesized %d notes (%d before %s thinning)",
            len(kept), len(notes), difficulty.value,
        )

        return Chart(
            notes=kept,
            bpm=bpm,
            difficulty=difficulty,
            lane_count=self.params.lane_count,
        )
