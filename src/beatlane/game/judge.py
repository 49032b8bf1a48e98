"""
Hit judgment and scoring engine.

Matches key presses to the nearest pending note in the pressed lane,
classifies the timing error into a tier and keeps score and combo. Notes
whose window has closed without a press are swept as passive misses.

The engine owns no clock. Callers pass the current playback time to
``on_tick`` once per frame and with every press, from a single thread.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from beatlane.core.chart import Chart, Judgment, Note

logger = logging.getLogger(__name__)

# Older events are dropped once this many are held.
RECENT_JUDGMENT_LIMIT = 64


@dataclass(frozen=True)
class HitWindows:
    """Inclusive timing windows in seconds."""

    perfect: float = 0.05
    great: float = 0.09
    good: float = 0.12

    def classify(self, distance: float) -> Optional[Judgment]:
        """Tier for an absolute timing error, or None outside the good window."""
        d = abs(float(distance))
        if d <= self.perfect:
            return Judgment.PERFECT
        if d <= self.great:
            return Judgment.GREAT
        if d <= self.good:
            return Judgment.GOOD
        return None


@dataclass(frozen=True)
class ScoreTable:
    """Base points per tier plus the combo bonus factor."""

    perfect: int = 1000
    great: int = 600
    good: int = 300
    combo_factor: float = 1.5

    def base(self, judgment: Judgment) -> int:
        if judgment is Judgment.PERFECT:
            return self.perfect
        if judgment is Judgment.GREAT:
            return self.great
        if judgment is Judgment.GOOD:
            return self.good
        return 0


ACCURACY_WEIGHTS = {
    Judgment.PERFECT: 1.0,
    Judgment.GREAT: 0.7,
    Judgment.GOOD: 0.4,
    Judgment.MISS: 0.0,
}


def _empty_counts() -> dict[Judgment, int]:
    return {j: 0 for j in Judgment}


@dataclass
class ScoreState:
    """Running score, combo and per-tier counts for one session."""

    score: int = 0
    combo: int = 0
    max_combo: int = 0
    counts: dict[Judgment, int] = field(default_factory=_empty_counts)

    @property
    def total_judgments(self) -> int:
        return sum(self.counts.values())

    @property
    def accuracy(self) -> float:
        """Weighted hit percentage, 0 before the first judgment."""
        total = self.total_judgments
        if total == 0:
            return 0.0
        weighted = sum(ACCURACY_WEIGHTS[j] * n for j, n in self.counts.items())
        return weighted / total * 100.0

    def apply_judgment(self, judgment: Judgment, table: ScoreTable) -> int:
        """
        Record one judgment.

        Combo is incremented before the bonus is computed, so the first
        perfect of a run is worth ``1000 + floor(1 * 1.5)``.

        Returns:
            Points gained.
        """
        self.counts[judgment] += 1
        if judgment is Judgment.MISS:
            self.combo = 0
            return 0

        self.combo += 1
        if self.combo > self.max_combo:
            self.max_combo = self.combo
        gain = table.base(judgment) + math.floor(self.combo * table.combo_factor)
        self.score += gain
        return gain


@dataclass(frozen=True)
class JudgmentEvent:
    """One judgment as reported to the HUD."""

    time: float
    lane: int
    judgment: Judgment
    note_time: Optional[float] = None  # None for a press that matched nothing
    delta: Optional[float] = None      # press time minus note time
    score_gain: int = 0
    combo: int = 0


class JudgmentEngine:
    """Judges presses and elapsed notes against a chart."""

    def __init__(
        self,
        chart: Chart,
        windows: Optional[HitWindows] = None,
        score_table: Optional[ScoreTable] = None,
    ) -> None:
        self._chart = chart
        self._windows = windows or HitWindows()
        self._score_table = score_table or ScoreTable()
        self._score_state = ScoreState()
        self._recent: deque[JudgmentEvent] = deque(maxlen=RECENT_JUDGMENT_LIMIT)

    @property
    def chart(self) -> Chart:
        return self._chart

    @property
    def windows(self) -> HitWindows:
        return self._windows

    @property
    def score_state(self) -> ScoreState:
        return self._score_state

    def recent_judgments(self) -> list[JudgmentEvent]:
        """The last ``RECENT_JUDGMENT_LIMIT`` events, oldest first."""
        return list(self._recent)

    def clear_recent_judgments(self) -> None:
        self._recent.clear()

    def reset(self) -> None:
        """Start a fresh session on the same chart."""
        self._chart.reset()
        self._score_state = ScoreState()
        self._recent.clear()

    def _record(
        self,
        judgment: Judgment,
        time: float,
        lane: int,
        note: Optional[Note] = None,
    ) -> JudgmentEvent:
        gain = self._score_state.apply_judgment(judgment, self._score_table)
        event = JudgmentEvent(
            time=time,
            lane=lane,
            judgment=judgment,
            note_time=note.time if note is not None else None,
            delta=time - note.time if note is not None else None,
            score_gain=gain,
            combo=self._score_state.combo,
        )
        self._recent.append(event)
        return event

    def nearest_pending_note(self, lane: int, t: float) -> Optional[Note]:
        """Closest pending note in *lane*; the earlier note wins a tie."""
        best = None
        best_distance = math.inf
        for note in self._chart.notes:
            if note.lane != lane or not note.is_pending:
                continue
            distance = abs(t - note.time)
            if distance < best_distance:
                best, best_distance = note, distance
        return best

    def judge_key_press(self, lane: int, t: float) -> JudgmentEvent:
        """
        Judge one discrete press.

        A press with no pending note within the good window is still a
        miss: it is counted and breaks the combo.
        """
        lane = int(lane)
        t = float(t)
        if not 0 <= lane < self._chart.lane_count:
            raise ValueError(f"Lane {lane} out of range 0..{self._chart.lane_count - 1}")

        note = self.nearest_pending_note(lane, t)
        judgment = self._windows.classify(t - note.time) if note is not None else None
        if judgment is None:
            return self._record(Judgment.MISS, t, lane)

        note.hit = True
        note.judged = True
        note.result = judgment
        return self._record(judgment, t, lane, note)

    def passive_sweep(self, t: float) -> list[JudgmentEvent]:
        """
        Mark every note whose good window has fully elapsed as missed.

        Notes still in the future relative to ``t`` are never touched.
        """
        t = float(t)
        good = self._windows.good
        misses = []
        for note in self._chart.notes:
            if not note.is_pending or note.time > t + good:
                continue
            if t - note.time > good:
                note.judged = True
                note.result = Judgment.MISS
                misses.append(self._record(Judgment.MISS, t, note.lane, note))

        if misses:
            logger.debug("Passive sweep at %.3fs: %d missed", t, len(misses))
        return misses

    def on_tick(self, current_time: float) -> list[JudgmentEvent]:
        """Per-frame hook; run before anything is drawn for this frame."""
        return self.passive_sweep(current_time)
