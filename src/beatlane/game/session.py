"""
Play session: the state one round of play needs, in one object.

A session wraps a chart and its judgment engine with transport state
(idle, playing, paused, ended). The host loop owns the clock and the
frame cadence; it calls ``tick`` once per frame with the playback time
and ``press`` / ``press_key`` on each discrete key or pointer press.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from beatlane.core.chart import Chart, Difficulty, Note
from beatlane.game.judge import HitWindows, JudgmentEngine, JudgmentEvent, ScoreState, ScoreTable

logger = logging.getLogger(__name__)

DEFAULT_KEYS = ("KeyD", "KeyF", "KeyJ", "KeyK")

# Upper bound on how far past the hit line a note is drawn. Pending notes
# are also cut off once their good window has closed.
VISIBLE_LOOKBACK_SECONDS = 0.5


class SessionState(str, Enum):
    """Transport state of a play session."""

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class PlaySession:
    """One round of play on a chart: transport, input mapping and judgment."""

    def __init__(
        self,
        chart: Chart,
        difficulty: Difficulty | str | None = None,
        windows: Optional[HitWindows] = None,
        score_table: Optional[ScoreTable] = None,
        keys: tuple[str, ...] = DEFAULT_KEYS,
    ) -> None:
        self._chart = chart
        self._difficulty = Difficulty.parse(difficulty) if difficulty is not None else chart.difficulty
        self._engine = JudgmentEngine(chart, windows=windows, score_table=score_table)
        self._key_lanes = {code: lane for lane, code in enumerate(keys)}
        self._state = SessionState.IDLE

    @property
    def chart(self) -> Chart:
        return self._chart

    @property
    def engine(self) -> JudgmentEngine:
        return self._engine

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def difficulty(self) -> Difficulty:
        return self._difficulty

    @property
    def score_state(self) -> ScoreState:
        return self._engine.score_state

    @property
    def accuracy(self) -> float:
        return self._engine.score_state.accuracy

    @property
    def started(self) -> bool:
        return self._state is not SessionState.IDLE

    @property
    def playing(self) -> bool:
        return self._state is SessionState.PLAYING

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Reset notes and score, then begin playing."""
        self._engine.reset()
        self._state = SessionState.PLAYING
        logger.info("Session started: %d notes, %s", len(self._chart), self._difficulty.value)

    def restart(self) -> None:
        if not self.started:
            logger.warning("restart() ignored: session has not started")
            return
        self.start()

    def pause(self) -> None:
        if self._state is SessionState.PLAYING:
            self._state = SessionState.PAUSED

    def resume(self) -> None:
        if self._state is SessionState.PAUSED:
            self._state = SessionState.PLAYING

    def toggle_pause(self) -> None:
        if self._state is SessionState.PLAYING:
            self.pause()
        else:
            self.resume()

    # ------------------------------------------------------------------
    # Per-frame and input hooks
    # ------------------------------------------------------------------

    def tick(self, current_time: float, ended: bool = False) -> list[JudgmentEvent]:
        """
        Advance to *current_time*.

        Args:
            current_time: Playback position in seconds.
            ended: True once the audio has finished; the session moves to
                ENDED after this last sweep.

        Returns:
            Passive misses produced by this tick.
        """
        if self._state is not SessionState.PLAYING:
            return []
        misses = self._engine.on_tick(current_time)
        if ended:
            self._state = SessionState.ENDED
            score = self.score_state
            logger.info(
                "Session ended: score=%d max_combo=%d accuracy=%.2f%%",
                score.score, score.max_combo, score.accuracy,
            )
        return misses

    def press(self, lane: int, current_time: float, repeat: bool = False) -> Optional[JudgmentEvent]:
        """Judge a press while playing. Auto-repeat presses are ignored."""
        if repeat or self._state is not SessionState.PLAYING:
            return None
        return self._engine.judge_key_press(lane, current_time)

    def lane_for_key(self, code: str) -> Optional[int]:
        return self._key_lanes.get(code)

    def press_key(self, code: str, current_time: float, repeat: bool = False) -> Optional[JudgmentEvent]:
        lane = self.lane_for_key(code)
        if lane is None:
            return None
        return self.press(lane, current_time, repeat=repeat)

    def visible_notes(self, current_time: float) -> list[Note]:
        """
        Pending notes between just past the hit line and the lead time ahead.

        A note whose good window has closed is never returned, whether or
        not a sweep has run for *current_time* yet.
        """
        lead = self._difficulty.lead_time
        lookback = min(VISIBLE_LOOKBACK_SECONDS, self._engine.windows.good)
        return [
            n for n in self._chart.notes
            if n.is_pending and -lookback <= n.time - current_time <= lead
        ]
