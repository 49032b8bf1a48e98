"""Tests for hit judgment, scoring and the passive-miss sweep."""

import pytest

from beatlane.core.chart import Chart, Judgment, Note
from beatlane.game.judge import (
    RECENT_JUDGMENT_LIMIT,
    HitWindows,
    JudgmentEngine,
    ScoreState,
    ScoreTable,
)


def _engine(*notes):
    chart = Chart(notes=[Note(time=t, lane=lane) for t, lane in notes])
    return JudgmentEngine(chart)


# ---------------------------------------------------------------------------
# Windows and score table
# ---------------------------------------------------------------------------

class TestHitWindows:
    @pytest.mark.parametrize(
        "distance, expected",
        [
            (0.0, Judgment.PERFECT),
            (0.05, Judgment.PERFECT),
            (-0.07, Judgment.GREAT),
            (0.11, Judgment.GOOD),
            (0.13, None),
        ],
    )
    def test_classify(self, distance, expected):
        assert HitWindows().classify(distance) is expected


class TestScoreState:
    def test_accuracy_without_judgments(self):
        assert ScoreState().accuracy == 0.0

    def test_accuracy_weighting(self):
        state = ScoreState()
        state.counts.update({
            Judgment.PERFECT: 2,
            Judgment.GREAT: 1,
            Judgment.GOOD: 1,
            Judgment.MISS: 0,
        })
        assert state.accuracy == pytest.approx(77.5)

    def test_combo_bonus_uses_incremented_combo(self):
        state = ScoreState()
        table = ScoreTable()
        gains = [state.apply_judgment(Judgment.PERFECT, table) for _ in range(3)]
        assert gains == [1001, 1003, 1004]
        assert state.score == 3008
        assert state.combo == state.max_combo == 3

    def test_miss_resets_combo_only(self):
        state = ScoreState()
        table = ScoreTable()
        state.apply_judgment(Judgment.GREAT, table)
        state.apply_judgment(Judgment.GOOD, table)
        score = state.score
        assert state.apply_judgment(Judgment.MISS, table) == 0
        assert state.score == score
        assert state.combo == 0
        assert state.max_combo == 2
        assert state.total_judgments == 3


# ---------------------------------------------------------------------------
# Key presses
# ---------------------------------------------------------------------------

class TestKeyPress:
    def test_perfect_hit(self):
        engine = _engine((1.04, 0))
        event = engine.judge_key_press(lane=0, t=1.00)
        note = engine.chart.notes[0]

        assert event.judgment is Judgment.PERFECT
        assert note.hit and note.judged and note.result is Judgment.PERFECT
        assert engine.score_state.combo == 1
        assert engine.score_state.score == 1001
        assert event.score_gain == 1001
        assert event.note_time == 1.04

    def test_good_window_boundary_inclusive(self):
        engine = _engine((0.0, 0))
        assert engine.judge_key_press(0, 0.12).judgment is Judgment.GOOD

    def test_press_without_note_is_a_miss(self):
        engine = _engine((1.0, 0))
        engine.judge_key_press(0, 1.0)
        event = engine.judge_key_press(1, 1.0)

        assert event.judgment is Judgment.MISS
        assert event.note_time is None
        assert engine.score_state.combo == 0
        assert engine.score_state.counts[Judgment.MISS] == 1

    def test_press_outside_window_leaves_note_pending(self):
        engine = _engine((2.0, 0))
        event = engine.judge_key_press(0, 1.5)
        assert event.judgment is Judgment.MISS
        assert engine.chart.notes[0].is_pending

    def test_nearest_note_selected(self):
        engine = _engine((1.0, 0), (1.2, 0))
        engine.judge_key_press(0, 1.17)
        assert [n.hit for n in engine.chart] == [False, True]

    def test_tie_goes_to_earlier_note(self):
        engine = _engine((0.0, 0), (0.125, 0))
        event = engine.judge_key_press(0, 0.0625)
        assert event.note_time == 0.0
        assert event.judgment is Judgment.GREAT

    def test_judged_note_never_reselected(self):
        engine = _engine((1.0, 0))
        first = engine.judge_key_press(0, 1.0)
        second = engine.judge_key_press(0, 1.0)
        assert first.judgment is Judgment.PERFECT
        assert second.judgment is Judgment.MISS
        assert engine.chart.notes[0].result is Judgment.PERFECT

    def test_other_lanes_ignored(self):
        engine = _engine((1.0, 2))
        assert engine.judge_key_press(1, 1.0).judgment is Judgment.MISS
        assert engine.chart.notes[0].is_pending

    @pytest.mark.parametrize("lane", [-1, 4])
    def test_invalid_lane(self, lane):
        with pytest.raises(ValueError):
            _engine((1.0, 0)).judge_key_press(lane, 1.0)

    def test_score_never_decreases(self):
        engine = _engine(*[(0.5 * i, i % 4) for i in range(1, 21)])
        last = 0
        for i in range(1, 21):
            engine.judge_key_press(i % 4, 0.5 * i + (0.3 if i % 5 == 0 else 0.02))
            assert engine.score_state.score >= last
            last = engine.score_state.score


# ---------------------------------------------------------------------------
# Passive sweep
# ---------------------------------------------------------------------------

class TestPassiveSweep:
    def test_elapsed_note_is_missed(self):
        engine = _engine((0.5, 0), (1.00, 2))
        engine.judge_key_press(0, 0.5)
        misses = engine.passive_sweep(1.20)
        note = engine.chart.notes[1]

        assert len(misses) == 1
        assert note.judged and not note.hit and note.result is Judgment.MISS
        assert engine.score_state.combo == 0
        assert engine.score_state.counts[Judgment.MISS] == 1

    def test_note_inside_window_untouched(self):
        engine = _engine((1.0, 0))
        assert engine.passive_sweep(1.1) == []
        assert engine.chart.notes[0].is_pending

    def test_window_edge_still_hittable(self):
        engine = _engine((0.0, 0))
        assert engine.passive_sweep(0.12) == []
        assert engine.chart.notes[0].is_pending
        assert engine.judge_key_press(0, 0.12).judgment is Judgment.GOOD

    def test_just_past_window_edge_swept(self):
        engine = _engine((0.0, 0))
        assert len(engine.passive_sweep(0.125)) == 1

    def test_future_notes_untouched(self):
        engine = _engine((5.0, 0))
        assert engine.passive_sweep(1.0) == []
        assert engine.chart.notes[0].is_pending

    def test_hit_notes_not_swept(self):
        engine = _engine((1.0, 0))
        engine.judge_key_press(0, 1.0)
        assert engine.passive_sweep(10.0) == []
        assert engine.chart.notes[0].result is Judgment.PERFECT

    def test_sweep_is_not_repeated(self):
        engine = _engine((1.0, 0))
        engine.on_tick(2.0)
        engine.on_tick(3.0)
        assert engine.score_state.counts[Judgment.MISS] == 1

    def test_missed_note_cannot_be_hit(self):
        engine = _engine((1.0, 0))
        engine.on_tick(1.5)
        assert engine.judge_key_press(0, 1.0).judgment is Judgment.MISS
        assert engine.chart.notes[0].hit is False


def test_reset_restores_chart_and_score():
    engine = _engine((1.0, 0), (2.0, 1))
    engine.judge_key_press(0, 1.0)
    engine.on_tick(3.0)
    engine.reset()

    assert all(n.is_pending and n.result is None for n in engine.chart)
    assert engine.score_state.score == 0
    assert engine.score_state.total_judgments == 0
    assert engine.recent_judgments() == []


def test_recent_judgments_recorded():
    engine = _engine((1.0, 0))
    engine.judge_key_press(0, 1.0)
    engine.judge_key_press(3, 1.5)
    assert [e.judgment for e in engine.recent_judgments()] == [Judgment.PERFECT, Judgment.MISS]
    engine.clear_recent_judgments()
    assert engine.recent_judgments() == []


def test_recent_judgments_bounded():
    engine = _engine((1.0, 0))
    for i in range(RECENT_JUDGMENT_LIMIT + 10):
        engine.judge_key_press(1, 10.0 + i)
    recent = engine.recent_judgments()
    assert len(recent) == RECENT_JUDGMENT_LIMIT
    assert recent[-1].time == 10.0 + RECENT_JUDGMENT_LIMIT + 9
    assert engine.score_state.counts[Judgment.MISS] == RECENT_JUDGMENT_LIMIT + 10
