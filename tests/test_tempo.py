"""Tests for histogram tempo estimation."""

import numpy as np
import pytest

from beatlane.core.onsets import OnsetDetector
from beatlane.core.tempo import TempoEstimator, TempoParams, round_half_up


@pytest.fixture
def estimator():
    return TempoEstimator()


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


class TestInconclusive:
    def test_fewer_than_four_onsets(self, estimator):
        assert estimator.estimate(np.array([0.5, 1.0, 1.5])) is None

    def test_no_onsets(self, estimator):
        assert estimator.estimate(np.array([])) is None

    def test_intervals_too_short(self, estimator):
        onsets = np.arange(10) * 0.1
        assert estimator.estimate(onsets) is None

    def test_intervals_too_long(self, estimator):
        onsets = np.arange(6) * 2.0
        assert estimator.estimate(onsets) is None

    def test_interval_bounds_are_exclusive(self, estimator):
        assert len(estimator.plausible_intervals(np.array([0.0, 1.5, 3.0]))) == 0


class TestVotes:
    def test_steady_pulse_votes(self, estimator):
        onsets = np.arange(8) * 0.5
        votes = estimator.votes(onsets)
        # 0.5s votes for 120, doubled for 60; halved (240) is out of range
        assert dict(votes) == {120: 7, 60: 7}

    def test_first_voted_bpm_wins_tie(self, estimator):
        assert estimator.estimate(np.arange(8) * 0.5) == 120

    def test_tie_between_intervals_goes_to_first(self, estimator):
        # 0.5s -> 120/60, 0.6s -> 100/200; all four get two votes
        assert estimator.estimate(np.array([0.0, 0.5, 1.0, 1.6, 2.2])) == 120
        assert estimator.estimate(np.array([0.0, 0.6, 1.2, 1.7, 2.2])) == 100

    def test_majority_wins(self, estimator):
        onsets = np.cumsum([0.0, 0.4, 0.4, 0.4, 0.4, 0.7])
        assert estimator.estimate(onsets) == 150

    def test_custom_bpm_range(self):
        estimator = TempoEstimator(TempoParams(min_bpm=100, max_bpm=140))
        assert estimator.estimate(np.arange(8) * 0.5) == 120


def test_estimate_always_in_range(estimator):
    rng = np.random.default_rng(3)
    for _ in range(50):
        onsets = np.cumsum(rng.uniform(0.05, 2.0, size=20))
        bpm = estimator.estimate(onsets)
        assert bpm is None or (isinstance(bpm, int) and 60 <= bpm <= 200)


def test_click_track_tempo(estimator, click_track):
    y, sr, _ = click_track
    onsets = OnsetDetector().detect(y, sr)
    # 11 hops of 1024 samples at 22050 Hz is 0.5108s, about 117.45 BPM
    assert estimator.estimate(onsets) == 117
