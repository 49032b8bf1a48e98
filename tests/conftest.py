"""Shared fixtures: synthetic signals aligned to the 1024-sample hop grid."""

import numpy as np
import pytest

TEST_SR = 22050
HOP = 1024

# Clicks start every 11 hops, so every click sits at the same position
# relative to the analysis frames.
CLICK_SPACING_SAMPLES = 11 * HOP
FIRST_CLICK_SAMPLE = 5 * HOP
N_CLICKS = 16


def make_click(sr: int = TEST_SR) -> np.ndarray:
    """A 440 Hz tone with a 0.15s linear attack and a fast exponential decay."""
    attack = int(0.15 * sr)
    total = int(0.3 * sr)
    n = np.arange(total)
    env = np.where(
        n < attack,
        n / attack,
        np.exp(-(n - attack) / (0.03 * sr)),
    )
    return (0.5 * env * np.sin(2 * np.pi * 440.0 * n / sr)).astype(np.float32)


def make_click_track(n_clicks: int = N_CLICKS, sr: int = TEST_SR):
    click = make_click(sr)
    length = FIRST_CLICK_SAMPLE + (n_clicks + 1) * CLICK_SPACING_SAMPLES
    y = np.zeros(length, dtype=np.float32)
    starts = []
    for k in range(n_clicks):
        s = FIRST_CLICK_SAMPLE + k * CLICK_SPACING_SAMPLES
        y[s:s + len(click)] += click
        starts.append(s / sr)
    return y, sr, np.array(starts)


@pytest.fixture
def click_track():
    """(samples, sample_rate, click start times) for 16 evenly spaced clicks."""
    return make_click_track()


@pytest.fixture
def silence():
    return np.zeros(3 * TEST_SR, dtype=np.float32), TEST_SR
