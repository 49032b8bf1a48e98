"""Core audio analysis modules."""

from beatlane.core.reducer import SignalReducer
from beatlane.core.onsets import OnsetDetector
from beatlane.core.tempo import TempoEstimator
from beatlane.core.chart import ChartSynthesizer

__all__ = ["SignalReducer", "OnsetDetector", "TempoEstimator", "ChartSynthesizer"]
