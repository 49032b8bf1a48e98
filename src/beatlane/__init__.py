"""Audio-to-chart analysis and hit judgment for a four-lane rhythm game."""

from beatlane.core.reducer import SignalReducer
from beatlane.core.onsets import OnsetDetector
from beatlane.core.tempo import TempoEstimator
from beatlane.core.chart import Chart, ChartSynthesizer, Difficulty, Judgment, Note
from beatlane.game.judge import JudgmentEngine
from beatlane.game.session import PlaySession
from beatlane.pipeline import ChartPipeline

__version__ = "0.1.0"
__all__ = [
    "SignalReducer",
    "OnsetDetector",
    "TempoEstimator",
    "Chart",
    "ChartSynthesizer",
    "Difficulty",
    "Judgment",
    "Note",
    "JudgmentEngine",
    "PlaySession",
    "ChartPipeline",
]
