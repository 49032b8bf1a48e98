"""
End-to-end analysis pipeline.

Runs reduction, onset detection, tempo estimation and chart synthesis as
one batch. The batch can run on a worker thread and be cancelled
cooperatively between stages.
"""

import logging
import threading
from concurrent.futures import CancelledError, Executor, Future
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from beatlane.core.chart import Chart, ChartParams, ChartSynthesizer, Difficulty
from beatlane.core.onsets import OnsetDetector, OnsetParams
from beatlane.core.reducer import MonoSignal, SignalReducer
from beatlane.core.tempo import TempoEstimator, TempoParams
from beatlane.errors import AnalysisCancelled

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything the play session and the HUD need from analysis."""

    chart: Chart
    bpm: Optional[int]
    onsets: np.ndarray
    duration: float
    sample_rate: int

    def summary(self) -> str:
        text = f"{len(self.chart)} notes"
        if self.bpm is not None:
            text += f" / estimated BPM {self.bpm}"
        return text


class AnalysisJob:
    """Handle on an analysis running in an executor."""

    def __init__(self, future: Future, cancel_event: threading.Event):
        self.future = future
        self.cancel_event = cancel_event

    def cancel(self) -> None:
        """Ask the analysis to stop at the next stage boundary."""
        self.cancel_event.set()
        self.future.cancel()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> AnalysisResult:
        """
        Wait for the chart.

        Raises:
            AnalysisCancelled: The job was cancelled, whether before the
                worker picked it up or at a stage boundary.
        """
        try:
            return self.future.result(timeout=timeout)
        except CancelledError as exc:
            raise AnalysisCancelled("Analysis cancelled before it started") from exc


class ChartPipeline:
    """
    Audio to chart in one call.

    Example::

        pipeline = ChartPipeline(difficulty="hard", seed=7)
        result = pipeline.process_file("song.mp3")
        print(result.summary())
    """

    def __init__(
        self,
        difficulty: Union[Difficulty, str] = Difficulty.NORMAL,
        seed: Optional[int] = None,
        onset_params: Optional[OnsetParams] = None,
        tempo_params: Optional[TempoParams] = None,
        chart_params: Optional[ChartParams] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            difficulty: Chart difficulty.
            seed: Seed for lane assignment and thinning.
            onset_params: Onset detector framing.
            tempo_params: Tempo histogram ranges.
            chart_params: Chart synthesis parameters.
        """
        self.difficulty = Difficulty.parse(difficulty)
        self.seed = seed
        self.reducer = SignalReducer()
        self.detector = OnsetDetector(onset_params)
        self.estimator = TempoEstimator(tempo_params)
        self.chart_params = chart_params or ChartParams()

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Analysis cancelled before %s", stage)
            raise AnalysisCancelled(f"Analysis cancelled before {stage}")

    def run(
        self,
        signal: MonoSignal,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """Run detection, estimation and synthesis on a reduced signal."""
        self._check_cancel(cancel_event, "onset detection")
        onsets = self.detector.detect(signal.samples, signal.sample_rate)
        logger.info("Detected %d onsets in %.2fs of audio", len(onsets), signal.duration)

        self._check_cancel(cancel_event, "tempo estimation")
        bpm = self.estimator.estimate(onsets)
        if bpm is None:
            logger.info("Tempo inconclusive, chart will not be quantized")
        else:
            logger.info("Estimated tempo: %d BPM", bpm)

        self._check_cancel(cancel_event, "chart synthesis")
        synthesizer = ChartSynthesizer(self.chart_params, seed=self.seed)
        chart = synthesizer.synthesize(onsets, bpm, self.difficulty)
        logger.info("Chart ready: %d notes (%s)", len(chart), self.difficulty.value)

        return AnalysisResult(
            chart=chart,
            bpm=bpm,
            onsets=onsets,
            duration=signal.duration,
            sample_rate=signal.sample_rate,
        )

    def process(
        self,
        samples: np.ndarray,
        sample_rate: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """
        Analyze decoded PCM.

        Args:
            samples: Mono or ``(channels, n)`` PCM.
            sample_rate: Sample rate in Hz.
            cancel_event: Optional event checked between stages.

        Returns:
            AnalysisResult with the synthesized chart.

        Raises:
            InvalidAudioError: If the buffer or sample rate is malformed.
            AnalysisCancelled: If cancel_event is set before completion.
        """
        signal = self.reducer.reduce(samples, sample_rate)
        return self.run(signal, cancel_event)

    def process_file(
        self,
        audio_path: Union[str, Path],
        sr: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """Decode an audio file with librosa and analyze it."""
        self._check_cancel(cancel_event, "decoding")
        signal = self.reducer.load(audio_path, sr=sr)
        return self.run(signal, cancel_event)

    def submit(
        self,
        executor: Executor,
        samples: np.ndarray,
        sample_rate: int,
    ) -> AnalysisJob:
        """Run :meth:`process` on *executor* and return a cancellable job."""
        cancel_event = threading.Event()
        future = executor.submit(self.process, samples, sample_rate, cancel_event)
        return AnalysisJob(future, cancel_event)
