"""
Onset detection module.

Finds the moments where short-time energy rises sharply. The detector
works on fixed frames, keeps only rising energy, smooths it with a short
trailing average and picks local maxima above a global adaptive threshold.
"""

import logging
from dataclasses import dataclass, field

import librosa
import numpy as np
from scipy import signal as scipy_signal

from beatlane.core.reducer import SignalReducer

logger = logging.getLogger(__name__)


@dataclass
class OnsetParams:
    """Framing and peak-picking parameters."""

    window_size: int = 2048
    hop_size: int = 1024
    smoothing_frames: int = 4
    threshold_k: float = 1.0  # threshold = mean + k * std


@dataclass
class OnsetFeatures:
    """Onset times plus the per-frame signals they were picked from."""

    onset_times: np.ndarray
    peak_frames: np.ndarray
    energy: np.ndarray
    flux: np.ndarray       # rising energy, negative steps clamped to 0
    smoothed: np.ndarray
    threshold: float
    sample_rate: int
    hop_size: int
    window_size: int
    n_frames: int = field(init=False)

    def __post_init__(self):
        self.n_frames = len(self.energy)


class OnsetDetector:
    """
    Energy-flux onset detector.

    Frame count is ``floor((len - window) / hop)``; signals shorter than
    one window produce no frames and therefore no onsets.
    """

    def __init__(self, params: OnsetParams | None = None):
        """
        Initialize the detector.

        Args:
            params: Framing parameters. Defaults to 2048/1024 framing.
        """
        self.params = params or OnsetParams()
        if self.params.window_size <= 0 or self.params.hop_size <= 0:
            raise ValueError("window_size and hop_size must be positive")
        if self.params.smoothing_frames <= 0:
            raise ValueError("smoothing_frames must be positive")

    def frame_count(self, n_samples: int) -> int:
        """Number of analysis frames for a buffer of *n_samples*."""
        win = self.params.window_size
        hop = self.params.hop_size
        if n_samples < win:
            return 0
        return (n_samples - win) // hop

    # ------------------------------------------------------------------
    # Per-frame signals
    # ------------------------------------------------------------------

    def compute_energy(self, y: np.ndarray) -> np.ndarray:
        """Mean squared amplitude of each frame."""
        n_frames = self.frame_count(len(y))
        if n_frames == 0:
            return np.zeros(0, dtype=np.float64)

        frames = librosa.util.frame(
            np.ascontiguousarray(y),
            frame_length=self.params.window_size,
            hop_length=self.params.hop_size,
        )[:, :n_frames]
        return np.mean(frames ** 2, axis=0)

    @staticmethod
    def compute_flux(energy: np.ndarray) -> np.ndarray:
        """First difference of energy with falling steps clamped to zero."""
        flux = np.zeros_like(energy)
        if len(energy) > 1:
            flux[1:] = np.maximum(np.diff(energy), 0.0)
        return flux

    def smooth(self, flux: np.ndarray) -> np.ndarray:
        """
        Trailing moving average.

        The first frames average over however many values exist so far
        rather than the full window.
        """
        n = len(flux)
        m = self.params.smoothing_frames
        if n == 0:
            return np.zeros(0, dtype=np.float64)
        sums = np.convolve(flux, np.ones(m))[:n]
        counts = np.minimum(np.arange(1, n + 1), m)
        return sums / counts

    def compute_threshold(self, smoothed: np.ndarray) -> float:
        """Global threshold over the whole smoothed sequence."""
        if len(smoothed) == 0:
            return 0.0
        mean = float(np.mean(smoothed))
        std = float(np.std(smoothed)) or 1e-6
        return mean + self.params.threshold_k * std

    @staticmethod
    def pick_peaks(smoothed: np.ndarray, threshold: float) -> np.ndarray:
        """
        Strict local maxima above *threshold*.

        Frames within two of either end are never picked.
        """
        n = len(smoothed)
        if n < 5:
            return np.zeros(0, dtype=int)
        candidates = scipy_signal.argrelmax(smoothed, order=1)[0]
        keep = (candidates >= 2) & (candidates < n - 2)
        candidates = candidates[keep]
        return candidates[smoothed[candidates] > threshold]

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def analyze(self, mono: np.ndarray, sample_rate: int) -> OnsetFeatures:
        """
        Run the full detector and keep its intermediate signals.

        Args:
            mono: 1-D sample buffer.
            sample_rate: Sample rate in Hz.

        Returns:
            OnsetFeatures with onset times in seconds.
        """
        y = np.asarray(mono, dtype=np.float64)
        if y.ndim != 1:
            raise ValueError("OnsetDetector expects a mono (1-D) buffer")
        SignalReducer.validate(y, sample_rate)

        energy = self.compute_energy(y)
        flux = self.compute_flux(energy)
        smoothed = self.smooth(flux)
        threshold = self.compute_threshold(smoothed)
        peaks = self.pick_peaks(smoothed, threshold)

        hop = self.params.hop_size
        win = self.params.window_size
        onset_times = (peaks * hop + win / 2) / sample_rate

        logger.debug(
            "Onset detection: %d frames, threshold=%.6g, %d onsets",
            len(energy), threshold, len(onset_times),
        )

        return OnsetFeatures(
            onset_times=onset_times.astype(np.float64),
            peak_frames=peaks,
            energy=energy,
            flux=flux,
            smoothed=smoothed,
            threshold=threshold,
            sample_rate=int(sample_rate),
            hop_size=hop,
            window_size=win,
        )

    def detect(self, mono: np.ndarray, sample_rate: int) -> np.ndarray:
        """Onset times in seconds, strictly increasing."""
        return self.analyze(mono, sample_rate).onset_times
