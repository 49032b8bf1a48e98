"""
Input reduction module.

Turns decoded PCM (mono or multi-channel) into the single mono buffer
the onset detector consumes, and rejects buffers that cannot be analyzed
before any stage of the pipeline runs.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np

from beatlane.errors import InvalidAudioError

logger = logging.getLogger(__name__)


@dataclass
class MonoSignal:
    """Container for a validated mono buffer."""

    samples: np.ndarray
    sample_rate: int
    duration: float

    @property
    def n_samples(self) -> int:
        """Total number of samples in the signal."""
        return len(self.samples)


class SignalReducer:
    """
    Downmixes and validates PCM buffers.

    Multi-channel input follows the librosa convention of channel-major
    arrays, shape ``(channels, n_samples)``.
    """

    @staticmethod
    def downmix(samples: np.ndarray) -> np.ndarray:
        """
        Average all channels into one.

        Args:
            samples: 1-D mono buffer or 2-D ``(channels, n)`` buffer.

        Returns:
            1-D float64 buffer.
        """
        y = np.asarray(samples, dtype=np.float64)
        if y.ndim == 2:
            if y.shape[0] == 0:
                raise InvalidAudioError("Sample buffer has no channels")
            return y.sum(axis=0) / y.shape[0]
        if y.ndim != 1:
            raise InvalidAudioError(
                f"Expected a 1-D or (channels, n) buffer, got {y.ndim} dimensions"
            )
        return y

    @staticmethod
    def validate(samples: np.ndarray, sample_rate: int) -> None:
        """
        Reject buffers the pipeline must not run on.

        Raises:
            InvalidAudioError: On an empty buffer, a non-finite sample,
                or a sample rate that is not a positive integer.
        """
        if isinstance(sample_rate, bool) or not isinstance(sample_rate, (int, float, np.number)):
            raise InvalidAudioError(f"Sample rate must be a number, got {sample_rate!r}")
        if not np.isfinite(sample_rate) or int(sample_rate) != sample_rate:
            raise InvalidAudioError(f"Sample rate must be a whole number of Hz, got {sample_rate}")
        if sample_rate <= 0:
            raise InvalidAudioError(f"Sample rate must be positive, got {sample_rate}")
        if len(samples) == 0:
            raise InvalidAudioError("Sample buffer is empty")
        if not np.all(np.isfinite(samples)):
            raise InvalidAudioError("Sample buffer contains NaN or infinite values")

    def reduce(self, samples: np.ndarray, sample_rate: int) -> MonoSignal:
        """
        Downmix and validate in one step.

        Args:
            samples: Decoded PCM, mono or channel-major.
            sample_rate: Sample rate in Hz.

        Returns:
            MonoSignal ready for onset detection.
        """
        mono = self.downmix(samples)
        self.validate(mono, sample_rate)
        sample_rate = int(sample_rate)
        return MonoSignal(
            samples=mono,
            sample_rate=sample_rate,
            duration=len(mono) / sample_rate,
        )

    def load(
        self,
        audio_path: Union[str, Path],
        sr: int | None = None,
    ) -> MonoSignal:
        """
        Decode an audio file with librosa and reduce it.

        Args:
            audio_path: Path to audio file (wav, mp3, flac).
            sr: Target sample rate. None preserves the file's rate.

        Returns:
            MonoSignal of the decoded file.
        """
        path = Path(audio_path)
        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        y, sr_out = librosa.load(path, sr=sr, mono=False)
        logger.debug("Decoded %s: shape=%s sr=%d", path, y.shape, sr_out)
        return self.reduce(y, int(sr_out))
