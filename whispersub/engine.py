"""Interface of the speech recognition engine driven by the segment stream."""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

import numpy as np

from .cancellation import CancellationToken
from .models import Segment

SegmentCallback = Callable[[Segment], None]
# A canonical WAV file path, WAV or raw 16-bit PCM bytes, or float32 samples in [-1, 1]
AudioInput = Union[str, bytes, np.ndarray]


class SpeechEngine(ABC):
    """Abstract base class for streaming speech recognition engines."""

    @abstractmethod
    def init_model(self, model_path: str, language_code: Optional[str]) -> None:
        """
        Loads the model and prepares decoding state for one language.

        Args:
            model_path: Path to a local model file.
            language_code: Language to decode, or None to auto-detect.

        Raises:
            Exception: Any loading failure; callers wrap it.
        """
        pass

    @abstractmethod
    def process(self, audio: AudioInput, cancel_token: CancellationToken,
                on_segment: SegmentCallback) -> None:
        """
        Recognizes speech in canonical audio, given as a file or in memory.

        Calls `on_segment` once per recognized utterance, in non-decreasing
        start-time order, as soon as each one is available. Returns early,
        without raising, once `cancel_token` is cancelled.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Releases the model and any decoding state."""
        pass
