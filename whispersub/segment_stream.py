"""Drives a speech engine over one audio file and pushes its segments to listeners."""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import numpy as np

from .cancellation import CancellationToken
from .engine import AudioInput, SpeechEngine, SegmentCallback
from .exceptions import (
    EngineInitializationError, OperationCancelledError, TranscriptionError, WhisperSubError
)
from .models import Language, Segment

logger = logging.getLogger(__name__)


class SegmentStreamConsumer:
    """
    Owns a speech engine for the duration of one file.

    Usage per file: `initialize()` once, then `process()` once. The engine
    created by `initialize()` is closed when `process()` finishes, raises or
    is cancelled, so each file starts from a fresh engine.
    """

    def __init__(self, engine_factory: Callable[[], SpeechEngine]):
        self.engine_factory = engine_factory
        self._engine: Optional[SpeechEngine] = None
        self._listeners: List[SegmentCallback] = []
        self._listeners_lock = threading.Lock()
        self._last_start: Optional[float] = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @contextmanager
    def subscribe(self, listener: SegmentCallback) -> Iterator[None]:
        """Registers `listener` for new segments until the block exits."""
        with self._listeners_lock:
            self._listeners.append(listener)
        try:
            yield
        finally:
            with self._listeners_lock:
                self._listeners.remove(listener)

    def initialize(self, model_path: str, language: Language) -> None:
        """
        Creates the engine and loads the model for `language`.

        Raises:
            RuntimeError: If the consumer already holds an engine.
            EngineInitializationError: If the model file is missing or fails to load.
        """
        if self._engine is not None:
            raise RuntimeError("initialize() was already called for this file.")
        if not model_path or not os.path.isfile(model_path):
            raise EngineInitializationError(f"Model file not found: {model_path}")

        logger.info(f"Initializing speech engine with '{model_path}' (language: {language.label})")
        engine = self.engine_factory()
        try:
            engine.init_model(model_path, language.engine_code)
        except Exception as e:
            logger.error(f"Failed to load model '{model_path}': {e}", exc_info=True)
            self._close_engine(engine)
            raise EngineInitializationError(f"Failed to load model '{model_path}': {e}") from e
        self._engine = engine
        self._last_start = None

    def process(self, audio: AudioInput, cancel_token: CancellationToken) -> None:
        """
        Runs recognition and forwards each segment to the listeners.

        `audio` is a canonical WAV path, PCM bytes or a float32 sample array.
        Segments that arrive after cancellation are dropped. Already
        delivered segments stay delivered.

        Raises:
            RuntimeError: If `initialize()` was not called first.
            TranscriptionError: If the audio is missing/empty or the engine fails.
            OperationCancelledError: If `cancel_token` was cancelled.
        """
        engine = self._engine
        if engine is None:
            raise RuntimeError("initialize() must be called before process().")

        source = _describe(audio)
        try:
            if _is_empty(audio):
                raise TranscriptionError(f"Audio missing or empty: {source}")

            def forward(segment: Segment) -> None:
                if cancel_token.is_cancelled:
                    return
                self._publish(segment)

            logger.info(f"Starting recognition for: {source}")
            try:
                engine.process(audio, cancel_token, forward)
            except WhisperSubError:
                raise
            except Exception as e:
                logger.error(f"Speech engine failed on {source}: {e}", exc_info=True)
                raise TranscriptionError(f"Recognition failed for {source}: {e}") from e

            if cancel_token.is_cancelled:
                raise OperationCancelledError(f"Recognition of {source} was cancelled")
            logger.info(f"Recognition finished for: {source}")
        finally:
            self.release()

    def release(self) -> None:
        """Closes the engine if one is held. Safe to call more than once."""
        engine, self._engine = self._engine, None
        if engine is not None:
            self._close_engine(engine)

    def _publish(self, segment: Segment) -> None:
        if self._last_start is not None and segment.start_time < self._last_start:
            logger.warning(
                f"Segment starting at {segment.start_time:.3f}s arrived after one starting at "
                f"{self._last_start:.3f}s"
            )
        self._last_start = segment.start_time
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(segment)

    def _close_engine(self, engine: SpeechEngine) -> None:
        try:
            engine.close()
        except Exception as e:
            logger.warning(f"Error while releasing speech engine: {e}", exc_info=True)


def _describe(audio: AudioInput) -> str:
    if isinstance(audio, str):
        return audio
    if isinstance(audio, (bytes, bytearray, memoryview)):
        return f"<{len(audio)} bytes of audio>"
    return f"<{np.size(audio)} audio samples>"


def _is_empty(audio: AudioInput) -> bool:
    if isinstance(audio, str):
        return not os.path.isfile(audio) or os.path.getsize(audio) == 0
    if isinstance(audio, (bytes, bytearray, memoryview)):
        return len(audio) == 0
    return np.size(audio) == 0
