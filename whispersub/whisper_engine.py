"""Streaming speech recognition using OpenAI's Whisper model."""

import io
import logging
import wave
from typing import Optional

import numpy as np
import torch
import whisper

from .cancellation import CancellationToken
from .engine import AudioInput, SpeechEngine, SegmentCallback
from .models import Segment

logger = logging.getLogger(__name__)

# Whisper conditions on at most this many characters of earlier text.
_PROMPT_TAIL_CHARS = 200


def decode_pcm16(data: bytes, sample_rate: int = whisper.audio.SAMPLE_RATE) -> np.ndarray:
    """
    Turns 16-bit mono PCM into float32 samples in [-1, 1].

    Accepts either a complete WAV file or headerless little-endian samples.

    Raises:
        ValueError: If the WAV is not 16-bit mono at `sample_rate`, or the
                    raw data does not hold whole samples.
    """
    if data[:4] == b"RIFF":
        try:
            with wave.open(io.BytesIO(data), 'rb') as wav:
                if wav.getnchannels() != 1 or wav.getsampwidth() != 2 or wav.getframerate() != sample_rate:
                    raise ValueError(
                        f"Expected 16-bit mono WAV at {sample_rate} Hz, got {wav.getsampwidth() * 8}-bit "
                        f"{wav.getnchannels()}-channel at {wav.getframerate()} Hz"
                    )
                data = wav.readframes(wav.getnframes())
        except wave.Error as e:
            raise ValueError(f"Unreadable WAV data: {e}") from e
    if len(data) % 2:
        raise ValueError("PCM data length is not a whole number of 16-bit samples")
    return np.frombuffer(data, np.int16).flatten().astype(np.float32) / 32768.0


def load_samples(audio: AudioInput) -> np.ndarray:
    """Loads audio from a file path, PCM bytes or an existing sample array."""
    if isinstance(audio, str):
        return whisper.load_audio(audio)
    if isinstance(audio, (bytes, bytearray, memoryview)):
        return decode_pcm16(bytes(audio))
    return np.asarray(audio, dtype=np.float32).flatten()


class WhisperEngine(SpeechEngine):
    """
    Runs Whisper over fixed-size windows of audio and emits segments per window.

    openai-whisper returns all segments of a `transcribe` call at once, so the
    audio is fed in `window_seconds` slices. Each slice's segments are shifted
    to absolute time and handed out before the next slice is decoded, and the
    previous slice's text is passed as the prompt to keep context.
    """

    def __init__(self, device: str = "cuda", fp16: bool = True, window_seconds: float = 30.0):
        """
        Args:
            device: The device to run the model on ("cuda" or "cpu").
            fp16: Whether to use float16 precision (CUDA only).
            window_seconds: Length of the audio slices fed to the model.

        Raises:
            ValueError: If the specified device or window length is invalid.
        """
        if device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA device requested but not available. Falling back to CPU.")
            device = "cpu"
        elif device not in ["cuda", "cpu"]:
            raise ValueError(f"Invalid device specified: {device}. Choose 'cuda' or 'cpu'.")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")

        self.device = device
        self.fp16 = fp16 and device == "cuda"
        self.window_seconds = window_seconds
        self.model = None
        self.language_code: Optional[str] = None

    def init_model(self, model_path: str, language_code: Optional[str]) -> None:
        logger.info(f"Loading Whisper model '{model_path}' on device '{self.device}' (FP16: {self.fp16})")
        self.model = whisper.load_model(model_path, device=self.device)
        self.language_code = language_code

    def process(self, audio: AudioInput, cancel_token: CancellationToken,
                on_segment: SegmentCallback) -> None:
        if self.model is None:
            raise RuntimeError("init_model() must be called before process().")

        audio = load_samples(audio)
        window = max(1, int(self.window_seconds * whisper.audio.SAMPLE_RATE))
        prompt = None
        logger.debug(f"Decoding {len(audio) / whisper.audio.SAMPLE_RATE:.1f}s of audio in {self.window_seconds}s windows")

        for offset in range(0, len(audio), window):
            if cancel_token.is_cancelled:
                return
            offset_seconds = offset / whisper.audio.SAMPLE_RATE
            result = self.model.transcribe(
                audio[offset:offset + window],
                language=self.language_code,
                fp16=self.fp16,
                initial_prompt=prompt,
                verbose=None,  # no console output or progress bar from whisper
            )
            for seg_data in result.get('segments', []):
                if cancel_token.is_cancelled:
                    return
                on_segment(Segment(
                    start_time=offset_seconds + float(seg_data['start']),
                    end_time=offset_seconds + float(seg_data['end']),
                    text=seg_data['text'],
                ))
            text = (result.get('text') or '').strip()
            prompt = text[-_PROMPT_TAIL_CHARS:] or None

    def close(self) -> None:
        self.model = None
        if self.device == "cuda":
            torch.cuda.empty_cache()
