import io
import wave

import numpy as np
import pytest

whisper = pytest.importorskip("whisper")

from whispersub.cancellation import CancellationToken  # noqa: E402
from whispersub.whisper_engine import WhisperEngine, decode_pcm16  # noqa: E402

SAMPLE_RATE = whisper.audio.SAMPLE_RATE


class FakeModel:
    """Returns one segment per window and records the prompts it was given."""

    def __init__(self):
        self.calls = []

    def transcribe(self, audio, **kwargs):
        self.calls.append((len(audio), kwargs))
        index = len(self.calls)
        return {
            'text': f" window {index}",
            'segments': [{'start': 0.5, 'end': 1.5, 'text': f" window {index}"}],
        }


@pytest.fixture
def engine(monkeypatch):
    model = FakeModel()
    monkeypatch.setattr(whisper, "load_model", lambda path, device: model)
    monkeypatch.setattr(whisper, "load_audio", lambda path: np.zeros(SAMPLE_RATE * 25, dtype=np.float32))
    engine = WhisperEngine(device="cpu", fp16=True, window_seconds=10.0)
    engine.init_model("base.pt", "en")
    return engine, model


def test_segments_are_shifted_to_absolute_time(engine):
    engine, model = engine
    received = []
    engine.process("audio.wav", CancellationToken(), received.append)

    assert [(s.start_time, s.end_time) for s in received] == [(0.5, 1.5), (10.5, 11.5), (20.5, 21.5)]
    assert [n for n, _ in model.calls] == [SAMPLE_RATE * 10, SAMPLE_RATE * 10, SAMPLE_RATE * 5]
    assert model.calls[0][1]['initial_prompt'] is None
    assert model.calls[1][1]['initial_prompt'] == "window 1"
    assert all(kwargs['language'] == "en" and kwargs['fp16'] is False for _, kwargs in model.calls)


def test_cancellation_between_windows(engine):
    engine, model = engine
    token = CancellationToken()
    received = []

    def on_segment(segment):
        received.append(segment)
        token.cancel()

    engine.process("audio.wav", token, on_segment)
    assert len(received) == 1
    assert len(model.calls) == 1


def test_close_drops_model(engine):
    engine, _ = engine
    engine.close()
    with pytest.raises(RuntimeError):
        engine.process("audio.wav", CancellationToken(), lambda s: None)


def test_invalid_device():
    with pytest.raises(ValueError):
        WhisperEngine(device="tpu")


def wav_bytes(samples, rate=SAMPLE_RATE, channels=1):
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(np.asarray(samples, dtype=np.int16).tobytes())
    return buffer.getvalue()


def test_raw_pcm_bytes_are_scaled():
    samples = decode_pcm16(np.array([0, 16384, -32768], dtype=np.int16).tobytes())
    assert samples.dtype == np.float32
    assert samples.tolist() == [0.0, 0.5, -1.0]


def test_wav_bytes_are_decoded():
    assert decode_pcm16(wav_bytes([0, -16384])).tolist() == [0.0, -0.5]


@pytest.mark.parametrize("data", [b"\x00\x01\x02", wav_bytes([0, 0], rate=8000), wav_bytes([0, 0], channels=2)])
def test_unusable_pcm_is_rejected(data):
    with pytest.raises(ValueError):
        decode_pcm16(data)


def test_in_memory_audio_skips_file_loading(engine, monkeypatch):
    engine, model = engine

    def no_files(path):
        raise AssertionError("load_audio must not be called for in-memory audio")

    monkeypatch.setattr(whisper, "load_audio", no_files)
    received = []
    engine.process(np.zeros(SAMPLE_RATE * 15, dtype=np.int16).tobytes(), CancellationToken(), received.append)
    engine.process(np.zeros(SAMPLE_RATE * 5, dtype=np.float32), CancellationToken(), received.append)

    assert [n for n, _ in model.calls] == [SAMPLE_RATE * 10, SAMPLE_RATE * 5, SAMPLE_RATE * 5]
    assert [s.start_time for s in received] == [0.5, 10.5, 0.5]
