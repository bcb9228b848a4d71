"""Shared fakes for the WhisperSub test suite."""

import os

import pytest

from whispersub.engine import SpeechEngine
from whispersub.exceptions import ModelUnavailableError
from whispersub.models import Language, ModelDescriptor, Segment

CANCEL = "cancel"
FAIL = "fail"


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEngine(SpeechEngine):
    """
    Replays a script of steps: a Segment is emitted, a number advances the
    clock, CANCEL cancels the token and FAIL raises.
    """

    def __init__(self, script=(), clock=None, load_error=None, registry=None):
        self.script = list(script)
        self.clock = clock
        self.load_error = load_error
        self.loaded = None
        self.closed = False
        self.audio = None
        if registry is not None:
            registry.append(self)

    def init_model(self, model_path, language_code):
        if self.load_error is not None:
            raise self.load_error
        self.loaded = (model_path, language_code)

    def process(self, audio, cancel_token, on_segment):
        self.audio = audio
        for step in self.script:
            if cancel_token.is_cancelled:
                return
            if isinstance(step, Segment):
                on_segment(step)
            elif step == CANCEL:
                cancel_token.cancel()
            elif step == FAIL:
                raise ValueError("decoder exploded")
            else:
                self.clock.advance(step)

    def close(self):
        self.closed = True


class FakeTranscoder:
    """Writes a small placeholder WAV per call, or returns None for failing inputs."""

    def __init__(self, temp_dir, failing=(), clock=None, duration=0.0):
        self.temp_dir = temp_dir
        self.failing = set(failing)
        self.clock = clock
        self.duration = duration
        self.calls = []

    def convert(self, input_path, cancel_token=None):
        self.calls.append(input_path)
        if self.clock is not None:
            self.clock.advance(self.duration)
        if os.path.basename(input_path) in self.failing:
            return None
        audio_path = os.path.join(self.temp_dir, f"{len(self.calls)}.wav")
        with open(audio_path, "wb") as f:
            f.write(b"RIFF0000WAVE")
        return audio_path


class FakeCatalog:
    def __init__(self, descriptors):
        self.descriptors = descriptors
        self.lookups = 0

    def list_models(self):
        self.lookups += 1
        return list(self.descriptors)

    def find(self, reference):
        self.lookups += 1
        for descriptor in self.descriptors:
            if reference in (descriptor.name, os.path.basename(descriptor.path)):
                return descriptor
        return None


class FakeDownloader:
    """Writes the model file in steps; `fail=True` raises instead."""

    def __init__(self, fail=False, write_file=True):
        self.fail = fail
        self.write_file = write_file
        self.downloaded = []

    def download(self, descriptor, cancel_token=None):
        self.downloaded.append(descriptor.name)
        yield 0.0
        if self.fail:
            raise ModelUnavailableError(f"Could not download model '{descriptor.name}'")
        yield 50.0
        if self.write_file:
            with open(descriptor.path, "wb") as f:
                f.write(b"weights")
        descriptor.refresh()
        yield 100.0


@pytest.fixture
def english():
    return Language(label="English", code="en")


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "models" / "base.bin"
    path.parent.mkdir()
    path.write_bytes(b"weights")
    return str(path)


@pytest.fixture
def make_descriptor(tmp_path):
    def _make(name, present=False):
        models_dir = tmp_path / "catalog"
        models_dir.mkdir(exist_ok=True)
        path = models_dir / f"{name}.pt"
        if present:
            path.write_bytes(b"weights")
        descriptor = ModelDescriptor(name=name, url=f"https://example.invalid/{name}.pt", path=str(path))
        descriptor.refresh()
        return descriptor
    return _make
