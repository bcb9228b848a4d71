import os

import ffmpeg
import pytest

from whispersub.cancellation import CancellationToken
from whispersub.transcoder import AudioTranscoder


class FakeStream:
    """Stands in for the ffmpeg-python node chain input().output().overwrite_output().run()."""

    def __init__(self, log, produce):
        self.log = log
        self.produce = produce

    def output(self, path, **kwargs):
        self.path = path
        self.log.append((path, kwargs))
        return self

    def overwrite_output(self):
        return self

    def run(self, **kwargs):
        self.produce(self.path)


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    log = []
    state = {'produce': lambda path: open(path, 'wb').write(b"RIFF0000WAVE")}
    monkeypatch.setattr(ffmpeg, "input", lambda path: FakeStream(log, state['produce']))
    return log, state


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "talk.mp4"
    path.write_bytes(b"video")
    return str(path)


def test_convert_writes_mono_pcm(tmp_path, source, fake_ffmpeg):
    log, _ = fake_ffmpeg
    transcoder = AudioTranscoder(str(tmp_path / "temp"), sample_rate=16000)

    audio_path = transcoder.convert(source)

    assert os.path.getsize(audio_path) > 0
    assert os.path.dirname(audio_path) == str(tmp_path / "temp")
    assert log[0][1] == {'acodec': 'pcm_s16le', 'ar': 16000, 'ac': 1}


def test_each_call_produces_a_fresh_file(tmp_path, source, fake_ffmpeg):
    transcoder = AudioTranscoder(str(tmp_path / "temp"))
    first = transcoder.convert(source)
    second = transcoder.convert(source)
    assert first != second
    assert os.path.exists(first) and os.path.exists(second)


def test_missing_input_returns_none(tmp_path, fake_ffmpeg):
    transcoder = AudioTranscoder(str(tmp_path / "temp"))
    assert transcoder.convert(str(tmp_path / "absent.mp4")) is None


def test_ffmpeg_error_returns_none(tmp_path, source, fake_ffmpeg):
    _, state = fake_ffmpeg

    def fail(path):
        open(path, 'wb').write(b"partial")
        raise ffmpeg.Error('ffmpeg', b'', b'Invalid data found when processing input')

    state['produce'] = fail
    temp_dir = tmp_path / "temp"
    assert AudioTranscoder(str(temp_dir)).convert(source) is None
    assert os.listdir(temp_dir) == []


def test_empty_output_returns_none(tmp_path, source, fake_ffmpeg):
    _, state = fake_ffmpeg
    state['produce'] = lambda path: open(path, 'wb').close()
    assert AudioTranscoder(str(tmp_path / "temp")).convert(source) is None


def test_cancelled_token_skips_conversion(tmp_path, source, fake_ffmpeg):
    log, _ = fake_ffmpeg
    token = CancellationToken()
    token.cancel()
    assert AudioTranscoder(str(tmp_path / "temp")).convert(source, token) is None
    assert log == []


def test_long_input_name_fits_the_filesystem(tmp_path, fake_ffmpeg):
    long_source = tmp_path / ("x" * 250 + ".mp4")
    long_source.write_bytes(b"video")

    audio_path = AudioTranscoder(str(tmp_path / "temp")).convert(str(long_source))

    assert audio_path is not None
    assert len(os.path.basename(audio_path).encode('utf-8')) <= 255
    assert audio_path.endswith(".wav")
