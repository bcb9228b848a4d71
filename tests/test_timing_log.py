from datetime import timedelta

import pytest

from whispersub.exceptions import FileSystemError
from whispersub.models import TimingRecord
from whispersub.timing_log import Stopwatch, TimingLog

from conftest import ManualClock


def test_unstarted_stopwatch_is_zero():
    assert Stopwatch(ManualClock()).elapsed == timedelta(0)


def test_stopwatch_keeps_first_start():
    clock = ManualClock()
    watch = Stopwatch(clock)
    watch.start()
    clock.advance(2)
    watch.start()
    clock.advance(3)
    watch.stop()
    clock.advance(10)
    assert watch.elapsed == timedelta(seconds=5)
    assert not watch.running


def test_timing_log_appends_across_runs(tmp_path):
    path = tmp_path / "logs" / "timings.txt"
    with TimingLog(str(path)) as log:
        log.append(TimingRecord("a.srt", timedelta(seconds=1.5)))
    with TimingLog(str(path)) as log:
        log.append(TimingRecord("b.srt", timedelta(minutes=2)))

    assert path.read_text(encoding="utf-8").splitlines() == [
        "a.srt: 0:00:01.500000",
        "b.srt: 0:02:00",
    ]


def test_append_requires_open_log(tmp_path):
    with pytest.raises(FileSystemError):
        TimingLog(str(tmp_path / "t.txt")).append(TimingRecord("a.srt", timedelta(0)))
