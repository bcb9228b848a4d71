"""Writes subtitle lines to an SRT file as segments arrive."""

import logging
import os
import threading

from .exceptions import FormattingError
from .models import Segment, SubtitleLine
from .utils import format_time_srt

logger = logging.getLogger(__name__)


def format_subtitle_line(line: SubtitleLine) -> str:
    """Renders one SRT block: index, time range, text and a blank separator line."""
    start = format_time_srt(line.start_time)
    end = format_time_srt(line.end_time)
    return f"{line.index}\n{start} --> {end}\n{line.text}\n\n"


class SubtitleWriter:
    """
    Appends numbered SRT blocks to one output file, one segment at a time.

    Each block is flushed (and fsync'ed when `durable` is set) before
    `write_segment` returns, so a crash keeps every line written so far.
    Numbering starts at 1 and increases by one per written block.
    """

    def __init__(self, output_path: str, durable: bool = True):
        self.output_path = output_path
        self.durable = durable
        self.lines_written = 0
        self._file = None
        self._lock = threading.Lock()

    def open(self) -> "SubtitleWriter":
        try:
            self._file = open(self.output_path, 'w', encoding='utf-8')
        except OSError as e:
            logger.error(f"Failed to open SRT file {self.output_path}: {e}", exc_info=True)
            raise FormattingError(f"Could not open SRT file: {e}") from e
        logger.info(f"Writing subtitles to: {self.output_path}")
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            logger.info(f"Wrote {self.lines_written} subtitle blocks to {self.output_path}")

    def __enter__(self) -> "SubtitleWriter":
        if self._file is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write_segment(self, segment: Segment) -> SubtitleLine:
        """
        Numbers, formats and durably writes one segment.

        Raises:
            FormattingError: If the file is not open or the write fails.
        """
        with self._lock:
            if self._file is None:
                raise FormattingError(f"SRT file {self.output_path} is not open.")
            line = SubtitleLine(
                index=self.lines_written + 1,
                start_time=segment.start_time,
                end_time=segment.end_time,
                text=segment.text.strip(),
            )
            try:
                self._file.write(format_subtitle_line(line))
                self._file.flush()
                if self.durable:
                    os.fsync(self._file.fileno())
            except OSError as e:
                logger.error(f"Failed to write subtitle {line.index} to {self.output_path}: {e}", exc_info=True)
                raise FormattingError(f"Could not write SRT file: {e}") from e
            self.lines_written = line.index
            logger.debug(f"[{format_time_srt(line.start_time)}] {line.text}")
            return line
