"""Orchestrates the batch transcription pipeline."""

import logging
import os
import time
from typing import Callable, Iterable, Optional

from .cancellation import CancellationToken
from .exceptions import (
    EngineInitializationError, FileSystemError, FormattingError, OperationCancelledError,
    TranscriptionError,
)
from .model_locator import ModelLocator, ModelSelector, ProgressCallback
from .models import BatchSummary, FileResult, FileState, Language, Segment, TimingRecord
from .segment_stream import SegmentStreamConsumer
from .subtitle_writer import SubtitleWriter
from .timing_log import Stopwatch, TimingLog
from .transcoder import AudioTranscoder
from .utils import build_output_path, ensure_dir_exists

logger = logging.getLogger(__name__)


class SubtitleGenerator:
    """
    Manages the end-to-end process of turning media files into SRT subtitles.

    Per file: transcode, initialize the engine, recognize while writing each
    segment as it arrives, then record how long recognition took. Files are
    handled one after another; a failure only affects its own file.
    """

    def __init__(
        self,
        config: dict,
        model_locator: ModelLocator,
        transcoder: AudioTranscoder,
        stream_consumer: SegmentStreamConsumer,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initializes the SubtitleGenerator.

        Args:
            config: A dictionary containing configuration settings.
            model_locator: Resolves the model once per run.
            transcoder: Converts inputs to canonical audio.
            stream_consumer: Runs the speech engine over each audio file.
            clock: Time source for the recognition stopwatch.
        """
        self.config = config
        self.model_locator = model_locator
        self.transcoder = transcoder
        self.stream_consumer = stream_consumer
        self.clock = clock

        self.output_dir = config.get('output_dir')
        self.output_suffix = config.get('output_suffix', '.srt')
        self.timing_log_path = config.get('timing_log', 'timings.txt')
        self.durable_writes = config.get('durable_writes', True)

    def run(
        self,
        input_paths: Iterable[str],
        model_reference: Optional[str],
        language: Language,
        cancel_token: CancellationToken,
        selector: Optional[ModelSelector] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_file_done: Optional[Callable[[FileResult], None]] = None,
    ) -> BatchSummary:
        """
        Resolves the model, then transcribes every input in order.

        Args:
            input_paths: Files to transcribe, in processing order.
            model_reference: Model path or catalog name.
            language: Recognition language for the whole batch.
            cancel_token: Shared by every step of the run.
            selector: Interactive model picker for unmatched references.
            on_progress: Receives model download percentages.
            on_file_done: Called with each file's result as soon as it is known.

        Returns:
            The per-file results.

        Raises:
            ModelUnavailableError / ModelSelectionRequired: Before any file is touched.
            OperationCancelledError: If cancelled while downloading the model.
            FileSystemError: If the output directory or timing log is unusable.
        """
        input_paths = list(input_paths)
        model_path = self.model_locator.resolve(
            model_reference, selector=selector, cancel_token=cancel_token, on_progress=on_progress
        )
        logger.info(f"--- Transcribing {len(input_paths)} file(s) with model {model_path} ---")

        if self.output_dir:
            ensure_dir_exists(self.output_dir)

        summary = BatchSummary()
        with TimingLog(self.timing_log_path) as timing_log:
            for input_path in input_paths:
                if cancel_token.is_cancelled:
                    summary.cancelled = True
                    break
                try:
                    result = self.generate(input_path, model_path, language, cancel_token, timing_log)
                except Exception as e:
                    logger.error(f"An unexpected error occurred processing '{input_path}': {e}", exc_info=True)
                    result = FileResult(input_path=input_path, state=FileState.FAILED, error=str(e))

                summary.results.append(result)
                if on_file_done is not None:
                    on_file_done(result)
                if result.state is FileState.CANCELLED:
                    summary.cancelled = True
                    break

        logger.info(
            f"--- Batch finished: {summary.completed} completed, {summary.failed} failed"
            f"{', cancelled' if summary.cancelled else ''} ---"
        )
        return summary

    def generate(
        self,
        input_path: str,
        model_path: str,
        language: Language,
        cancel_token: CancellationToken,
        timing_log: TimingLog,
    ) -> FileResult:
        """
        Executes the pipeline for a single input file.

        File-scoped failures are logged and returned as a FAILED result; a
        cancelled recognition keeps the lines already written, returns
        CANCELLED and records no timing.
        """
        result = FileResult(input_path=input_path)
        logger.info(f"--- Processing: {input_path} ---")

        # 1. Transcode
        self._transition(result, FileState.TRANSCODING)
        audio_path = self.transcoder.convert(input_path, cancel_token)
        if not audio_path or not os.path.isfile(audio_path):
            if cancel_token.is_cancelled:
                return self._cancel(result)
            return self._fail(result, "Audio conversion produced no file.")
        result.audio_path = audio_path
        if cancel_token.is_cancelled:
            return self._cancel(result)

        # 2. Load the engine
        self._transition(result, FileState.RECOGNIZING)
        try:
            self.stream_consumer.initialize(model_path, language)
        except EngineInitializationError as e:
            return self._fail(result, str(e))

        output_path = build_output_path(input_path, model_path, self.output_dir, self.output_suffix)
        result.output_path = output_path
        try:
            writer = SubtitleWriter(output_path, durable=self.durable_writes).open()
        except FormattingError as e:
            self.stream_consumer.release()
            return self._fail(result, str(e))

        # 3. Recognize and write; the stopwatch starts at the first segment
        stopwatch = Stopwatch(self.clock)

        def on_segment(segment: Segment) -> None:
            stopwatch.start()
            if result.state is not FileState.WRITING:
                self._transition(result, FileState.WRITING)
            writer.write_segment(segment)

        try:
            with writer, self.stream_consumer.subscribe(on_segment):
                self.stream_consumer.process(audio_path, cancel_token)
            stopwatch.stop()
        except OperationCancelledError:
            result.lines_written = writer.lines_written
            logger.warning(f"Recognition cancelled after {writer.lines_written} lines: {output_path}")
            return self._cancel(result)
        except (TranscriptionError, FormattingError) as e:
            result.lines_written = writer.lines_written
            return self._fail(result, str(e))

        # 4. Record timing
        result.lines_written = writer.lines_written
        result.elapsed = stopwatch.elapsed
        try:
            timing_log.append(TimingRecord(output_path=output_path, elapsed=result.elapsed))
        except (FileSystemError, OSError) as e:
            return self._fail(result, f"Could not record timing: {e}")

        self._transition(result, FileState.COMPLETED)
        logger.info(f"Subtitles saved to: {output_path} ({result.lines_written} lines, {result.elapsed})")
        return result

    def _transition(self, result: FileResult, state: FileState) -> None:
        logger.debug(f"{result.input_path}: {result.state.value} -> {state.value}")
        result.state = state

    def _fail(self, result: FileResult, message: str) -> FileResult:
        logger.error(f"Failed to transcribe '{result.input_path}': {message}")
        result.error = message
        self._transition(result, FileState.FAILED)
        return result

    def _cancel(self, result: FileResult) -> FileResult:
        logger.warning(f"Processing cancelled: {result.input_path}")
        self._transition(result, FileState.CANCELLED)
        return result
