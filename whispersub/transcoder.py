"""Converts arbitrary media files into the canonical audio format using ffmpeg."""

import ffmpeg
import os
import logging
import uuid
from typing import Optional

from .cancellation import CancellationToken
from .exceptions import TranscodeError, FileSystemError
from .utils import ensure_dir_exists, fit_filename

logger = logging.getLogger(__name__)


class AudioTranscoder:
    """Produces 16-bit mono PCM WAV files that the speech engine can decode."""

    def __init__(self, temp_dir: str, ffmpeg_path: Optional[str] = None, sample_rate: int = 16000):
        """
        Initializes the AudioTranscoder.

        Args:
            temp_dir: Directory that receives the converted audio files.
            ffmpeg_path: Optional path to the ffmpeg executable.
                         If None, assumes ffmpeg is in the system PATH.
            sample_rate: Output sample rate in Hz.
        """
        self.temp_dir = temp_dir
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.sample_rate = sample_rate
        logger.info(f"Using ffmpeg command: {self.ffmpeg_cmd}")

    def convert(self, input_path: str, cancel_token: Optional[CancellationToken] = None) -> Optional[str]:
        """
        Converts a media file to canonical audio.

        Every call writes a new, uniquely named file, so converting the same
        input twice never touches an earlier result. Converted files are left
        in place for the caller.

        Args:
            input_path: Path to the input media file.
            cancel_token: Checked before ffmpeg is started.

        Returns:
            Path to the converted WAV file, or None if conversion failed.
        """
        if cancel_token is not None and cancel_token.is_cancelled:
            logger.info(f"Skipping conversion of {input_path}: cancelled.")
            return None
        try:
            return self._transcode(input_path)
        except (TranscodeError, FileSystemError, FileNotFoundError) as e:
            logger.error(f"Could not convert {input_path}: {e}")
            return None

    def _transcode(self, input_path: str) -> str:
        """
        Runs ffmpeg for one file.

        Raises:
            FileNotFoundError: If the input file does not exist.
            TranscodeError: If ffmpeg fails or writes an empty file.
            FileSystemError: If the temp directory cannot be created/accessed.
        """
        logger.info(f"Starting audio conversion for: {input_path}")
        if not os.path.isfile(input_path):
            raise FileNotFoundError(f"Input media file not found: {input_path}")

        ensure_dir_exists(self.temp_dir)

        base_name = os.path.splitext(os.path.basename(input_path))[0]
        output_audio_path = os.path.join(self.temp_dir, fit_filename(base_name, f"_{uuid.uuid4().hex[:8]}.wav"))
        logger.debug(f"Output audio path set to: {output_audio_path}")

        try:
            # pcm_s16le mono at the engine's sample rate
            (
                ffmpeg
                .input(input_path)
                .output(output_audio_path, acodec='pcm_s16le', ar=self.sample_rate, ac=1)
                .overwrite_output()
                .run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffmpeg error during conversion of {input_path}: {stderr_output}")
            self._remove_partial(output_audio_path)
            raise TranscodeError(f"ffmpeg failed: {stderr_output}") from e
        except OSError as e:
            # ffmpeg binary missing or not executable
            logger.error(f"Could not run ffmpeg '{self.ffmpeg_cmd}': {e}", exc_info=True)
            self._remove_partial(output_audio_path)
            raise TranscodeError(f"Could not run ffmpeg: {e}") from e

        if not os.path.isfile(output_audio_path) or os.path.getsize(output_audio_path) == 0:
            self._remove_partial(output_audio_path)
            raise TranscodeError(f"ffmpeg produced no audio for {input_path}")

        logger.info(f"Successfully converted audio to: {output_audio_path}")
        return output_audio_path

    def _remove_partial(self, path: str) -> None:
        if os.path.exists(path):
            try:
                os.remove(path)
            except OSError:
                logger.warning(f"Could not clean up partially created audio file: {path}")
