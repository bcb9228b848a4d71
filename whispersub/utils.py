"""Utility functions for WhisperSub."""

import os
import re
import logging
from typing import Iterable, List, Optional, Sequence

from .exceptions import FileSystemError, InputRequiredError

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 255
# Union of characters rejected by Windows and POSIX filesystems, plus control chars.
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_EDGE_WHITESPACE_AND_DOTS = re.compile(r'^[\s.]+|[\s.]+\Z')


def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def format_time_srt(seconds: float) -> str:
    """
    Formats seconds into SRT time format HH:MM:SS,mmm.

    Args:
        seconds: Time in seconds.

    Returns:
        Formatted time string.
    """
    if seconds < 0:
        seconds = 0.0
    milliseconds = round(seconds * 1000)
    hrs = milliseconds // 3600000
    milliseconds %= 3600000
    mins = milliseconds // 60000
    milliseconds %= 60000
    secs = milliseconds // 1000
    milliseconds %= 1000
    return f"{hrs:02d}:{mins:02d}:{secs:02d},{milliseconds:03d}"

def _truncate_utf8(text: str, max_bytes: int) -> str:
    # Filesystems limit names in bytes; never split a multi-byte character
    encoded = text.encode('utf-8')
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max(0, max_bytes)].decode('utf-8', errors='ignore')

def sanitize_filename(name: str, max_length: int = MAX_FILENAME_LENGTH) -> str:
    """
    Makes a string safe to use as a single path component.

    Invalid characters become underscores, the result is cut to max_length
    bytes (UTF-8) and stripped of leading/trailing whitespace and dots.
    An empty result is replaced by a single underscore. Applying the
    function twice gives the same result as applying it once.
    """
    cleaned = _INVALID_FILENAME_CHARS.sub("_", name or "")
    cleaned = _truncate_utf8(cleaned, max_length)
    cleaned = _EDGE_WHITESPACE_AND_DOTS.sub("", cleaned)
    return cleaned or "_"

def fit_filename(stem: str, tail: str) -> str:
    """
    Joins a sanitized stem and a fixed tail (e.g. "_base.srt") into one name.

    The stem is shortened so that the whole name stays within
    MAX_FILENAME_LENGTH bytes; the tail is kept intact.
    """
    room = MAX_FILENAME_LENGTH - len(tail.encode('utf-8'))
    if room < 1:
        raise ValueError(f"File name suffix is too long: {tail!r}")
    return sanitize_filename(stem, room) + tail

def build_output_path(input_path: str, model_path: str, output_dir: Optional[str] = None,
                      suffix: str = ".srt") -> str:
    """
    Derives the subtitle path for an input file and model.

    The file name is `<sanitized input stem>_<model stem><suffix>`, placed in
    output_dir, or next to the input file when output_dir is not given. Long
    input stems are shortened so the name fits the filesystem limit.
    """
    input_stem = os.path.splitext(os.path.basename(input_path))[0]
    model_stem = os.path.splitext(os.path.basename(model_path))[0]
    file_name = fit_filename(input_stem, f"_{model_stem}{suffix}")
    target_dir = output_dir if output_dir else os.path.dirname(os.path.abspath(input_path))
    return os.path.join(target_dir, file_name)

def find_media_files(input_dir: str, extensions: Iterable[str]) -> List[str]:
    """
    Lists media files in a directory, smallest first.

    Raises:
        FileNotFoundError: If the input directory doesn't exist.
        ValueError: If the input path is not a directory.
    """
    if not os.path.exists(input_dir):
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    if not os.path.isdir(input_dir):
        raise ValueError(f"Input path is not a directory: {input_dir}")

    wanted = tuple(ext.lower() for ext in extensions)
    files = []
    for filename in os.listdir(input_dir):
        if not filename.lower().endswith(wanted):
            continue
        filepath = os.path.join(input_dir, filename)
        try:
            if os.path.isfile(filepath):
                files.append((filepath, os.path.getsize(filepath)))
        except OSError as e:
            logger.warning(f"Could not access file {filepath}: {e}. Skipping.")

    files.sort(key=lambda item: item[1])
    logger.info(f"Found {len(files)} media files in {input_dir}.")
    return [path for path, _ in files]

def resolve_input_files(paths: Optional[Sequence[str]], extensions: Iterable[str]) -> List[str]:
    """
    Expands the requested input paths into an ordered list of files.

    Directories contribute their media files (smallest first); missing paths
    are logged and skipped.

    Raises:
        InputRequiredError: If no paths were given at all.
    """
    if not paths:
        raise InputRequiredError("No input files given.")

    extensions = list(extensions)
    resolved = []
    for path in paths:
        if os.path.isdir(path):
            resolved.extend(find_media_files(path, extensions))
        elif os.path.isfile(path):
            resolved.append(path)
        else:
            logger.warning(f"Input path not found, skipping: {path}")
    return resolved
