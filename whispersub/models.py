"""Data models for WhisperSub."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List, Optional

AUTO_LANGUAGE_CODE = "auto"


@dataclass
class ModelDescriptor:
    """A speech model known to the catalog and where it lives on disk."""
    name: str
    url: str
    path: str
    sha256: Optional[str] = None
    exists: bool = False

    def refresh(self) -> bool:
        """Re-checks whether the model file is present locally."""
        self.exists = os.path.isfile(self.path)
        return self.exists

@dataclass(frozen=True)
class Language:
    """A recognition language: human label plus engine code."""
    label: str
    code: str

    @property
    def engine_code(self) -> Optional[str]:
        # None lets the engine detect the spoken language itself
        return None if self.code == AUTO_LANGUAGE_CODE else self.code

@dataclass(frozen=True)
class Segment:
    """Represents a single timed chunk of text."""
    start_time: float
    end_time: float
    text: str

@dataclass(frozen=True)
class SubtitleLine:
    """A numbered, timed subtitle record as written to disk."""
    index: int
    start_time: float
    end_time: float
    text: str

@dataclass(frozen=True)
class TimingRecord:
    """How long recognition took for one output file."""
    output_path: str
    elapsed: timedelta

    def to_log_line(self) -> str:
        return f"{self.output_path}: {self.elapsed}"

class FileState(Enum):
    PENDING = "pending"
    TRANSCODING = "transcoding"
    RECOGNIZING = "recognizing"
    WRITING = "writing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

@dataclass
class FileResult:
    """Outcome of processing a single input file."""
    input_path: str
    state: FileState = FileState.PENDING
    output_path: Optional[str] = None
    audio_path: Optional[str] = None
    lines_written: int = 0
    elapsed: Optional[timedelta] = None
    error: Optional[str] = None

@dataclass
class BatchSummary:
    """Holds the per-file outcomes of one batch run."""
    results: List[FileResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def completed(self) -> int:
        return sum(1 for r in self.results if r.state is FileState.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.state is FileState.FAILED)

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and bool(self.results) and self.completed == len(self.results)
