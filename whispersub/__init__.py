"""WhisperSub: batch transcription of media files into SRT subtitles."""

__version__ = "0.1.0"
