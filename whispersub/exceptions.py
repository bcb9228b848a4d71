"""Custom Exceptions for the WhisperSub application."""

from typing import Optional, Sequence


class WhisperSubError(Exception):
    """Base class for exceptions in this package."""
    pass

class ConfigurationError(WhisperSubError):
    """Exception raised for errors in configuration loading."""
    pass

class InputRequiredError(WhisperSubError):
    """
    Raised when a value cannot be resolved without asking the user.

    Carries the options the caller can present interactively.
    """

    def __init__(self, message: str, choices: Optional[Sequence] = None):
        super().__init__(message)
        self.choices = list(choices) if choices is not None else []

class ModelSelectionRequired(InputRequiredError):
    """The model reference matched neither a file nor a catalog entry."""
    pass

class ModelUnavailableError(WhisperSubError):
    """Exception raised when no usable local model file could be obtained."""
    pass

class TranscodeError(WhisperSubError):
    """Exception raised for errors during audio transcoding."""
    pass

class EngineInitializationError(WhisperSubError):
    """Exception raised when the speech engine cannot load its model."""
    pass

class TranscriptionError(WhisperSubError):
    """Exception raised for errors during transcription."""
    pass

class OperationCancelledError(WhisperSubError):
    """Exception raised when an operation stopped because it was cancelled."""
    pass

class FormattingError(WhisperSubError):
    """Exception raised for errors during subtitle formatting."""
    pass

class FileSystemError(WhisperSubError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
