# src/transaction_import/errors.py
"""
Exception hierarchy for the import pipeline.

Everything raised on purpose inherits from PipelineError, so the orchestrator
can attribute a failure to a file and a phase without catching the world.
"""

from typing import Optional


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    phase = "unknown"

    def __init__(
        self,
        message: str,
        *,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        phase: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        self.bucket = bucket
        self.key = key
        if phase:
            self.phase = phase
        self.details = details or {}
        super().__init__(message)


class ConfigError(PipelineError):
    """Missing or malformed configuration. Fatal, raised before any I/O."""

    phase = "config"

    def __init__(self, message: str, *, setting: Optional[str] = None, **kwargs) -> None:
        self.setting = setting
        super().__init__(message, **kwargs)


class InvalidEventError(PipelineError):
    """The trigger event does not look like an S3 notification."""

    phase = "event"


class DownloadError(PipelineError):
    phase = "fetch"


class ListingError(PipelineError):
    """Listing a bucket prefix failed. Fatal for a bucket scan."""

    phase = "list"

    def __init__(self, message: str, *, prefix: str = "", **kwargs) -> None:
        self.prefix = prefix
        super().__init__(message, **kwargs)


class FileAccessError(PipelineError):
    """The downloaded file could not be opened."""

    phase = "transform"


class ScanError(PipelineError):
    """Reading the file failed part way through."""

    phase = "transform"


class MalformedLineError(PipelineError):
    """A line has fewer fields than the configured column indices need."""

    phase = "transform"

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        field_count: int = 0,
        **kwargs,
    ) -> None:
        self.line_number = line_number
        self.field_count = field_count
        super().__init__(message, **kwargs)


class DeliveryError(PipelineError):
    """The downstream API rejected the payload or could not be reached."""

    phase = "deliver"

    def __init__(self, message: str, *, status_code: Optional[int] = None, **kwargs) -> None:
        self.status_code = status_code
        super().__init__(message, **kwargs)


class ArchiveError(PipelineError):
    """
    Moving the source object to its archive bucket failed.

    `step` is one of "copy", "confirm" or "delete".
    """

    phase = "archive"

    COPY = "copy"
    CONFIRM = "confirm"
    DELETE = "delete"

    def __init__(self, message: str, *, step: str, **kwargs) -> None:
        self.step = step
        super().__init__(message, **kwargs)


class DeadlineExceeded(PipelineError):
    """The invocation ran out of time."""
