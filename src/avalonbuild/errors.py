"""Error taxonomy and status codes for Avalon Build.

Internal helpers raise the exceptions below. Operations exposed on the
platform boundary catch them, report them to a message sink and return a
``Status`` instead, so callers never see an exception cross the boundary.
The one exception is ``UnsupportedTargetError``, which is fatal and is
raised at startup when a platform is selected.
"""

from enum import Enum
from typing import Optional


class Status(Enum):
    """Result code returned by platform-boundary operations."""

    SUCCESS = 0
    INVALID_ARGUMENT = 1
    IO_ERROR = 2
    EXTRACTION_ERROR = 3
    UNSUPPORTED_TARGET = 4
    TRANSFER_ERROR = 5

    @property
    def ok(self) -> bool:
        return self is Status.SUCCESS

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Status":
        """Map an exception to the status reported for it.

        Args:
            exc: Exception raised by an internal helper

        Returns:
            The exception's status, or IO_ERROR for plain OS errors
        """
        status: Optional[Status] = getattr(exc, "status", None)
        if status is not None:
            return status
        if isinstance(exc, OSError):
            return cls.IO_ERROR
        return cls.INVALID_ARGUMENT


class AvalonBuildError(Exception):
    """Base exception for all Avalon Build errors."""

    status = Status.INVALID_ARGUMENT


class InvalidArgumentError(AvalonBuildError):
    """Raised for empty or malformed caller input."""

    status = Status.INVALID_ARGUMENT


class BuildIOError(AvalonBuildError):
    """Raised when a filesystem or file-size operation fails."""

    status = Status.IO_ERROR


class ExtractionError(AvalonBuildError):
    """Raised when a toolchain archive cannot be decompressed."""

    status = Status.EXTRACTION_ERROR


class UnsupportedTargetError(AvalonBuildError):
    """Raised when a host/target combination has no build support."""

    status = Status.UNSUPPORTED_TARGET


class TransferError(AvalonBuildError):
    """Raised when a device transfer reports an error or times out."""

    status = Status.TRANSFER_ERROR


class MeasurementError(AvalonBuildError):
    """Raised when section sizes cannot be measured from a built image."""

    status = Status.IO_ERROR


class DownloadError(AvalonBuildError):
    """Raised when a toolchain archive download fails."""

    status = Status.IO_ERROR


class ChecksumError(AvalonBuildError):
    """Raised when a downloaded archive fails checksum verification."""

    status = Status.IO_ERROR


class ConfigError(AvalonBuildError):
    """Raised for unreadable or malformed project configuration."""

    status = Status.INVALID_ARGUMENT
