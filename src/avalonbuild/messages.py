"""Message sinks for user-facing build messages.

Platform operations report what they did (and what went wrong) through a
sink rather than printing. The default sink forwards to ``logging``.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class IMessageSink(ABC):
    """Interface for receiving error and note messages."""

    @abstractmethod
    def error_message(self, message: str) -> None:
        """Report an error message."""
        pass

    @abstractmethod
    def note_message(self, message: str) -> None:
        """Report an informational message."""
        pass


class LoggingMessageSink(IMessageSink):
    """Forwards messages to a ``logging`` logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("avalonbuild")

    def error_message(self, message: str) -> None:
        self.logger.error(message)

    def note_message(self, message: str) -> None:
        self.logger.info(message)


class RecordingMessageSink(IMessageSink):
    """Keeps messages in memory, optionally forwarding to another sink."""

    def __init__(self, forward_to: Optional[IMessageSink] = None):
        self.errors: List[str] = []
        self.notes: List[str] = []
        self.forward_to = forward_to

    def error_message(self, message: str) -> None:
        self.errors.append(message)
        if self.forward_to:
            self.forward_to.error_message(message)

    def note_message(self, message: str) -> None:
        self.notes.append(message)
        if self.forward_to:
            self.forward_to.note_message(message)


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Set up console logging for the ``avalonbuild`` logger tree.

    Args:
        verbose: Log at DEBUG instead of INFO

    Returns:
        The configured ``avalonbuild`` logger
    """
    logger = logging.getLogger("avalonbuild")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not any(getattr(h, "_avalon_console", False) for h in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler._avalon_console = True  # type: ignore[attr-defined]
        logger.addHandler(console_handler)

    return logger
