"""
Device programming for built images.

The caller owns a ``ProgrammingSession`` per attempt and passes it to the
``DeviceProgrammer``. Progress lives on the session as a single float, so a
UI thread may poll it while a worker thread runs ``program_device``.

State machine:
    IDLE -> LOADED -> TRANSFERRING -> SUCCEEDED | FAILED
"""

import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..config.platform_config import PlatformConfig
from ..errors import Status, TransferError
from ..messages import IMessageSink, LoggingMessageSink
from .transport import ITransport, TransferResult

logger = logging.getLogger(__name__)

UNKNOWN_SIZE = -1


class ProgrammingState(Enum):
    IDLE = "idle"
    LOADED = "loaded"
    TRANSFERRING = "transferring"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class ProgrammingSession:
    """State of one device-programming attempt."""

    binary_file_path: Optional[Path] = None
    binary_size_bytes: int = UNKNOWN_SIZE
    progress: float = 0.0
    state: ProgrammingState = ProgrammingState.IDLE
    status: Status = Status.SUCCESS
    last_result: Optional[TransferResult] = None


class DeviceProgrammer:
    """Transfers a built image to a device through a transport."""

    def __init__(
        self,
        config: PlatformConfig,
        transport: ITransport,
        sink: Optional[IMessageSink] = None,
    ):
        self.config = config
        self.transport = transport
        self.sink = sink or LoggingMessageSink(logger)

    def load_binary_file(self, session: ProgrammingSession, binary_file_path: Union[str, Path]) -> Status:
        """
        Record the image to program.

        Args:
            session: Session to load into
            binary_file_path: Built image

        Returns:
            SUCCESS, or IO_ERROR with ``binary_size_bytes`` left at -1
        """
        path = Path(binary_file_path)
        session.binary_file_path = path
        session.progress = 0.0
        session.last_result = None
        self.transport.reset()

        try:
            session.binary_size_bytes = path.stat().st_size
        except OSError as e:
            session.binary_size_bytes = UNKNOWN_SIZE
            session.state = ProgrammingState.IDLE
            session.status = Status.IO_ERROR
            self.sink.error_message(f"load_binary_file(): unable to read {path}: {e}")
            return session.status

        session.state = ProgrammingState.LOADED
        session.status = Status.SUCCESS
        return session.status

    def open_usb(self, session: ProgrammingSession) -> Status:
        """Open the device link before a transfer.

        The board is reached over the network, so there is no handshake;
        the session only has to be loaded.
        """
        if session.state is ProgrammingState.IDLE:
            return Status.INVALID_ARGUMENT
        return Status.SUCCESS

    def _stage_image(self, image: Path) -> Path:
        # The device boot loader only fetches the legacy kernel name, so the
        # copy is refreshed on every attempt to match the loaded image
        legacy = image.parent / self.config.legacy_image_name
        if image.resolve() != legacy.resolve():
            shutil.copy2(image, legacy)
        return legacy

    def _transfer(self, session: ProgrammingSession, staged: Path) -> TransferResult:
        result = self.transport.send(staged)
        session.last_result = result
        if not result.success:
            raise TransferError(f"{result.message}\n{result.output}")
        return result

    def program_device(self, session: ProgrammingSession) -> Status:
        """
        Transfer the loaded image to the device.

        Progress is reset to 0.0 at the start and set to 1.0 only when the
        transport reports success.

        Args:
            session: A loaded session

        Returns:
            SUCCESS, INVALID_ARGUMENT if nothing is loaded, IO_ERROR if the
            image cannot be staged, or TRANSFER_ERROR
        """
        if session.binary_file_path is None or session.state in (
            ProgrammingState.IDLE,
            ProgrammingState.TRANSFERRING,
        ):
            self.sink.error_message("program_device(): no binary file loaded")
            return Status.INVALID_ARGUMENT

        session.progress = 0.0

        try:
            staged = self._stage_image(session.binary_file_path)
        except OSError as e:
            session.state = ProgrammingState.FAILED
            session.status = Status.IO_ERROR
            self.sink.error_message(f"program_device(): unable to stage image: {e}")
            return session.status

        session.state = ProgrammingState.TRANSFERRING
        try:
            result = self._transfer(session, staged)
        except TransferError as e:
            session.state = ProgrammingState.FAILED
            session.status = Status.from_exception(e)
            self.sink.error_message(f"program_device(): PROGRAMMING ERROR: {e}")
            return session.status

        session.progress = 1.0
        session.state = ProgrammingState.SUCCEEDED
        session.status = Status.SUCCESS
        self.sink.note_message(f"*** program_device(): RESULT: ***\n{result.output}")
        return session.status

    def get_programming_progress(self, session: ProgrammingSession) -> float:
        return session.progress

    def request_program_thread_exit(self) -> None:
        """Ask an in-flight transfer to stop."""
        self.transport.cancel()

    def is_erase_done(self) -> bool:
        # No separate erase phase on network-booted targets
        return True
