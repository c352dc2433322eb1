"""
Transfer transports for moving an image onto a device.

A transport pushes one file to the device and reports whether that worked.
The Raspberry Pi 4B boots its image over TFTP, so its transport runs the
``tftp`` client in binary mode against the board's address.
"""

import logging
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .process_utils import kill_process_tree

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    """Outcome of a single transfer attempt."""

    success: bool
    output: str
    returncode: Optional[int] = None
    timed_out: bool = False
    cancelled: bool = False

    @property
    def message(self) -> str:
        if self.timed_out:
            return "transfer timed out"
        if self.cancelled:
            return "transfer cancelled"
        if self.success:
            return "transfer complete"
        return self.output.strip() or f"transfer failed with exit code {self.returncode}"


class ITransport(ABC):
    """Interface for device transfer transports."""

    @abstractmethod
    def send(self, image_path: Path) -> TransferResult:
        """Transfer an image to the device, blocking until done."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop an in-flight transfer, if any. Safe to call from any thread.

        A cancel that arrives before the next ``send`` also stops that send.
        """
        pass

    def reset(self) -> None:
        """Forget an earlier cancel before a new programming attempt."""
        pass


class TftpTransport(ITransport):
    """Pushes an image with the ``tftp`` command-line client."""

    # tftp clients often exit 0 on failure and only print an error
    ERROR_TOKEN = "Error"

    def __init__(self, address: str, timeout: float = 60.0, executable: str = "tftp"):
        """
        Initialize transport.

        Args:
            address: Device network address
            timeout: Seconds before the transfer is abandoned
            executable: tftp client to run
        """
        self.address = address
        self.timeout = timeout
        self.executable = executable
        self._process: Optional[subprocess.Popen] = None
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()

    def build_command(self, image_name: str) -> List[str]:
        return [self.executable, "-m", "binary", self.address, "-c", "put", image_name]

    def send(self, image_path: Path) -> TransferResult:
        image_path = Path(image_path)
        cmd = self.build_command(image_path.name)
        logger.info(f"Running: {' '.join(cmd)}")

        with self._lock:
            if self._cancel_event.is_set():
                logger.info("Transfer cancelled before it started")
                return TransferResult(success=False, output="", cancelled=True)
            try:
                process = subprocess.Popen(
                    cmd,
                    cwd=image_path.parent,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    errors="replace",
                )
            except OSError as e:
                return TransferResult(success=False, output=f"Failed to run {self.executable}: {e}")
            self._process = process

        timed_out = False
        try:
            output, _ = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            kill_process_tree(process.pid)
            output, _ = process.communicate()
        finally:
            with self._lock:
                self._process = None
                cancelled = self._cancel_event.is_set()

        output = output or ""
        returncode = process.returncode
        success = (
            not timed_out
            and not cancelled
            and returncode == 0
            and self.ERROR_TOKEN not in output
        )
        return TransferResult(
            success=success,
            output=output,
            returncode=returncode,
            timed_out=timed_out,
            cancelled=cancelled,
        )

    def cancel(self) -> None:
        with self._lock:
            self._cancel_event.set()
            process = self._process
        if process is not None:
            kill_process_tree(process.pid)

    def reset(self) -> None:
        self._cancel_event.clear()
