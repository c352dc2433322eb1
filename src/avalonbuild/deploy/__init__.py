"""
Firmware deployment functionality for Avalon Build.

This module transfers built images onto devices and tracks the progress
of each programming attempt.
"""

from .process_utils import kill_process_tree
from .programmer import DeviceProgrammer, ProgrammingSession, ProgrammingState
from .transport import ITransport, TftpTransport, TransferResult

__all__ = [
    "DeviceProgrammer",
    "ProgrammingSession",
    "ProgrammingState",
    "ITransport",
    "TftpTransport",
    "TransferResult",
    "kill_process_tree",
]
