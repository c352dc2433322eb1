"""Host Operating System Detection.

The toolchain bundle shipped for a target differs per host operating
system, and so do the build scripts a target can emit. This module maps
the running interpreter's system to one of the supported hosts.

Supported Hosts:
    - Linux
    - macOS
    - Windows (64-bit)
"""

import platform
from enum import Enum

from .errors import UnsupportedTargetError


class HostOS(Enum):
    """Host operating systems a toolchain bundle can be built for."""

    LINUX = "linux"
    MACOS = "macos"
    WINDOWS = "windows"

    @property
    def is_posix(self) -> bool:
        """Whether extracted tools need their executable bits repaired."""
        return self in (HostOS.LINUX, HostOS.MACOS)

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self is HostOS.WINDOWS else ""


class HostDetector:
    """Detects the host operating system for toolchain selection."""

    @staticmethod
    def detect_host() -> HostOS:
        """Detect the current host operating system.

        Returns:
            HostOS for the running system

        Raises:
            UnsupportedTargetError: If the system is not supported
        """
        system = platform.system().lower()

        if system == "linux":
            return HostOS.LINUX
        elif system == "darwin":
            return HostOS.MACOS
        elif system == "windows":
            return HostOS.WINDOWS
        else:
            raise UnsupportedTargetError(f"Unsupported host platform: {system}")

    @staticmethod
    def parse_host(name: str) -> HostOS:
        """Parse a host name such as ``linux`` or ``darwin``.

        Args:
            name: Host name, case-insensitive

        Returns:
            Matching HostOS

        Raises:
            UnsupportedTargetError: If the name is not a supported host
        """
        normalized = name.strip().lower()
        aliases = {"darwin": "macos", "win32": "windows", "win64": "windows"}
        normalized = aliases.get(normalized, normalized)
        try:
            return HostOS(normalized)
        except ValueError:
            raise UnsupportedTargetError(f"Unsupported host platform: {name}")
