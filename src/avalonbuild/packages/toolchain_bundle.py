"""Toolchain bundle extraction.

A target's cross-compiler ships as one or more zip archives per host
operating system. ``ToolchainBundle`` unpacks them into a tools directory
exactly once and repairs the executable bits that zip extraction drops.

The existence of the tools directory is the signal that the toolchain is
present. A failed extraction always removes the directory again, so a
retry behaves exactly like a first attempt.
"""

import logging
import os
import stat
import threading
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from ..build.build_utils import safe_rmtree
from ..errors import (
    BuildIOError,
    ChecksumError,
    DownloadError,
    ExtractionError,
    InvalidArgumentError,
    Status,
)
from ..host import HostOS
from ..messages import IMessageSink, LoggingMessageSink
from .archive_source import IArchiveSource, ResourceArchiveSource
from .archive_utils import extract_zip_bytes
from .downloader import PackageDownloader

logger = logging.getLogger(__name__)

EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class ToolchainState(Enum):
    """Extraction state of a tools directory."""

    NOT_PRESENT = "not_present"
    EXTRACTING = "extracting"
    PRESENT = "present"
    FAILED = "failed"


class ToolchainBundle:
    """Extracts a target's per-host toolchain archives into a directory."""

    def __init__(
        self,
        archive_source: IArchiveSource,
        host: HostOS,
        archive_names: Mapping[HostOS, Sequence[str]],
        toolchain_prefix: str,
        toolchain_version: str,
        extra_executables: Optional[Mapping[HostOS, Sequence[str]]] = None,
        sink: Optional[IMessageSink] = None,
    ):
        """Initialize the bundle.

        Args:
            archive_source: Where archive bytes come from
            host: Host operating system the tools will run on
            archive_names: Archive names per host, applied in order
            toolchain_prefix: Target triple, e.g. ``aarch64-none-elf``
            toolchain_version: GCC version inside the bundle
            extra_executables: Files outside the tool directories that also
                need their executable bit, relative to the tools directory
            sink: Receiver for error and note messages
        """
        if host not in archive_names:
            raise InvalidArgumentError(f"No toolchain archives for {host.value} hosts")

        self.archive_source = archive_source
        self.host = host
        self.archive_names = list(archive_names[host])
        self.toolchain_prefix = toolchain_prefix
        self.toolchain_version = toolchain_version
        self.extra_executables = list((extra_executables or {}).get(host, []))
        self.sink = sink or LoggingMessageSink(logger)
        self._states: Dict[Path, ToolchainState] = {}
        self._lock = threading.Lock()

    def permission_dirs(self, tools_directory: Path) -> List[Path]:
        """Directories whose files must be executable after extraction."""
        tools_directory = Path(tools_directory)
        return [
            tools_directory / "bin",
            tools_directory / self.toolchain_prefix / "bin",
            tools_directory / "libexec" / "gcc" / self.toolchain_prefix / self.toolchain_version,
        ]

    def _key(self, tools_directory: Path) -> Path:
        return Path(os.path.abspath(tools_directory))

    def _set_state(self, tools_directory: Path, state: ToolchainState) -> None:
        with self._lock:
            self._states[self._key(tools_directory)] = state

    def state(self, tools_directory: Union[str, Path]) -> ToolchainState:
        """Report the extraction state of a tools directory."""
        path = Path(tools_directory)
        with self._lock:
            tracked = self._states.get(self._key(path))

        if tracked is ToolchainState.EXTRACTING:
            return tracked
        if path.is_dir():
            return ToolchainState.PRESENT
        if tracked is ToolchainState.FAILED:
            return tracked
        return ToolchainState.NOT_PRESENT

    def is_present(self, tools_directory: Union[str, Path]) -> bool:
        return self.state(tools_directory) is ToolchainState.PRESENT

    def unzip_build_tools(
        self,
        tools_directory: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
    ) -> Status:
        """Extract the toolchain into ``tools_directory`` unless already there.

        Args:
            tools_directory: Destination directory, must not be empty
            cancel_event: Checked between archives; when set, extraction
                stops and is treated as failed

        Returns:
            SUCCESS, INVALID_ARGUMENT, IO_ERROR or EXTRACTION_ERROR
        """
        if str(tools_directory) in ("", "."):
            self.sink.error_message("unzip_build_tools(): tools_directory is empty")
            return Status.INVALID_ARGUMENT

        path = Path(tools_directory)

        if path.exists():
            # TODO: count extracted files so a truncated bundle is re-extracted
            return Status.SUCCESS

        try:
            path.mkdir(parents=True)
        except OSError as e:
            self.sink.error_message(
                f"unzip_build_tools(): unable to create tool directory {path}: {e}"
            )
            return Status.IO_ERROR

        self._set_state(path, ToolchainState.EXTRACTING)

        try:
            for name in self.archive_names:
                if cancel_event is not None and cancel_event.is_set():
                    raise ExtractionError("extraction cancelled")
                data = self.archive_source.read(name)
                count = extract_zip_bytes(data, path, description=name)
                logger.debug(f"Extracted {count} entries from {name} into {path}")
        except (ExtractionError, BuildIOError) as e:
            self._discard(path)
            self.sink.error_message(
                f"unzip_build_tools(): fail to extract tool binaries: {e}"
            )
            return Status.EXTRACTION_ERROR
        except Exception as e:
            self._discard(path)
            self.sink.error_message(
                f"unzip_build_tools(): unexpected error extracting tool binaries: {e}"
            )
            return Status.EXTRACTION_ERROR

        if self.host.is_posix:
            self.repair_permissions(path)

        self._set_state(path, ToolchainState.PRESENT)
        self.sink.note_message(f"unzip_build_tools(): toolchain ready in {path}")
        return Status.SUCCESS

    def _discard(self, path: Path) -> None:
        # The present-check relies on the directory being gone after a failure
        try:
            safe_rmtree(path)
        except OSError as e:
            self.sink.error_message(f"unzip_build_tools(): unable to remove {path}: {e}")
        self._set_state(path, ToolchainState.FAILED)

    def repair_permissions(self, tools_directory: Path) -> int:
        """Set the executable bits lost during zip extraction.

        Individual failures are reported and skipped.

        Args:
            tools_directory: Extracted tools directory

        Returns:
            Number of files made executable
        """
        changed = 0
        for directory in self.permission_dirs(tools_directory):
            files = [f for f in directory.iterdir() if f.is_file()] if directory.is_dir() else []
            if not files:
                self.sink.error_message(
                    f"unzip_build_tools(): unable to find tool binaries for setting executable in {directory}"
                )
                continue
            for file in files:
                if self._make_executable(file):
                    changed += 1

        for relative in self.extra_executables:
            extra = Path(tools_directory) / relative
            if extra.exists() and self._make_executable(extra):
                changed += 1

        return changed

    def _make_executable(self, file: Path) -> bool:
        try:
            mode = file.stat().st_mode
            os.chmod(file, mode | EXEC_BITS)
        except OSError as e:
            self.sink.error_message(
                f"unzip_build_tools(): error changing execute permission on {file}: {e}"
            )
            return False
        logger.debug(f"changed execute permission on {file}")
        return True

    def cleanup(self, tools_directory: Union[str, Path]) -> Status:
        """Remove an extracted toolchain.

        Returns:
            SUCCESS, or IO_ERROR if the directory could not be removed
        """
        path = Path(tools_directory)
        try:
            safe_rmtree(path)
        except OSError as e:
            self.sink.error_message(f"cleanup(): unable to remove {path}: {e}")
            return Status.IO_ERROR
        with self._lock:
            self._states.pop(self._key(path), None)
        return Status.SUCCESS

    def fetch_archives(
        self,
        base_url: str,
        checksums: Optional[Mapping[str, str]] = None,
        downloader: Optional[PackageDownloader] = None,
        show_progress: bool = True,
    ) -> Status:
        """Download any of this host's archives missing from the resource directory.

        Args:
            base_url: URL prefix; each archive is fetched from ``<base_url>/<name>``
            checksums: Optional SHA256 checksums keyed by archive name
            downloader: Downloader to use
            show_progress: Whether to show progress bars

        Returns:
            SUCCESS, INVALID_ARGUMENT if the source is not a resource
            directory, or IO_ERROR if a download or checksum fails
        """
        if not isinstance(self.archive_source, ResourceArchiveSource):
            self.sink.error_message("fetch_archives(): archive source has no resource directory")
            return Status.INVALID_ARGUMENT

        checksums = checksums or {}
        downloader = downloader or PackageDownloader()
        source = self.archive_source

        for name in self.archive_names:
            if source.has(name):
                continue
            url = f"{base_url.rstrip('/')}/{name}"
            try:
                downloader.download(
                    url, source.path_for(name), checksums.get(name), show_progress=show_progress
                )
            except (DownloadError, ChecksumError) as e:
                self.sink.error_message(f"fetch_archives(): {e}")
                return Status.from_exception(e)
            source.invalidate(name)
            self.sink.note_message(f"fetch_archives(): fetched {name}")

        return Status.SUCCESS

    def describe(self) -> Dict[str, object]:
        """Summary of the bundle for display."""
        return {
            "host": self.host.value,
            "archives": list(self.archive_names),
            "toolchain_prefix": self.toolchain_prefix,
            "toolchain_version": self.toolchain_version,
        }

