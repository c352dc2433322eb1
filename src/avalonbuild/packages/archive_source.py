"""Sources of embedded toolchain and core archives.

Each platform ships its toolchain bundle and its core include/library
archives as package data. Archives are looked up by file name; the
platform decides which names belong to which host.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..errors import BuildIOError

DEFAULT_RESOURCE_DIR = Path(__file__).resolve().parent.parent / "resources"


class IArchiveSource(ABC):
    """Interface for looking up archive bytes by name."""

    @abstractmethod
    def read(self, name: str) -> bytes:
        """Return the full contents of the named archive.

        Raises:
            BuildIOError: If the archive is not available
        """
        pass

    @abstractmethod
    def has(self, name: str) -> bool:
        """Whether the named archive is available."""
        pass

    def size(self, name: str) -> int:
        return len(self.read(name))


class ResourceArchiveSource(IArchiveSource):
    """Reads archives from a resource directory, caching their bytes.

    Archives are read once and kept for the life of the source, so callers
    may hold on to the returned bytes without copying them.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._cache: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def path_for(self, name: str) -> Path:
        return self.directory / name

    def has(self, name: str) -> bool:
        with self._lock:
            if name in self._cache:
                return True
        return self.path_for(name).is_file()

    def read(self, name: str) -> bytes:
        with self._lock:
            cached = self._cache.get(name)
            if cached is not None:
                return cached

            archive_path = self.path_for(name)
            try:
                data = archive_path.read_bytes()
            except OSError as e:
                raise BuildIOError(f"Unable to read archive {archive_path}: {e}") from e

            self._cache[name] = data
            return data

    def invalidate(self, name: Optional[str] = None) -> None:
        """Drop cached bytes so the next read goes back to disk."""
        with self._lock:
            if name is None:
                self._cache.clear()
            else:
                self._cache.pop(name, None)


class InMemoryArchiveSource(IArchiveSource):
    """Holds archives that are already in memory."""

    def __init__(self, archives: Optional[Dict[str, bytes]] = None):
        self.archives: Dict[str, bytes] = dict(archives or {})

    def has(self, name: str) -> bool:
        return name in self.archives

    def read(self, name: str) -> bytes:
        try:
            return self.archives[name]
        except KeyError:
            raise BuildIOError(f"Archive not available: {name}")


def resource_dir_for(target_name: str, base_dir: Optional[Path] = None) -> Path:
    """Resource directory holding a target's archives."""
    return Path(base_dir or DEFAULT_RESOURCE_DIR) / target_name
