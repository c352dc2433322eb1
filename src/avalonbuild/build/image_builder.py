"""
Build script emission.

An image builder turns a platform configuration into the text of the
linker script and Makefiles used to compile an image. Builders hold only
immutable values, so every method is a pure function of its inputs and
may be called from several threads at once.
"""

from abc import ABC, abstractmethod
from typing import FrozenSet, Sequence

from ..config.platform_config import CORE_VERSION, BuildFlags, CoreVersion, PlatformConfig
from ..errors import UnsupportedTargetError
from ..host import HostOS

NEWLINE = "\n"


class ImageBuilder(ABC):
    """Base class for per-target build script emitters."""

    # Hosts each emitter can produce a script for
    MAKEFILE_HOSTS: FrozenSet[HostOS] = frozenset()
    TEST_MAKEFILE_HOSTS: FrozenSet[HostOS] = frozenset()
    EFX_MAKEFILE_HOSTS: FrozenSet[HostOS] = frozenset()

    def __init__(self, config: PlatformConfig, host: HostOS):
        self._config = config
        self._host = host

    @property
    def config(self) -> PlatformConfig:
        return self._config

    @property
    def host(self) -> HostOS:
        return self._host

    @classmethod
    def script_hosts(cls) -> FrozenSet[HostOS]:
        """Hosts on which every script of this target can be emitted."""
        return cls.MAKEFILE_HOSTS & cls.TEST_MAKEFILE_HOSTS & cls.EFX_MAKEFILE_HOSTS

    def _require_host(self, supported: FrozenSet[HostOS], script: str) -> None:
        if self._host not in supported:
            raise UnsupportedTargetError(
                f"{script} for {self._config.mcu_type_name} is not supported on "
                + f"{self._host.value} hosts"
            )

    @abstractmethod
    def linker_script(self) -> str:
        """Return the linker script text."""
        pass

    @abstractmethod
    def makefile(self) -> str:
        """Return the minimal application Makefile text.

        Raises:
            UnsupportedTargetError: If the host cannot build this target
        """
        pass

    @abstractmethod
    def test_makefile(
        self,
        tools_directory: str,
        libs_directory: str,
        dat_filename: str,
        test_app_name: str,
        ir_data_name: str,
        include_directories: Sequence[str],
        core_version: CoreVersion = CORE_VERSION,
    ) -> str:
        """Return the Makefile that links a test application.

        Raises:
            UnsupportedTargetError: If the host cannot build this target
        """
        pass

    @abstractmethod
    def efx_makefile_inc(self, flags: BuildFlags, cpp_flags: str = "", quiet: bool = True) -> str:
        """Return the Makefile include used to build an effect library.

        Raises:
            UnsupportedTargetError: If the host cannot build this target
        """
        pass
