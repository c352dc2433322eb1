"""Platform capability interface.

Every hardware target the build tool can produce firmware for implements
``IPlatform``. The rest of the build tool only talks to this interface:

1. ``unzip_build_tools`` - make the cross-compiler available on disk
2. ``get_linker_file`` / ``get_makefile`` - emit build scripts
3. (an external make run compiles and links the image)
4. ``is_program_ram_valid`` / ``is_program_flash_valid`` - check budgets
5. ``load_binary_file`` / ``program_device`` - put the image on the board

``PlatformBase`` wires the shared components together; a concrete target
supplies its configuration, archives, script emitter and transport.
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from ..build.image_builder import ImageBuilder
from ..build.resource_budget import BudgetReport, ResourceBudgetValidator
from ..build.size_measure import SectionSizes, SizeMeasurer
from ..config.platform_config import CORE_VERSION, BuildFlags, CoreVersion, PlatformConfig
from ..config.settings import ProjectSettings
from ..deploy.programmer import DeviceProgrammer, ProgrammingSession
from ..deploy.transport import ITransport
from ..errors import BuildIOError, MeasurementError, Status, UnsupportedTargetError
from ..host import HostDetector, HostOS
from ..messages import IMessageSink, LoggingMessageSink
from ..packages.archive_source import IArchiveSource, ResourceArchiveSource, resource_dir_for
from ..packages.toolchain_bundle import ToolchainBundle, ToolchainState

logger = logging.getLogger(__name__)


class PlatformEnum(Enum):
    """Hardware targets known to the build tool."""

    RPI4B = "rpi4b"

    @classmethod
    def parse(cls, name: str) -> "PlatformEnum":
        try:
            return cls(name.strip().lower())
        except ValueError:
            known = ", ".join(p.value for p in cls)
            raise UnsupportedTargetError(f"Unknown target '{name}'. Known targets: {known}")


class IPlatform(ABC):
    """Interface every hardware target implements."""

    @property
    @abstractmethod
    def config(self) -> PlatformConfig:
        pass

    @abstractmethod
    def config_platform(self) -> None:
        """Populate the platform configuration with target constants."""
        pass

    @abstractmethod
    def get_core_includes_zip(self) -> bytes:
        pass

    @abstractmethod
    def get_core_includes_zip_size(self) -> int:
        pass

    @abstractmethod
    def get_core_libs_zip(self) -> bytes:
        pass

    @abstractmethod
    def get_core_libs_zip_size(self) -> int:
        pass

    @abstractmethod
    def unzip_build_tools(
        self, tools_directory: Union[str, Path], cancel_event: Optional[threading.Event] = None
    ) -> Status:
        pass

    @abstractmethod
    def get_linker_file(self) -> str:
        pass

    @abstractmethod
    def get_makefile(self) -> str:
        pass

    @abstractmethod
    def create_test_makefile(
        self,
        tools_directory: str,
        libs_directory: str,
        dat_filename: str,
        test_app_name: str,
        ir_data_name: str,
        include_directories: Sequence[str],
    ) -> str:
        pass

    @abstractmethod
    def get_efx_makefile_inc(self, flags: BuildFlags, cpp_flags: str = "") -> str:
        pass

    @abstractmethod
    def get_extra_include_libs(self) -> List[str]:
        """Libraries to link, in link order."""
        pass

    @abstractmethod
    def get_flash_max_size(self) -> int:
        pass

    @abstractmethod
    def is_program_ram_valid(
        self, tools_directory: Path, program_dir: Path, program_name: str
    ) -> BudgetReport:
        pass

    @abstractmethod
    def is_program_flash_valid(
        self, tools_directory: Path, program_dir: Path, program_name: str
    ) -> BudgetReport:
        pass

    @abstractmethod
    def load_binary_file(self, session: ProgrammingSession, binary_file_path: Union[str, Path]) -> Status:
        pass

    @abstractmethod
    def open_usb(self, session: ProgrammingSession) -> Status:
        pass

    @abstractmethod
    def program_device(self, session: ProgrammingSession) -> Status:
        pass

    @abstractmethod
    def request_program_thread_exit(self) -> None:
        pass

    @abstractmethod
    def get_programming_progress(self, session: ProgrammingSession) -> float:
        pass

    @abstractmethod
    def is_erase_done(self) -> bool:
        pass


class PlatformBase(IPlatform):
    """Shared implementation of the platform interface.

    Subclasses set the class attributes and implement ``config_platform``,
    ``get_extra_include_libs``, ``create_image_builder`` and
    ``create_transport``.
    """

    # Resource subdirectory holding this target's archives
    RESOURCE_NAME = ""
    # Toolchain archives per host, extracted in order
    TOOL_ARCHIVES: Dict[HostOS, Sequence[str]] = {}
    # Extra files to mark executable per host, relative to the tools directory
    EXTRA_EXECUTABLES: Dict[HostOS, Sequence[str]] = {}

    def __init__(
        self,
        platform_enum: PlatformEnum,
        host: Optional[HostOS] = None,
        settings: Optional[ProjectSettings] = None,
        archive_source: Optional[IArchiveSource] = None,
        transport: Optional[ITransport] = None,
        sink: Optional[IMessageSink] = None,
    ):
        self.platform_enum = platform_enum
        self.host = host or HostDetector.detect_host()
        self.settings = settings or ProjectSettings(project_dir=Path.cwd())
        self.sink = sink or LoggingMessageSink()

        if self.host not in self.TOOL_ARCHIVES:
            raise UnsupportedTargetError(
                f"No toolchain for {platform_enum.value} on {self.host.value} hosts"
            )

        self._config: Optional[PlatformConfig] = None
        self.config_platform()
        self.config.validate()

        self.archive_source = archive_source or ResourceArchiveSource(
            resource_dir_for(self.RESOURCE_NAME, self.settings.resource_dir)
        )
        self.bundle = ToolchainBundle(
            self.archive_source,
            self.host,
            self.TOOL_ARCHIVES,
            self.config.toolchain_prefix,
            self.config.toolchain_version,
            extra_executables=self.EXTRA_EXECUTABLES,
            sink=self.sink,
        )
        self.image_builder = self.create_image_builder()
        self.validator = ResourceBudgetValidator(self.config)
        self.programmer = DeviceProgrammer(
            self.config, transport or self.create_transport(), sink=self.sink
        )

    @property
    def config(self) -> PlatformConfig:
        if self._config is None:
            raise UnsupportedTargetError(f"{type(self).__name__} was not configured")
        return self._config

    @abstractmethod
    def create_image_builder(self) -> ImageBuilder:
        pass

    @abstractmethod
    def create_transport(self) -> ITransport:
        pass

    # Core archives

    @property
    def core_includes_name(self) -> str:
        return f"includes_{self.config.mcu_type_name}.zip"

    @property
    def core_libs_name(self) -> str:
        return f"libs_{self.config.mcu_type_name}.zip"

    def _read_core_archive(self, name: str, caller: str) -> bytes:
        # A missing archive reads as empty; callers treat a zero size as absent
        try:
            return self.archive_source.read(name)
        except BuildIOError as e:
            self.sink.error_message(f"{caller}(): {e}")
            return b""

    def get_core_includes_zip(self) -> bytes:
        return self._read_core_archive(self.core_includes_name, "get_core_includes_zip")

    def get_core_includes_zip_size(self) -> int:
        return len(self.get_core_includes_zip())

    def get_core_libs_zip(self) -> bytes:
        return self._read_core_archive(self.core_libs_name, "get_core_libs_zip")

    def get_core_libs_zip_size(self) -> int:
        return len(self.get_core_libs_zip())

    # Toolchain

    def unzip_build_tools(
        self, tools_directory: Union[str, Path], cancel_event: Optional[threading.Event] = None
    ) -> Status:
        return self.bundle.unzip_build_tools(tools_directory, cancel_event)

    def toolchain_state(self, tools_directory: Union[str, Path]) -> ToolchainState:
        return self.bundle.state(tools_directory)

    # Build scripts

    def get_linker_file(self) -> str:
        return self.image_builder.linker_script()

    def get_makefile(self) -> str:
        return self.image_builder.makefile()

    def create_test_makefile(
        self,
        tools_directory: str,
        libs_directory: str,
        dat_filename: str,
        test_app_name: str,
        ir_data_name: str,
        include_directories: Sequence[str],
        core_version: CoreVersion = CORE_VERSION,
    ) -> str:
        return self.image_builder.test_makefile(
            tools_directory,
            libs_directory,
            dat_filename,
            test_app_name,
            ir_data_name,
            include_directories,
            core_version,
        )

    def get_efx_makefile_inc(self, flags: BuildFlags, cpp_flags: str = "") -> str:
        return self.image_builder.efx_makefile_inc(flags, cpp_flags)

    def write_build_scripts(self, build_dir: Path, makefile_name: str = "Makefile") -> Status:
        """Write the linker script and Makefile into a build directory.

        Returns:
            SUCCESS, or IO_ERROR if the files cannot be written
        """
        build_dir = Path(build_dir)
        linker_text = self.get_linker_file()
        makefile_text = self.get_makefile()
        try:
            build_dir.mkdir(parents=True, exist_ok=True)
            (build_dir / self.config.linker_filename).write_text(linker_text, encoding="utf-8", newline="\n")
            (build_dir / makefile_name).write_text(makefile_text, encoding="utf-8", newline="\n")
        except OSError as e:
            self.sink.error_message(f"write_build_scripts(): {e}")
            return Status.IO_ERROR
        logger.debug(f"Wrote {self.config.linker_filename} and {makefile_name} to {build_dir}")
        return Status.SUCCESS

    # Resource budgets

    def get_flash_max_size(self) -> int:
        return self.config.program_flash_max_size

    def measure_sections(self, tools_directory: Path, program_dir: Path, program_name: str) -> SectionSizes:
        """Measure a linked image's sections with the target's size tool.

        Raises:
            MeasurementError: If the sections cannot be measured
        """
        measurer = SizeMeasurer(tools_directory, self.config.toolchain_prefix, host=self.host)
        return measurer.measure(Path(program_dir) / program_name)

    def is_program_ram_valid(
        self, tools_directory: Path, program_dir: Path, program_name: str
    ) -> BudgetReport:
        try:
            sizes = self.measure_sections(tools_directory, program_dir, program_name)
        except MeasurementError as e:
            self.sink.error_message(f"is_program_ram_valid(): {e}")
            return BudgetReport.failed(str(e))

        report = self.validator.check_ram(sizes)
        for region in report.regions:
            self.sink.note_message(
                f"is_program_ram_valid(): Estimated {region.name.upper()} usage is "
                f"{int(region.bytes_used):08X} / {int(region.capacity):08X}, {region.usage * 100:f}%"
            )
        return report

    def is_program_flash_valid(
        self, tools_directory: Path, program_dir: Path, program_name: str
    ) -> BudgetReport:
        try:
            sizes = self.measure_sections(tools_directory, program_dir, program_name)
        except MeasurementError as e:
            self.sink.error_message(f"is_program_flash_valid(): {e}")
            return BudgetReport.failed(str(e))

        report = self.validator.check_flash(sizes)
        flash = report.regions[0]
        self.sink.note_message(
            f"is_program_flash_valid(): progmem:{int(flash.bytes_used):08X}, usage:{flash.usage * 100:f}%"
        )
        return report

    # Device programming

    def load_binary_file(self, session: ProgrammingSession, binary_file_path: Union[str, Path]) -> Status:
        return self.programmer.load_binary_file(session, binary_file_path)

    def open_usb(self, session: ProgrammingSession) -> Status:
        return self.programmer.open_usb(session)

    def program_device(self, session: ProgrammingSession) -> Status:
        return self.programmer.program_device(session)

    def request_program_thread_exit(self) -> None:
        self.programmer.request_program_thread_exit()

    def get_programming_progress(self, session: ProgrammingSession) -> float:
        return self.programmer.get_programming_progress(session)

    def is_erase_done(self) -> bool:
        return self.programmer.is_erase_done()
