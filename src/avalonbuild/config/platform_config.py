"""
Platform configuration values.

A PlatformConfig describes one hardware target: which cross-compiler it
uses, what its build produces, and the resource envelope a build must fit
in. Each concrete platform fills one in when it is constructed and never
changes it afterwards.
"""

from dataclasses import dataclass

from ..errors import InvalidArgumentError


@dataclass(frozen=True)
class PlatformConfig:
    """Toolchain identity and resource limits for a hardware target."""

    toolchain_prefix: str
    toolchain_version: str
    build_output_binary: str
    programming_file: str
    linker_filename: str

    base_cpu_load_percent: float
    base_ram0_load_percent: float
    base_ram1_load_percent: float
    base_audio_buffers: int

    program_flash_max_size: int  # bytes
    program_ram_size: int  # bytes
    program_ram0_safety_ratio: float  # 0-1, linker calculated RAM0 ceiling
    program_ram1_safety_ratio: float  # 0-1, linker calculated RAM1 ceiling
    cpu_safety_threshold: float  # 0-100, estimated CPU ceiling
    common_safety_ratio: float  # 0-1, general purpose ceiling (flash)

    product_name: str
    mcu_type_name: str

    aux_functions: str = ""
    legacy_image_name: str = "kernel84.img"

    def validate(self) -> "PlatformConfig":
        """Check the configuration invariants.

        Returns:
            self, so construction can be chained

        Raises:
            InvalidArgumentError: If any field is out of range
        """
        if not self.toolchain_prefix:
            raise InvalidArgumentError("toolchain_prefix must not be empty")

        ratios = {
            "program_ram0_safety_ratio": self.program_ram0_safety_ratio,
            "program_ram1_safety_ratio": self.program_ram1_safety_ratio,
            "common_safety_ratio": self.common_safety_ratio,
        }
        for name, value in ratios.items():
            if not 0.0 < value <= 1.0:
                raise InvalidArgumentError(f"{name} must be in (0, 1], got {value}")

        if not 0.0 < self.cpu_safety_threshold <= 100.0:
            raise InvalidArgumentError(
                f"cpu_safety_threshold must be in (0, 100], got {self.cpu_safety_threshold}"
            )

        sizes = {
            "program_flash_max_size": self.program_flash_max_size,
            "program_ram_size": self.program_ram_size,
        }
        for name, value in sizes.items():
            if value <= 0:
                raise InvalidArgumentError(f"{name} must be positive, got {value}")

        return self


@dataclass(frozen=True)
class BuildFlags:
    """Switches applied to one Makefile emission."""

    is_debug: bool = False
    enable_o3: bool = False
    enable_fast_math: bool = False
    no_printf: bool = False

    @property
    def optimization_flag(self) -> str:
        # -O3 and -O2 are mutually exclusive
        return "-O3" if self.enable_o3 else "-O2"


@dataclass(frozen=True)
class CoreVersion:
    """Version of the prebuilt core library linked into every image."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @property
    def dat_filename(self) -> str:
        return f"core.{self}.dat"


CORE_VERSION = CoreVersion(major=1, minor=4, patch=0)
