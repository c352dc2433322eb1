"""Raspberry Pi 4B platform (STRIDE-MKII).

The board runs bare-metal aarch64 images built with the Arm GNU toolchain
12.2.1 and boots them over TFTP from the build machine.
"""

from typing import List

from ..build.image_builder import ImageBuilder
from ..build.image_builder_rpi4 import ImageBuilderRpi4
from ..config.platform_config import PlatformConfig
from ..deploy.transport import ITransport, TftpTransport
from ..host import HostOS
from .platform import PlatformBase


class PlatformRpi4(PlatformBase):
    """Raspberry Pi 4B target."""

    RESOURCE_NAME = "rpi4b"

    # Windows resources are split into four archives to stay under the
    # per-resource size limit
    TOOL_ARCHIVES = {
        HostOS.LINUX: ("linuxTools.zip",),
        HostOS.MACOS: ("macosTools.zip",),
        HostOS.WINDOWS: (
            "win64ToolsA.zip",
            "win64ToolsB.zip",
            "win64ToolsC.zip",
            "win64ToolsD.zip",
        ),
    }

    # GNU make is bundled on macOS
    EXTRA_EXECUTABLES = {HostOS.MACOS: ("gmake",)}

    def config_platform(self) -> None:
        self._config = PlatformConfig(
            toolchain_prefix="aarch64-none-elf",
            toolchain_version="12.2.1",
            build_output_binary="Avalon.img",
            programming_file="Avalon.img",
            linker_filename="linker.ld",
            aux_functions="",
            base_cpu_load_percent=2.0,
            base_ram0_load_percent=0.1,
            base_ram1_load_percent=0.1,
            base_audio_buffers=6,
            program_flash_max_size=33554432,  # 32 MiB
            program_ram_size=536870912,  # 512 MiB
            program_ram0_safety_ratio=0.90,
            program_ram1_safety_ratio=0.98,
            cpu_safety_threshold=95.0,
            common_safety_ratio=0.90,
            product_name="STRIDE-MKII",
            mcu_type_name="RPI4B",
        )

    def get_extra_include_libs(self) -> List[str]:
        return ["arm_math"]

    def create_image_builder(self) -> ImageBuilder:
        return ImageBuilderRpi4(self.config, self.host)

    def create_transport(self) -> ITransport:
        return TftpTransport(
            self.settings.device_address, timeout=self.settings.transfer_timeout
        )
