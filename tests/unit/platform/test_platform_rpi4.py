"""Unit tests for platform selection and the Raspberry Pi 4B platform."""

from pathlib import Path
from typing import List
from unittest.mock import patch

import pytest

from avalonbuild.build.size_measure import SectionSizes
from avalonbuild.config.platform_config import BuildFlags
from avalonbuild.config.settings import ProjectSettings
from avalonbuild.deploy.programmer import ProgrammingSession
from avalonbuild.deploy.transport import ITransport, TftpTransport, TransferResult
from avalonbuild.errors import MeasurementError, Status, UnsupportedTargetError
from avalonbuild.host import HostOS
from avalonbuild.packages.archive_source import InMemoryArchiveSource, ResourceArchiveSource
from avalonbuild.packages.toolchain_bundle import ToolchainState
from avalonbuild.platform import PlatformEnum, PlatformRpi4, create_platform

MEASURE = "avalonbuild.platform.platform.SizeMeasurer.measure"


class FakeTransport(ITransport):
    """Transport that always succeeds."""

    def __init__(self):
        self.sent: List[Path] = []
        self.cancelled = False

    def send(self, image_path: Path) -> TransferResult:
        self.sent.append(image_path)
        return TransferResult(success=True, output="Sent", returncode=0)

    def cancel(self) -> None:
        self.cancelled = True


class TestCreatePlatform:
    """Test cases for create_platform."""

    def test_rpi4(self, sink):
        """Test creating the Raspberry Pi 4B platform."""
        platform = create_platform("rpi4b", host=HostOS.LINUX, archive_source=InMemoryArchiveSource(), sink=sink)

        assert isinstance(platform, PlatformRpi4)
        assert platform.platform_enum is PlatformEnum.RPI4B
        assert platform.host is HostOS.LINUX

    def test_target_name_is_normalized(self):
        """Test that target names are case-insensitive."""
        assert PlatformEnum.parse(" RPI4B ") is PlatformEnum.RPI4B

    def test_unknown_target(self):
        """Test that an unknown target is fatal."""
        with pytest.raises(UnsupportedTargetError, match="Unknown target 'teensy41'"):
            create_platform("teensy41", host=HostOS.LINUX)

    @pytest.mark.parametrize("host", [HostOS.WINDOWS, HostOS.MACOS])
    def test_host_without_build_scripts(self, host):
        """Test that hosts unable to emit every script are rejected at startup."""
        with pytest.raises(UnsupportedTargetError, match="build scripts are not supported"):
            create_platform("rpi4b", host=host, archive_source=InMemoryArchiveSource())

    def test_skip_script_check(self):
        """Test that the script check can be skipped for toolchain-only use."""
        platform = create_platform(
            "rpi4b", host=HostOS.WINDOWS, archive_source=InMemoryArchiveSource(), check_scripts=False
        )

        assert platform.bundle.archive_names == [
            "win64ToolsA.zip",
            "win64ToolsB.zip",
            "win64ToolsC.zip",
            "win64ToolsD.zip",
        ]
        with pytest.raises(UnsupportedTargetError):
            platform.get_makefile()

    def test_default_transport_uses_settings(self, tmp_path):
        """Test that the TFTP transport is built from project settings."""
        settings = ProjectSettings(project_dir=tmp_path, device_address="10.1.2.3", transfer_timeout=9.0)
        platform = create_platform("rpi4b", host=HostOS.LINUX, settings=settings)

        transport = platform.programmer.transport
        assert isinstance(transport, TftpTransport)
        assert transport.address == "10.1.2.3"
        assert transport.timeout == 9.0

    def test_resource_dir_from_settings(self, tmp_path):
        """Test that archives are read from the configured resource directory."""
        settings = ProjectSettings(project_dir=tmp_path, resource_dir=tmp_path / "res")
        platform = create_platform("rpi4b", host=HostOS.LINUX, settings=settings)

        assert isinstance(platform.archive_source, ResourceArchiveSource)
        assert platform.archive_source.directory == tmp_path / "res" / "rpi4b"


class TestPlatformRpi4:
    """Test cases for the Raspberry Pi 4B platform."""

    @pytest.fixture
    def archives(self, make_zip):
        return InMemoryArchiveSource(
            {
                "linuxTools.zip": make_zip({"bin/aarch64-none-elf-size": "#!/bin/sh\n"}),
                "includes_RPI4B.zip": make_zip({"include/avalon.h": "#pragma once\n"}),
                "libs_RPI4B.zip": make_zip({"lib/core.1.4.0.dat": "core"}),
            }
        )

    @pytest.fixture
    def transport(self):
        return FakeTransport()

    @pytest.fixture
    def platform(self, archives, transport, sink, tmp_path):
        settings = ProjectSettings(project_dir=tmp_path)
        return create_platform(
            PlatformEnum.RPI4B,
            host=HostOS.LINUX,
            settings=settings,
            archive_source=archives,
            transport=transport,
            sink=sink,
        )

    def test_config(self, platform):
        """Test the target constants."""
        config = platform.config

        assert config.toolchain_prefix == "aarch64-none-elf"
        assert config.toolchain_version == "12.2.1"
        assert config.build_output_binary == "Avalon.img"
        assert config.programming_file == "Avalon.img"
        assert config.linker_filename == "linker.ld"
        assert config.program_flash_max_size == 33554432
        assert config.program_ram_size == 536870912
        assert config.program_ram0_safety_ratio == 0.90
        assert config.program_ram1_safety_ratio == 0.98
        assert config.cpu_safety_threshold == 95.0
        assert config.common_safety_ratio == 0.90
        assert config.base_audio_buffers == 6
        assert config.product_name == "STRIDE-MKII"
        assert config.mcu_type_name == "RPI4B"

    def test_extra_libs_and_flash(self, platform):
        """Test link libraries and flash size."""
        assert platform.get_extra_include_libs() == ["arm_math"]
        assert platform.get_flash_max_size() == 33554432

    def test_core_archives(self, platform, archives):
        """Test access to the core include and library archives."""
        assert platform.get_core_includes_zip() == archives.archives["includes_RPI4B.zip"]
        assert platform.get_core_libs_zip_size() == len(archives.archives["libs_RPI4B.zip"])
        assert platform.get_core_includes_zip_size() > 0

    def test_missing_core_archive(self, platform, archives, sink):
        """Test that a missing core archive reads as empty and is reported."""
        del archives.archives["libs_RPI4B.zip"]

        assert platform.get_core_libs_zip() == b""
        assert platform.get_core_libs_zip_size() == 0
        assert "libs_RPI4B.zip" in sink.errors[-1]

    def test_no_core_archives(self, sink, tmp_path):
        """Test that an empty archive source never raises from the core accessors."""
        platform = create_platform(
            "rpi4b",
            host=HostOS.LINUX,
            settings=ProjectSettings(project_dir=tmp_path),
            archive_source=InMemoryArchiveSource(),
            transport=FakeTransport(),
            sink=sink,
        )

        assert platform.get_core_includes_zip_size() == 0
        assert platform.get_core_libs_zip_size() == 0
        assert any("includes_RPI4B.zip" in e for e in sink.errors)

    def test_unzip_build_tools(self, platform, tmp_path):
        """Test extracting the Linux toolchain."""
        tools = tmp_path / "tools"

        assert platform.toolchain_state(tools) is ToolchainState.NOT_PRESENT
        assert platform.unzip_build_tools(tools) is Status.SUCCESS
        assert (tools / "bin" / "aarch64-none-elf-size").is_file()
        assert platform.toolchain_state(tools) is ToolchainState.PRESENT

    def test_scripts(self, platform):
        """Test script getters delegate to the image builder."""
        assert platform.get_linker_file().startswith("ENTRY(_start)")
        assert "kernel84.img" in platform.get_makefile()
        assert "core.1.4.0.dat" in platform.create_test_makefile("t", "l", "e.dat", "app", "ir", ["inc"])
        assert "-O3" in platform.get_efx_makefile_inc(BuildFlags(enable_o3=True))

    def test_write_build_scripts(self, platform, tmp_path):
        """Test writing the linker script and Makefile."""
        build_dir = tmp_path / "build"

        assert platform.write_build_scripts(build_dir) is Status.SUCCESS
        assert (build_dir / "linker.ld").read_text() == platform.get_linker_file()
        assert (build_dir / "Makefile").read_text() == platform.get_makefile()

    def test_write_build_scripts_failure(self, platform, tmp_path, sink):
        """Test that an unwritable build directory is an IO error."""
        blocker = tmp_path / "build"
        blocker.write_text("not a directory")

        assert platform.write_build_scripts(blocker) is Status.IO_ERROR
        assert "write_build_scripts()" in sink.errors[-1]

    def test_ram_valid(self, platform, tmp_path, sink):
        """Test RAM validation from measured sections."""
        sizes = SectionSizes({".text.itcm": 1024, ".data": 2048, ".bss": 4096, ".bss.dma": 512})

        with patch(MEASURE, return_value=sizes) as measure:
            report = platform.is_program_ram_valid(tmp_path / "tools", tmp_path / "build", "Avalon.elf")

        measure.assert_called_once_with(tmp_path / "build" / "Avalon.elf")
        assert report.valid
        assert report.region("ram0").bytes_used == 1024 + 2048 + 4096
        assert any("RAM0 usage" in note for note in sink.notes)

    def test_flash_over_budget(self, platform, tmp_path):
        """Test flash validation rejecting an oversized image."""
        sizes = SectionSizes({".text.progmem": 31 * 1024 * 1024})

        with patch(MEASURE, return_value=sizes):
            report = platform.is_program_flash_valid(tmp_path / "tools", tmp_path / "build", "Avalon.elf")

        assert not report.valid
        assert report.flash_usage == pytest.approx(31 / 32)

    def test_measurement_failure(self, platform, tmp_path, sink):
        """Test that a failed measurement gives an invalid report."""
        with patch(MEASURE, side_effect=MeasurementError("size tool not found")):
            report = platform.is_program_flash_valid(tmp_path / "tools", tmp_path / "build", "Avalon.elf")

        assert not report.valid
        assert report.error == "size tool not found"
        assert "size tool not found" in sink.errors[-1]

    def test_programming_flow(self, platform, transport, tmp_path):
        """Test load, open and program through the platform."""
        image = tmp_path / "Avalon.img"
        image.write_bytes(b"\x00" * 16)
        session = ProgrammingSession()

        assert platform.load_binary_file(session, image) is Status.SUCCESS
        assert platform.open_usb(session) is Status.SUCCESS
        assert platform.program_device(session) is Status.SUCCESS
        assert platform.get_programming_progress(session) == 1.0
        assert transport.sent == [tmp_path / "kernel84.img"]
        assert platform.is_erase_done()

        platform.request_program_thread_exit()
        assert transport.cancelled
