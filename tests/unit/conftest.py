"""Shared fixtures for avalonbuild unit tests."""

import io
import zipfile

import pytest

from avalonbuild.config.platform_config import PlatformConfig
from avalonbuild.messages import RecordingMessageSink


@pytest.fixture
def rpi4_config():
    """PlatformConfig with the Raspberry Pi 4B values."""
    return PlatformConfig(
        toolchain_prefix="aarch64-none-elf",
        toolchain_version="12.2.1",
        build_output_binary="Avalon.img",
        programming_file="Avalon.img",
        linker_filename="linker.ld",
        base_cpu_load_percent=2.0,
        base_ram0_load_percent=0.1,
        base_ram1_load_percent=0.1,
        base_audio_buffers=6,
        program_flash_max_size=33554432,
        program_ram_size=536870912,
        program_ram0_safety_ratio=0.90,
        program_ram1_safety_ratio=0.98,
        cpu_safety_threshold=95.0,
        common_safety_ratio=0.90,
        product_name="STRIDE-MKII",
        mcu_type_name="RPI4B",
    )


@pytest.fixture
def sink():
    """Message sink that records errors and notes."""
    return RecordingMessageSink()


@pytest.fixture
def make_zip():
    """Factory building zip archive bytes from a {name: content} mapping."""

    def _make_zip(files):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, content in files.items():
                zf.writestr(name, content)
        return buffer.getvalue()

    return _make_zip


@pytest.fixture
def make_damaged_zip(make_zip):
    """Factory building a zip whose single member has a broken deflate stream.

    The central directory stays intact, so the archive opens and lists
    normally and only fails once the member is decompressed.
    """

    def _make_damaged_zip(name="bin/tool"):
        content = "".join(f"line {i}\n" for i in range(2000))
        data = bytearray(make_zip({name: content}))
        name_len = int.from_bytes(data[26:28], "little")
        extra_len = int.from_bytes(data[28:30], "little")
        start = 30 + name_len + extra_len
        # 0xFF selects the reserved deflate block type
        data[start:start + 20] = b"\xff" * 20
        return bytes(data)

    return _make_damaged_zip
