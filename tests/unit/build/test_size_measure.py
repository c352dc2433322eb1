"""Unit tests for section size measurement."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from avalonbuild.build.size_measure import SectionSizes, SizeMeasurer
from avalonbuild.errors import MeasurementError
from avalonbuild.host import HostOS

SIZE_OUTPUT = """Avalon.elf  :
section              size      addr
.init                   4    524288
.text              104232    524292
.rodata             12000    628524
.data                1880    658432
.bss                53248    660312
.bss.dma             4096    713560
.comment               18         0
Total              175478


"""


class TestSectionSizes:
    """Test cases for parsing size -A output."""

    def test_parse(self):
        """Test parsing a size -A table."""
        sizes = SectionSizes.parse(SIZE_OUTPUT)

        assert sizes.get(".text") == 104232
        assert sizes.get(".bss.dma") == 4096
        assert ".init" in sizes
        assert "Total" not in sizes
        assert "section" not in sizes

    def test_missing_section_is_zero(self):
        """Test that an absent section counts as zero bytes."""
        sizes = SectionSizes.parse(SIZE_OUTPUT)

        assert sizes.get(".text.progmem") == 0
        assert sizes.total([".data", ".bss", ".text.itcm"]) == 1880 + 53248

    def test_parse_hex(self):
        """Test sizes printed in hexadecimal."""
        sizes = SectionSizes.parse(".text 0x100 0x80000\n")

        assert sizes.get(".text") == 256

    def test_parse_empty(self):
        """Test that empty output has no sections."""
        assert SectionSizes.parse("").sections == {}


class TestSizeMeasurer:
    """Test cases for SizeMeasurer."""

    @pytest.fixture
    def tools(self, tmp_path):
        """Tools directory with a size tool."""
        bin_dir = tmp_path / "tools" / "bin"
        bin_dir.mkdir(parents=True)
        (bin_dir / "aarch64-none-elf-size").write_text("#!/bin/sh\n")
        return tmp_path / "tools"

    @pytest.fixture
    def elf(self, tmp_path):
        path = tmp_path / "build" / "Avalon.elf"
        path.parent.mkdir()
        path.write_bytes(b"\x7fELF")
        return path

    def test_size_tool_path(self, tmp_path):
        """Test the size tool location per host."""
        assert SizeMeasurer(tmp_path, "aarch64-none-elf").size_tool == tmp_path / "bin" / "aarch64-none-elf-size"
        assert (
            SizeMeasurer(tmp_path, "aarch64-none-elf", host=HostOS.WINDOWS).size_tool.name
            == "aarch64-none-elf-size.exe"
        )

    def test_measure(self, tools, elf):
        """Test running the size tool and parsing its output."""
        completed = MagicMock(returncode=0, stdout=SIZE_OUTPUT, stderr="")

        with patch("avalonbuild.build.size_measure.subprocess.run", return_value=completed) as run:
            sizes = SizeMeasurer(tools, "aarch64-none-elf").measure(elf)

        assert sizes.get(".text") == 104232
        cmd = run.call_args[0][0]
        assert cmd == [str(tools / "bin" / "aarch64-none-elf-size"), "-A", str(elf)]

    def test_missing_tool(self, tmp_path, elf):
        """Test that a missing size tool raises MeasurementError."""
        with pytest.raises(MeasurementError, match="size tool not found"):
            SizeMeasurer(tmp_path / "tools", "aarch64-none-elf").measure(elf)

    def test_missing_elf(self, tools, tmp_path):
        """Test that a missing image raises MeasurementError."""
        with pytest.raises(MeasurementError, match="image not found"):
            SizeMeasurer(tools, "aarch64-none-elf").measure(tmp_path / "missing.elf")

    def test_tool_fails(self, tools, elf):
        """Test that a nonzero exit raises MeasurementError."""
        completed = MagicMock(returncode=1, stdout="", stderr="File format not recognized")

        with patch("avalonbuild.build.size_measure.subprocess.run", return_value=completed):
            with pytest.raises(MeasurementError, match="File format not recognized"):
                SizeMeasurer(tools, "aarch64-none-elf").measure(elf)

    def test_tool_times_out(self, tools, elf):
        """Test that a hung tool raises MeasurementError."""
        with patch(
            "avalonbuild.build.size_measure.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="size", timeout=30),
        ):
            with pytest.raises(MeasurementError, match="Failed to run"):
                SizeMeasurer(tools, "aarch64-none-elf").measure(elf)
