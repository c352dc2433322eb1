"""
Section size measurement for linked images.

Runs the toolchain's ``size -A`` on an ELF file and parses the per-section
table it prints:

    Avalon.elf  :
    section            size      addr
    .init                 4    524288
    .text            104232    524292
    .data              1880    658432
    .bss              53248    660312
    Total            159364
"""

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..errors import MeasurementError
from ..host import HostOS


@dataclass
class SectionSizes:
    """Byte counts per section of a linked image."""

    sections: Dict[str, int] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.sections

    def get(self, name: str) -> int:
        return self.sections.get(name, 0)

    def total(self, names: Iterable[str]) -> int:
        return sum(self.get(name) for name in names)

    @staticmethod
    def parse(size_output: str) -> "SectionSizes":
        """
        Parse ``size -A`` output.

        Lines that are not ``<section> <size> ...`` rows (headers, the file
        name line, the Total line) are skipped.

        Args:
            size_output: Output from ``<prefix>-size -A``

        Returns:
            SectionSizes with every section found
        """
        sections: Dict[str, int] = {}

        for line in size_output.split("\n"):
            parts = line.split()
            if len(parts) < 2:
                continue
            name = parts[0]
            if not name.startswith("."):
                continue
            try:
                sections[name] = int(parts[1], 0)
            except ValueError:
                continue

        return SectionSizes(sections=sections)


class SizeMeasurer:
    """Measures section sizes with the toolchain's size utility."""

    def __init__(
        self,
        tools_directory: Path,
        toolchain_prefix: str,
        host: HostOS = HostOS.LINUX,
        timeout: Optional[float] = 30.0,
    ):
        self.tools_directory = Path(tools_directory)
        self.toolchain_prefix = toolchain_prefix
        self.host = host
        self.timeout = timeout

    @property
    def size_tool(self) -> Path:
        return self.tools_directory / "bin" / f"{self.toolchain_prefix}-size{self.host.exe_suffix}"

    def measure(self, elf_path: Path) -> SectionSizes:
        """
        Measure the sections of an ELF file.

        Args:
            elf_path: Linked image

        Returns:
            SectionSizes parsed from the size tool

        Raises:
            MeasurementError: If the tool or image is missing, or the tool fails
        """
        elf_path = Path(elf_path)
        if not self.size_tool.exists():
            raise MeasurementError(f"size tool not found: {self.size_tool}")
        if not elf_path.exists():
            raise MeasurementError(f"image not found: {elf_path}")

        cmd = [str(self.size_tool), "-A", str(elf_path)]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
                cwd=elf_path.parent,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MeasurementError(f"Failed to run {self.size_tool.name}: {e}") from e

        if result.returncode != 0:
            raise MeasurementError(
                f"{self.size_tool.name} exited with {result.returncode}: {result.stderr.strip()}"
            )

        return SectionSizes.parse(result.stdout)
