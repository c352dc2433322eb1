"""
Resource budget validation for built images.

Validation is the second of two steps. First the section sizes of a linked
image are measured (see ``size_measure``); then the measured bytes are
compared against the platform's capacities and safety ratios here. A
region passes only while ``bytes_used / capacity`` stays strictly below
its ratio, so usage exactly at the ratio fails.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..config.platform_config import PlatformConfig
from .size_measure import SectionSizes

# Section names follow the layout of boards that keep ITCM code, DMA
# buffers and progmem in sections of their own. The rpi4b linker script
# folds .text* into .text and .bss* into .bss. On that target ram1 reads
# zero and ram0 counts only .data and .bss; flash uses FLASH_SECTIONS.

# RAM0: program code placed in tightly coupled memory plus data and bss
RAM0_SECTIONS = (".text.itcm", ".data", ".bss")
# RAM1: DMA-capable buffers
RAM1_SECTIONS = (".bss.dma",)
PROGMEM_SECTION = ".text.progmem"
# Flash image contents when the image has no separate progmem section
FLASH_SECTIONS = (".init", ".text", ".rodata", ".init_array", ".ARM.exidx", ".eh_frame", ".data")


def usage_within(bytes_used: float, capacity: float, ratio: float) -> bool:
    """Whether usage stays strictly below a safety ratio."""
    return (bytes_used / capacity) < ratio


@dataclass
class RegionUsage:
    """Usage of one memory region (or the CPU) against its budget."""

    name: str
    bytes_used: float
    capacity: float
    ratio: float

    @property
    def usage(self) -> float:
        return self.bytes_used / self.capacity

    @property
    def valid(self) -> bool:
        return usage_within(self.bytes_used, self.capacity, self.ratio)

    @property
    def margin(self) -> float:
        """Fraction of capacity left before the ratio is reached."""
        return self.ratio - self.usage


@dataclass
class BudgetReport:
    """Outcome of a budget check, with per-region usage for display."""

    regions: List[RegionUsage] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.error is None and all(region.valid for region in self.regions)

    def region(self, name: str) -> Optional[RegionUsage]:
        for region in self.regions:
            if region.name == name:
                return region
        return None

    def usage_of(self, name: str) -> float:
        region = self.region(name)
        return region.usage if region else 0.0

    @property
    def ram1_usage(self) -> float:
        return self.usage_of("ram1")

    @property
    def flash_usage(self) -> float:
        return self.usage_of("flash")

    @classmethod
    def failed(cls, error: str) -> "BudgetReport":
        return cls(regions=[], error=error)


class ResourceBudgetValidator:
    """Applies a platform's capacities and safety ratios to section sizes."""

    def __init__(self, config: PlatformConfig):
        self.config = config

    def check_ram(self, sizes: SectionSizes) -> BudgetReport:
        """
        Check RAM usage of both RAM regions.

        Args:
            sizes: Measured section sizes

        Returns:
            BudgetReport with ``ram0`` and ``ram1`` regions
        """
        ram0_used = sizes.total(RAM0_SECTIONS)
        ram1_used = sizes.total(RAM1_SECTIONS)
        return BudgetReport(
            regions=[
                RegionUsage(
                    "ram0",
                    ram0_used,
                    self.config.program_ram_size,
                    self.config.program_ram0_safety_ratio,
                ),
                RegionUsage(
                    "ram1",
                    ram1_used,
                    self.config.program_ram_size,
                    self.config.program_ram1_safety_ratio,
                ),
            ]
        )

    def check_flash(self, sizes: SectionSizes) -> BudgetReport:
        """
        Check program flash usage.

        Images with a ``.text.progmem`` section are measured by that section
        alone; otherwise every section stored in the image counts.

        Args:
            sizes: Measured section sizes

        Returns:
            BudgetReport with a single ``flash`` region
        """
        if PROGMEM_SECTION in sizes:
            flash_used = sizes.get(PROGMEM_SECTION)
        else:
            flash_used = sizes.total(FLASH_SECTIONS)

        return BudgetReport(
            regions=[
                RegionUsage(
                    "flash",
                    flash_used,
                    self.config.program_flash_max_size,
                    self.config.common_safety_ratio,
                )
            ]
        )

    def check_cpu(self, estimated_load_percent: float) -> BudgetReport:
        """
        Check an estimated CPU load against the platform threshold.

        The platform's baseline CPU load is added to the estimate.

        Args:
            estimated_load_percent: Estimated load of user code, 0-100

        Returns:
            BudgetReport with a single ``cpu`` region
        """
        total = estimated_load_percent + self.config.base_cpu_load_percent
        return BudgetReport(
            regions=[
                RegionUsage(
                    "cpu",
                    total,
                    100.0,
                    self.config.cpu_safety_threshold / 100.0,
                )
            ]
        )
