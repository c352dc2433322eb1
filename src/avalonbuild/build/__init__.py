"""
Build script emission and image validation for Avalon Build.

This module emits linker scripts and Makefiles for each target, measures
the sections of linked images, and checks them against resource budgets.
"""

from .image_builder import ImageBuilder
from .image_builder_rpi4 import ImageBuilderRpi4
from .resource_budget import BudgetReport, RegionUsage, ResourceBudgetValidator, usage_within
from .size_measure import SectionSizes, SizeMeasurer

__all__ = [
    "ImageBuilder",
    "ImageBuilderRpi4",
    "BudgetReport",
    "RegionUsage",
    "ResourceBudgetValidator",
    "usage_within",
    "SectionSizes",
    "SizeMeasurer",
]
