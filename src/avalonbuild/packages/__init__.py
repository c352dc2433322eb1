"""Package management for Avalon Build.

This module handles the toolchain bundles and core archives each target
ships with, and fetching bundle archives missing from an install.
"""

from .archive_source import (
    DEFAULT_RESOURCE_DIR,
    IArchiveSource,
    InMemoryArchiveSource,
    ResourceArchiveSource,
    resource_dir_for,
)
from .archive_utils import extract_zip_bytes, list_zip_members
from .downloader import PackageDownloader
from .toolchain_bundle import ToolchainBundle, ToolchainState

__all__ = [
    "DEFAULT_RESOURCE_DIR",
    "IArchiveSource",
    "InMemoryArchiveSource",
    "ResourceArchiveSource",
    "resource_dir_for",
    "extract_zip_bytes",
    "list_zip_members",
    "PackageDownloader",
    "ToolchainBundle",
    "ToolchainState",
]
