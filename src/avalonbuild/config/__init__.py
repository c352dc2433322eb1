"""Configuration modules for Avalon Build."""

from .platform_config import CORE_VERSION, BuildFlags, CoreVersion, PlatformConfig
from .settings import ProjectSettings, load_settings

__all__ = [
    "PlatformConfig",
    "BuildFlags",
    "CoreVersion",
    "CORE_VERSION",
    "ProjectSettings",
    "load_settings",
]
