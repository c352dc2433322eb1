"""Hardware platforms for Avalon Build.

A platform is selected once at startup with ``create_platform``; everything
after that goes through the ``IPlatform`` interface.
"""

from typing import Dict, Optional, Type, Union

from ..config.settings import ProjectSettings
from ..deploy.transport import ITransport
from ..errors import UnsupportedTargetError
from ..host import HostDetector, HostOS
from ..messages import IMessageSink
from ..packages.archive_source import IArchiveSource
from .platform import IPlatform, PlatformBase, PlatformEnum
from .platform_rpi4 import PlatformRpi4

PLATFORMS: Dict[PlatformEnum, Type[PlatformBase]] = {
    PlatformEnum.RPI4B: PlatformRpi4,
}


def create_platform(
    target: Union[str, PlatformEnum],
    host: Optional[HostOS] = None,
    settings: Optional[ProjectSettings] = None,
    archive_source: Optional[IArchiveSource] = None,
    transport: Optional[ITransport] = None,
    sink: Optional[IMessageSink] = None,
    check_scripts: bool = True,
) -> PlatformBase:
    """
    Create the platform for a target.

    Args:
        target: Target name or PlatformEnum
        host: Host operating system (detected if None)
        settings: Project settings
        archive_source: Archive source override
        transport: Transfer transport override
        sink: Message sink
        check_scripts: Also require that every build script can be emitted
            on this host

    Returns:
        Configured platform

    Raises:
        UnsupportedTargetError: If the target is unknown or the host cannot
            build for it
    """
    platform_enum = target if isinstance(target, PlatformEnum) else PlatformEnum.parse(target)
    host = host or HostDetector.detect_host()

    platform_cls = PLATFORMS.get(platform_enum)
    if platform_cls is None:
        raise UnsupportedTargetError(f"No platform implementation for {platform_enum.value}")

    platform = platform_cls(
        platform_enum,
        host=host,
        settings=settings,
        archive_source=archive_source,
        transport=transport,
        sink=sink,
    )

    if check_scripts and host not in platform.image_builder.script_hosts():
        raise UnsupportedTargetError(
            f"{platform_enum.value} build scripts are not supported on {host.value} hosts"
        )

    return platform


__all__ = [
    "IPlatform",
    "PlatformBase",
    "PlatformEnum",
    "PlatformRpi4",
    "PLATFORMS",
    "create_platform",
]
