"""
avalon.ini project settings.

This module reads the optional ``avalon.ini`` file at the root of a
project and merges environment overrides on top of it.

Example avalon.ini:
    [avalon]
    target = rpi4b
    tools_dir = ${build_dir}/tools
    build_dir = build
    device_address = 192.168.1.27
    transfer_timeout = 60

Usage:
    settings = load_settings(Path("."))
    platform = create_platform(settings.target)
"""

import configparser
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

from ..errors import ConfigError

SETTINGS_FILENAME = "avalon.ini"
SECTION = "avalon"

DEFAULT_TARGET = "rpi4b"
DEFAULT_DEVICE_ADDRESS = "192.168.1.27"
DEFAULT_TRANSFER_TIMEOUT = 60.0

ENV_DEVICE_ADDRESS = "AVALON_DEVICE_ADDRESS"
ENV_RESOURCE_DIR = "AVALON_RESOURCE_DIR"


@dataclass
class ProjectSettings:
    """Settings for one Avalon project."""

    project_dir: Path
    target: str = DEFAULT_TARGET
    build_dir: Path = Path("build")
    tools_dir: Path = Path("build/tools")
    device_address: str = DEFAULT_DEVICE_ADDRESS
    transfer_timeout: float = DEFAULT_TRANSFER_TIMEOUT
    resource_dir: Optional[Path] = None
    bundle_url: Optional[str] = None
    bundle_checksums: Dict[str, str] = field(default_factory=dict)

    def resolve(self, path: Path) -> Path:
        """Resolve a settings path relative to the project directory."""
        return path if path.is_absolute() else self.project_dir / path

    @property
    def build_path(self) -> Path:
        return self.resolve(self.build_dir)

    @property
    def tools_path(self) -> Path:
        return self.resolve(self.tools_dir)


def _parse_checksums(raw: str) -> Dict[str, str]:
    # "name = sha256" pairs, one per line or comma separated
    checksums = {}
    for line in raw.replace(",", "\n").splitlines():
        line = line.strip()
        if not line:
            continue
        if "=" not in line and ":" not in line:
            raise ConfigError(f"Malformed bundle checksum entry: {line!r}")
        sep = "=" if "=" in line else ":"
        name, digest = line.split(sep, 1)
        checksums[name.strip()] = digest.strip()
    return checksums


def load_settings(
    project_dir: Path, environ: Optional[Mapping[str, str]] = None
) -> ProjectSettings:
    """
    Load project settings from avalon.ini and the environment.

    A missing avalon.ini yields the defaults. Environment variables win over
    values in the file.

    Args:
        project_dir: Project root directory
        environ: Environment mapping (defaults to os.environ)

    Returns:
        ProjectSettings for the project

    Raises:
        ConfigError: If avalon.ini cannot be parsed or holds invalid values
    """
    project_dir = Path(project_dir)
    environ = os.environ if environ is None else environ
    settings = ProjectSettings(project_dir=project_dir)

    ini_path = project_dir / SETTINGS_FILENAME
    if ini_path.exists():
        parser = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )
        try:
            parser.read(ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigError(f"Failed to parse {ini_path}: {e}") from e

        if SECTION in parser:
            try:
                section = parser[SECTION]
                values = {key: (section[key] or "").strip() for key in section}
            except configparser.Error as e:
                raise ConfigError(f"Failed to parse {ini_path}: {e}") from e
            settings = _apply_values(settings, values, ini_path)

    if environ.get(ENV_DEVICE_ADDRESS):
        settings = replace(settings, device_address=environ[ENV_DEVICE_ADDRESS])
    if environ.get(ENV_RESOURCE_DIR):
        settings = replace(settings, resource_dir=Path(environ[ENV_RESOURCE_DIR]))

    return settings


def _apply_values(
    settings: ProjectSettings, values: Dict[str, str], ini_path: Path
) -> ProjectSettings:
    updates: Dict[str, object] = {}

    if values.get("target"):
        updates["target"] = values["target"].lower()
    if values.get("build_dir"):
        updates["build_dir"] = Path(values["build_dir"])
    if values.get("tools_dir"):
        updates["tools_dir"] = Path(values["tools_dir"])
    elif "build_dir" in updates:
        updates["tools_dir"] = Path(values["build_dir"]) / "tools"
    if values.get("device_address"):
        updates["device_address"] = values["device_address"]
    if values.get("resource_dir"):
        updates["resource_dir"] = Path(values["resource_dir"])
    if values.get("bundle_url"):
        updates["bundle_url"] = values["bundle_url"].rstrip("/")
    if values.get("bundle_checksums"):
        updates["bundle_checksums"] = _parse_checksums(values["bundle_checksums"])

    if values.get("transfer_timeout"):
        try:
            timeout = float(values["transfer_timeout"])
        except ValueError:
            raise ConfigError(
                f"{ini_path}: transfer_timeout must be a number, "
                + f"got {values['transfer_timeout']!r}"
            )
        if timeout <= 0:
            raise ConfigError(f"{ini_path}: transfer_timeout must be positive")
        updates["transfer_timeout"] = timeout

    return replace(settings, **updates)  # type: ignore[arg-type]
