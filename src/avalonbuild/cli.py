"""
Command-line interface for Avalon Build.

This module provides the `avalon` CLI tool for preparing toolchains, emitting
build scripts, checking resource budgets and programming devices.
"""

import argparse
import sys
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Tuple

from avalonbuild import __version__
from avalonbuild.build.build_utils import BudgetReportPrinter
from avalonbuild.cli_utils import ErrorFormatter, PathValidator
from avalonbuild.config.settings import ProjectSettings, load_settings
from avalonbuild.deploy.programmer import ProgrammingSession, ProgrammingState
from avalonbuild.errors import ConfigError, UnsupportedTargetError
from avalonbuild.messages import configure_logging
from avalonbuild.platform import PlatformBase, create_platform


@dataclass
class ToolsArgs:
    """Arguments for the tools command."""

    project_dir: Path
    target: Optional[str] = None
    fetch: bool = False
    verbose: bool = False


@dataclass
class ScriptsArgs:
    """Arguments for the scripts command."""

    project_dir: Path
    target: Optional[str] = None
    output: Optional[Path] = None
    verbose: bool = False


@dataclass
class CheckArgs:
    """Arguments for the check command."""

    project_dir: Path
    target: Optional[str] = None
    program: Optional[str] = None
    verbose: bool = False


@dataclass
class ProgramArgs:
    """Arguments for the program command."""

    project_dir: Path
    target: Optional[str] = None
    image: Optional[Path] = None
    address: Optional[str] = None
    verbose: bool = False


def _open_project(
    project_dir: Path, target: Optional[str], address: Optional[str] = None
) -> Tuple[ProjectSettings, PlatformBase]:
    settings = load_settings(project_dir)
    if address:
        settings = replace(settings, device_address=address)
    platform = create_platform(target or settings.target, settings=settings)
    return settings, platform


def tools_command(args: ToolsArgs) -> None:
    """Extract the cross-compiler toolchain into the tools directory.

    Examples:
        avalon tools                 # Extract bundled archives
        avalon tools --fetch         # Download missing archives first
    """
    print(f"Avalon Build v{__version__}")
    print()

    try:
        settings, platform = _open_project(args.project_dir, args.target)

        if args.fetch:
            if not settings.bundle_url:
                ErrorFormatter.print_error(
                    "Fetch failed!", "No bundle_url is set in the [avalon] section of avalon.ini."
                )
                sys.exit(1)
            status = platform.bundle.fetch_archives(settings.bundle_url, settings.bundle_checksums)
            if not status.ok:
                ErrorFormatter.print_error("Fetch failed!", f"Status: {status.name}")
                sys.exit(1)

        tools_path = settings.tools_path
        print(f"Extracting {platform.platform_enum.value} toolchain to {tools_path}...")
        status = platform.unzip_build_tools(tools_path)

        if status.ok:
            ErrorFormatter.print_success("Toolchain ready")
            print()
            print(f"Tools: {tools_path}")
            sys.exit(0)
        else:
            ErrorFormatter.print_error("Extraction failed!", f"Status: {status.name}")
            sys.exit(1)

    except ConfigError as e:
        ErrorFormatter.handle_config_error(e)
    except UnsupportedTargetError as e:
        ErrorFormatter.handle_unsupported_target(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def scripts_command(args: ScriptsArgs) -> None:
    """Write the linker script and Makefile for the target.

    Examples:
        avalon scripts               # Write into the build directory
        avalon scripts -o out        # Write into ./out
    """
    print(f"Avalon Build v{__version__}")
    print()

    try:
        settings, platform = _open_project(args.project_dir, args.target)
        output = settings.resolve(args.output) if args.output else settings.build_path

        status = platform.write_build_scripts(output)
        if status.ok:
            ErrorFormatter.print_success("Build scripts written")
            print()
            print(f"Linker script: {output / platform.config.linker_filename}")
            print(f"Makefile:      {output / 'Makefile'}")
            sys.exit(0)
        else:
            ErrorFormatter.print_error("Writing build scripts failed!", f"Status: {status.name}")
            sys.exit(1)

    except ConfigError as e:
        ErrorFormatter.handle_config_error(e)
    except UnsupportedTargetError as e:
        ErrorFormatter.handle_unsupported_target(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def check_command(args: CheckArgs) -> None:
    """Check a linked program against the target's RAM and flash budgets.

    Examples:
        avalon check                 # Check build/Avalon.elf
        avalon check -p app.elf      # Check build/app.elf
    """
    print(f"Avalon Build v{__version__}")
    print()

    try:
        settings, platform = _open_project(args.project_dir, args.target)
        program = args.program or Path(platform.config.build_output_binary).with_suffix(".elf").name

        ram = platform.is_program_ram_valid(settings.tools_path, settings.build_path, program)
        flash = platform.is_program_flash_valid(settings.tools_path, settings.build_path, program)

        print()
        BudgetReportPrinter.print_report("RAM", ram)
        BudgetReportPrinter.print_report("Flash", flash)

        if ram.valid and flash.valid:
            ErrorFormatter.print_success("Program fits the target")
            sys.exit(0)
        else:
            ErrorFormatter.print_error("Resource check failed!", f"{program} exceeds the target budget")
            sys.exit(1)

    except ConfigError as e:
        ErrorFormatter.handle_config_error(e)
    except UnsupportedTargetError as e:
        ErrorFormatter.handle_unsupported_target(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def program_command(args: ProgramArgs) -> None:
    """Transfer a built image to the device.

    Examples:
        avalon program                       # Program build/Avalon.img
        avalon program -a 192.168.1.40       # Program a different board
    """
    print(f"Avalon Build v{__version__}")
    print()

    platform: Optional[PlatformBase] = None
    worker: Optional[threading.Thread] = None
    try:
        settings, platform = _open_project(args.project_dir, args.target, args.address)
        image = settings.resolve(args.image) if args.image else settings.build_path / platform.config.programming_file

        session = ProgrammingSession()
        status = platform.load_binary_file(session, image)
        if not status.ok:
            raise FileNotFoundError(f"Image not found: {image}")

        status = platform.open_usb(session)
        if not status.ok:
            ErrorFormatter.print_error("Programming failed!", f"Status: {status.name}")
            sys.exit(1)

        print(f"Programming {image.name} ({session.binary_size_bytes} bytes) to {settings.device_address}...")

        # Program on a worker so Ctrl+C can cancel the transfer
        worker = threading.Thread(target=platform.program_device, args=(session,), daemon=True)
        worker.start()
        while worker.is_alive():
            worker.join(timeout=0.2)

        if session.state is ProgrammingState.SUCCEEDED:
            ErrorFormatter.print_success("Programming successful!")
            sys.exit(0)
        else:
            ErrorFormatter.print_error("Programming failed!", f"Status: {session.status.name}")
            sys.exit(1)

    except ConfigError as e:
        ErrorFormatter.handle_config_error(e)
    except UnsupportedTargetError as e:
        ErrorFormatter.handle_unsupported_target(e)
    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except KeyboardInterrupt:
        if platform is not None:
            platform.request_program_thread_exit()
        if worker is not None:
            # The transfer tool must be gone before the process exits
            worker.join()
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "-t",
        "--target",
        default=None,
        help="Hardware target (default: from avalon.ini, else rpi4b)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )


def main() -> None:
    """avalon - firmware build tool for Avalon hardware targets."""
    parser = argparse.ArgumentParser(
        prog="avalon",
        description="avalon - firmware build tool for Avalon hardware targets",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"avalon {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Tools command
    tools_parser = subparsers.add_parser(
        "tools",
        help="Extract the cross-compiler toolchain",
    )
    _add_common_arguments(tools_parser)
    tools_parser.add_argument(
        "--fetch",
        action="store_true",
        help="Download missing toolchain archives from bundle_url first",
    )

    # Scripts command
    scripts_parser = subparsers.add_parser(
        "scripts",
        help="Write the linker script and Makefile",
    )
    _add_common_arguments(scripts_parser)
    scripts_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output directory (default: build directory)",
    )

    # Check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check a linked program against RAM and flash budgets",
    )
    _add_common_arguments(check_parser)
    check_parser.add_argument(
        "-p",
        "--program",
        default=None,
        help="ELF file name inside the build directory",
    )

    # Program command
    program_parser = subparsers.add_parser(
        "program",
        help="Transfer a built image to the device",
    )
    _add_common_arguments(program_parser)
    program_parser.add_argument(
        "-i",
        "--image",
        type=Path,
        default=None,
        help="Image to program (default: the target's programming file)",
    )
    program_parser.add_argument(
        "-a",
        "--address",
        default=None,
        help="Device address (default: from avalon.ini or AVALON_DEVICE_ADDRESS)",
    )

    # Parse arguments
    parsed_args = parser.parse_args()

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)
    configure_logging(parsed_args.verbose)

    # Execute command
    if parsed_args.command == "tools":
        tools_command(
            ToolsArgs(
                project_dir=parsed_args.project_dir,
                target=parsed_args.target,
                fetch=parsed_args.fetch,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "scripts":
        scripts_command(
            ScriptsArgs(
                project_dir=parsed_args.project_dir,
                target=parsed_args.target,
                output=parsed_args.output,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "check":
        check_command(
            CheckArgs(
                project_dir=parsed_args.project_dir,
                target=parsed_args.target,
                program=parsed_args.program,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "program":
        program_command(
            ProgramArgs(
                project_dir=parsed_args.project_dir,
                target=parsed_args.target,
                image=parsed_args.image,
                address=parsed_args.address,
                verbose=parsed_args.verbose,
            )
        )


if __name__ == "__main__":
    main()
