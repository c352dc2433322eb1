"""Build utilities for Avalon Build.

This module provides utility functions for build operations like
printing resource budget reports and removing build directories.
"""

import os
import shutil
import stat
import sys
import time
from pathlib import Path
from typing import Any, Callable

from .resource_budget import BudgetReport


class BudgetReportPrinter:
    """Utility class for printing resource budget reports."""

    @staticmethod
    def print_report(title: str, report: BudgetReport) -> None:
        """
        Print a resource budget report in a formatted display.

        Args:
            title: Heading for the report
            report: Report from the resource budget validator
        """
        print(f"{title}:")
        if report.error:
            print(f"  error: {report.error}")
            return

        for region in report.regions:
            verdict = "ok" if region.valid else "OVER BUDGET"
            print(
                f"  {region.name:<6} {region.bytes_used:>12} / {region.capacity:<12}"
                f" {region.usage * 100:6.2f}% (limit {region.ratio * 100:.1f}%) {verdict}"
            )


def remove_readonly(func: Callable[[str], None], path: str, excinfo: Any) -> None:
    """
    Error handler for shutil.rmtree on Windows.

    Read-only files cannot be deleted on Windows; clear the attribute and
    retry the operation.

    Args:
        func: The function that raised the exception
        path: The path to the file/directory
        excinfo: Exception information (unused)
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)


def safe_rmtree(path: Path, max_retries: int = 3) -> None:
    """
    Safely remove a directory tree, handling Windows-specific issues.

    Args:
        path: Path to directory to remove
        max_retries: Maximum number of retry attempts for locked files

    Raises:
        OSError: If directory cannot be removed after all retries
    """
    if not path.exists():
        return

    for attempt in range(max_retries):
        try:
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=remove_readonly)
            else:
                shutil.rmtree(path, onerror=remove_readonly)
            return
        except OSError as e:
            if attempt < max_retries - 1:
                # Files might be temporarily locked
                time.sleep(0.5)
            else:
                raise OSError(
                    f"Failed to remove directory {path} after {max_retries} attempts: {e}"
                ) from e
