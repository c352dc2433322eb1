"""Archive Extraction Utilities.

Toolchain bundles are zip archives held in memory. They are unpacked
straight from their bytes into the tools directory, without staging the
archive on disk first.
"""

import io
import zipfile
import zlib
from pathlib import Path
from typing import List

from ..errors import ExtractionError


def _is_within(base: Path, candidate: Path) -> bool:
    try:
        candidate.relative_to(base)
        return True
    except ValueError:
        return False


def list_zip_members(data: bytes) -> List[str]:
    """List member names of an in-memory zip archive.

    Raises:
        ExtractionError: If the bytes are not a readable zip archive
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
            return zf.namelist()
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractionError(f"Unreadable archive: {e}") from e


def extract_zip_bytes(data: bytes, dest_dir: Path, description: str = "archive") -> int:
    """Extract an in-memory zip archive into a directory.

    Members whose paths would land outside ``dest_dir`` are rejected and
    nothing is written.

    Args:
        data: Zip archive bytes
        dest_dir: Existing destination directory
        description: Name used in error messages

    Returns:
        Number of archive members extracted

    Raises:
        ExtractionError: If the archive is corrupt or cannot be written
    """
    dest_dir = Path(dest_dir)
    base = dest_dir.resolve()

    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
            members = zf.infolist()
            for member in members:
                target = (base / member.filename).resolve()
                if not _is_within(base, target):
                    raise ExtractionError(
                        f"Refusing to extract {member.filename} outside {dest_dir}"
                    )

            bad_member = zf.testzip()
            if bad_member is not None:
                raise ExtractionError(f"Corrupt member {bad_member} in {description}")

            zf.extractall(dest_dir)
            return len(members)

    except ExtractionError:
        raise
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        zlib.error,
        NotImplementedError,
        OSError,
        EOFError,
    ) as e:
        raise ExtractionError(f"Failed to extract {description}: {e}") from e
