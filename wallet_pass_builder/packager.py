"""
Package assembler: writes the .pkpass ZIP archive.
"""

import io
import logging
import os
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Mapping, Union

from .exceptions import STAGE_PACKAGE, PackagingError, ValidationError

logger = logging.getLogger(__name__)

PKPASS_MIME_TYPE = "application/vnd.apple.pkpass"


def check_member_name(name: str) -> None:
    if not isinstance(name, str) or not name:
        raise ValidationError("Package member name must be a non-empty string", stage=STAGE_PACKAGE)
    if name.startswith("/") or "\\" in name or any(part in ("", ".", "..") for part in name.split("/")):
        raise ValidationError(f"Invalid package member name '{name}'", stage=STAGE_PACKAGE)


def _write_archive(members: Mapping[str, bytes], target: Union[BinaryIO, str]) -> None:
    with zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in members.items():
            zf.writestr(name, content)


def package_bytes(members: Mapping[str, bytes]) -> bytes:
    """Build the archive in memory, one entry per member"""
    for name in members:
        check_member_name(name)
    bundle = io.BytesIO()
    try:
        _write_archive(members, bundle)
    except (OSError, zipfile.BadZipFile, ValueError, TypeError) as e:
        raise PackagingError(f"Failed to build package: {e}", stage=STAGE_PACKAGE) from e
    data = bundle.getvalue()
    logger.info(f"Package built ({len(members)} entries, {len(data)} bytes)")
    return data


def _atomic_write(out_path: Path, write: Callable[[BinaryIO], None]) -> Path:
    """Run write against a temporary file in the destination directory and
    rename it into place only once it is complete; on failure the temporary
    file is removed and nothing is left at out_path.
    """
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{out_path.name}.", suffix=".partial", dir=out_path.parent)
    except OSError as e:
        raise PackagingError(f"Cannot create package in {out_path.parent}: {e}", stage=STAGE_PACKAGE) from e

    try:
        with os.fdopen(fd, "wb") as handle:
            write(handle)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, out_path)
    except (OSError, zipfile.BadZipFile, ValueError, TypeError) as e:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise PackagingError(f"Failed to write package {out_path}: {e}", stage=STAGE_PACKAGE) from e

    logger.info(f"Created file: {out_path} ({out_path.stat().st_size} bytes)")
    return out_path


def write_package(members: Mapping[str, bytes], out_path: Union[str, os.PathLike]) -> Path:
    """Zip members straight into out_path, atomically"""
    for name in members:
        check_member_name(name)
    return _atomic_write(Path(out_path), lambda handle: _write_archive(members, handle))


def write_package_bytes(data: bytes, out_path: Union[str, os.PathLike]) -> Path:
    """Write an already built archive to out_path, atomically and byte for byte"""
    if not isinstance(data, (bytes, bytearray)):
        raise PackagingError(f"Package data must be bytes, got {type(data).__name__}", stage=STAGE_PACKAGE)
    return _atomic_write(Path(out_path), lambda handle: handle.write(data))


def read_package(source: Union[bytes, str, os.PathLike]) -> Dict[str, bytes]:
    """Return every entry of a package as name -> bytes"""
    target = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        with zipfile.ZipFile(target, "r") as zf:
            return {info.filename: zf.read(info) for info in zf.infolist() if not info.is_dir()}
    except (OSError, zipfile.BadZipFile) as e:
        raise PackagingError(f"Cannot read package: {e}", stage=STAGE_PACKAGE) from e
