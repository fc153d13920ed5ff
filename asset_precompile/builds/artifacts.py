"""Asset file discovery and hashing.

This module handles:
- Walking asset directories in a stable order
- Computing content hashes (SHA-256 for change detection, MD5 for
  remote ETags)
- Detecting externally prepared asset manifests
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB


def _hash_file(file_path: Path, algorithm: str, chunk_size: int) -> str:
    digest = hashlib.new(algorithm)
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def compute_file_hash(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        SHA-256 hex digest.
    """
    return _hash_file(file_path, "sha256", chunk_size)


def compute_file_md5(
    file_path: Path,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute MD5 hash of a file.

    The object store compares uploads against the ETag header, which is
    the MD5 hex digest of the object body.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        MD5 hex digest.
    """
    return _hash_file(file_path, "md5", chunk_size)


def iter_files(root: Path) -> Iterator[tuple[str, Path]]:
    """Yield (relative POSIX path, absolute path) for every file under root.

    Directories are skipped. Order is sorted by path so that repeated
    walks over the same tree visit files identically.
    """
    if not root.is_dir():
        return
    for path in sorted(root.rglob("*")):
        if path.is_file():
            yield path.relative_to(root).as_posix(), path


def manifest_present(output_dir: Path, manifest_name: str) -> bool:
    """Check whether assets were already prepared outside the pipeline.

    Args:
        output_dir: Compiled asset directory.
        manifest_name: Marker file name inside output_dir.

    Returns:
        True if the manifest file exists.
    """
    return (output_dir / manifest_name).is_file()


__all__ = [
    "HASH_CHUNK_SIZE",
    "compute_file_hash",
    "compute_file_md5",
    "iter_files",
    "manifest_present",
]
