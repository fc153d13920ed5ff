"""Directory-granularity build cache.

Entries are keyed by logical path relative to the application root
(e.g. ``app/assets``) and hold the full directory tree from the last
successful store. Writes are staged next to their destination and
swapped in with renames, so a reader sees either the old tree or the
new one.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath

from asset_precompile.errors import CacheMissError, StorageError

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".staging"


@contextmanager
def _staging_area(parent: Path, prefix: str) -> Iterator[Path]:
    """Create a scratch directory under parent, removed on exit."""
    parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    try:
        yield staging
    finally:
        shutil.rmtree(staging, ignore_errors=True)


def _swap_in(new_tree: Path, dest: Path, staging: Path) -> None:
    """Replace dest with new_tree using renames on the same filesystem.

    If the second rename fails, the previous tree is moved back.
    """
    previous = staging / "previous"
    if dest.exists():
        os.replace(dest, previous)
    try:
        os.replace(new_tree, dest)
    except OSError:
        if previous.exists():
            os.replace(previous, dest)
        raise


class ContentCache:
    """Key/value cache of directory trees outside the build workspace.

    Args:
        cache_dir: Root of the persistent cache storage.
        app_dir: Application root that logical paths are relative to.
    """

    def __init__(self, cache_dir: Path, app_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)
        self.app_dir = Path(app_dir)

    def entry_path(self, path: str) -> Path:
        """Return where the cached tree for a logical path lives.

        Raises:
            StorageError: If the path is absolute or escapes the cache root.
        """
        key = PurePosixPath(path)
        if key.is_absolute() or ".." in key.parts or not key.parts:
            raise StorageError(f"Invalid cache key: {path!r}", code="invalid_key")
        if key.parts[0] == STAGING_DIR_NAME:
            raise StorageError(f"Reserved cache key: {path!r}", code="invalid_key")
        return self.cache_dir.joinpath(*key.parts)

    def exists(self, path: str) -> bool:
        """Check whether a cache entry exists for a logical path."""
        return self.entry_path(path).is_dir()

    def store(self, path: str) -> Path:
        """Copy the on-disk tree at path into the cache, replacing any prior entry.

        Args:
            path: Logical path relative to app_dir.

        Returns:
            Path of the cache entry.

        Raises:
            StorageError: If the source is missing or the copy fails.
        """
        entry = self.entry_path(path)
        source = self.app_dir / path
        if not source.is_dir():
            raise StorageError(
                f"Cannot cache missing directory: {source}",
                code="source_missing",
            )

        logger.debug("Storing %s into cache at %s", source, entry)
        try:
            with _staging_area(self.cache_dir / STAGING_DIR_NAME, "store-") as staging:
                new_tree = staging / "tree"
                shutil.copytree(source, new_tree, symlinks=True)
                entry.parent.mkdir(parents=True, exist_ok=True)
                _swap_in(new_tree, entry, staging)
        except OSError as e:
            raise StorageError(
                f"Failed to store {path} in cache: {e}",
                code="store_failed",
            ) from e

        logger.info("Cached %s", path)
        return entry

    def load(self, path: str) -> Path:
        """Restore the cached tree for path onto disk, overwriting local contents.

        Args:
            path: Logical path relative to app_dir.

        Returns:
            Path of the restored directory.

        Raises:
            CacheMissError: If no entry exists for path.
            StorageError: If the copy fails.
        """
        entry = self.entry_path(path)
        if not entry.is_dir():
            raise CacheMissError(path)

        target = self.app_dir / path
        logger.debug("Loading %s from cache at %s", target, entry)
        try:
            with _staging_area(target.parent, ".asset-precompile-") as staging:
                new_tree = staging / "tree"
                shutil.copytree(entry, new_tree, symlinks=True)
                _swap_in(new_tree, target, staging)
        except OSError as e:
            raise StorageError(
                f"Failed to load {path} from cache: {e}",
                code="load_failed",
            ) from e

        logger.info("Restored %s from cache", path)
        return target


__all__ = ["STAGING_DIR_NAME", "ContentCache"]
