"""Change detection between a source tree and its cached copy.

Any added, removed, or modified file anywhere in the tree counts as a
change; there is no finer-grained invalidation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from asset_precompile.builds.artifacts import compute_file_hash, iter_files
from asset_precompile.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass
class TreeDiff:
    """Differences between two directory trees.

    Attributes:
        added: Paths present locally but not in the cached tree.
        removed: Paths present in the cached tree but not locally.
        modified: Paths present in both with different content.
    """

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)


def snapshot_tree(root: Path) -> dict[str, str]:
    """Map every file under root to its SHA-256 digest.

    A missing directory yields an empty snapshot.

    Raises:
        StorageError: If a file under root cannot be read.
    """
    try:
        return {rel: compute_file_hash(path) for rel, path in iter_files(root)}
    except OSError as e:
        raise StorageError(f"Failed to read {root}: {e}", code="read_failed") from e


def diff_trees(local_dir: Path, cached_dir: Path) -> TreeDiff:
    """Compare two directory trees recursively.

    Args:
        local_dir: Current source directory.
        cached_dir: Cached copy from the last successful build.

    Returns:
        TreeDiff describing the differences.
    """
    local = snapshot_tree(local_dir)
    cached = snapshot_tree(cached_dir)

    return TreeDiff(
        added=sorted(local.keys() - cached.keys()),
        removed=sorted(cached.keys() - local.keys()),
        modified=sorted(
            rel for rel in local.keys() & cached.keys() if local[rel] != cached[rel]
        ),
    )


def has_changed(local_dir: Path, cached_dir: Path) -> bool:
    """Report whether local_dir differs from its cached counterpart.

    Args:
        local_dir: Current source directory.
        cached_dir: Cached copy from the last successful build.

    Returns:
        True if the trees differ or no cached copy exists.

    Raises:
        StorageError: If either tree cannot be read.
    """
    if not cached_dir.is_dir():
        logger.debug("No cached copy at %s, treating as changed", cached_dir)
        return True

    diff = diff_trees(local_dir, cached_dir)
    if not diff.is_empty:
        logger.debug(
            "Changes in %s: %d added, %d removed, %d modified",
            local_dir,
            len(diff.added),
            len(diff.removed),
            len(diff.modified),
        )
    return not diff.is_empty


__all__ = ["TreeDiff", "diff_trees", "has_changed", "snapshot_tree"]
