"""Tests for cache/diff.py module.

Tests recursive change detection between a source tree and its cached copy.
"""

from unittest.mock import patch

import pytest

from asset_precompile.cache.diff import diff_trees, has_changed, snapshot_tree
from asset_precompile.errors import StorageError


@pytest.fixture
def trees(tmp_path):
    """Create two identical nested trees."""
    local = tmp_path / "local"
    cached = tmp_path / "cached"
    for root in (local, cached):
        (root / "stylesheets").mkdir(parents=True)
        (root / "stylesheets" / "app.css").write_text("body {}")
        (root / "app.js").write_text("x")
    return local, cached


class TestSnapshotTree:
    """Tests for snapshot_tree function."""

    def test_missing_directory(self, tmp_path):
        """Should return an empty snapshot for a missing directory."""
        assert snapshot_tree(tmp_path / "missing") == {}

    def test_maps_relative_paths(self, trees):
        """Should key the snapshot by relative POSIX path."""
        local, _ = trees
        assert set(snapshot_tree(local)) == {"app.js", "stylesheets/app.css"}

    @patch("asset_precompile.cache.diff.compute_file_hash")
    def test_unreadable_file(self, mock_hash, trees):
        """Should wrap read errors in StorageError."""
        mock_hash.side_effect = PermissionError(13, "Permission denied")
        local, _ = trees

        with pytest.raises(StorageError) as exc_info:
            snapshot_tree(local)

        assert exc_info.value.code == "read_failed"


class TestHasChanged:
    """Tests for has_changed function."""

    def test_identical_trees(self, trees):
        """Identical trees should not count as changed."""
        local, cached = trees
        assert has_changed(local, cached) is False

    def test_missing_cache_is_changed(self, trees, tmp_path):
        """A missing cached copy should force a build."""
        local, _ = trees
        assert has_changed(local, tmp_path / "nowhere") is True

    def test_added_file(self, trees):
        """An added file should count as a change."""
        local, cached = trees
        (local / "new.css").write_text("")
        assert has_changed(local, cached) is True

    def test_removed_file(self, trees):
        """A removed file should count as a change."""
        local, cached = trees
        (local / "app.js").unlink()
        assert has_changed(local, cached) is True

    def test_modified_nested_file(self, trees):
        """A modified file deep in the tree should count as a change."""
        local, cached = trees
        (local / "stylesheets" / "app.css").write_text("body { margin: 0 }")
        assert has_changed(local, cached) is True

    def test_local_missing_with_cache(self, trees, tmp_path):
        """A missing local dir compares as empty against a populated cache."""
        _, cached = trees
        assert has_changed(tmp_path / "gone", cached) is True

    def test_empty_directories_ignored(self, trees):
        """Empty directories carry no files and do not count as changes."""
        local, cached = trees
        (local / "empty").mkdir()
        assert has_changed(local, cached) is False

    def test_read_only(self, trees):
        """Should not modify either tree."""
        local, cached = trees
        before = (snapshot_tree(local), snapshot_tree(cached))
        has_changed(local, cached)
        assert (snapshot_tree(local), snapshot_tree(cached)) == before

    @patch("asset_precompile.cache.diff.compute_file_hash")
    def test_unreadable_tree_raises_storage_error(self, mock_hash, trees):
        """Read failures should surface as StorageError, not OSError."""
        mock_hash.side_effect = PermissionError(13, "Permission denied")
        local, cached = trees

        with pytest.raises(StorageError):
            has_changed(local, cached)


class TestDiffTrees:
    """Tests for diff_trees function."""

    def test_reports_each_kind(self, trees):
        """Should classify added, removed, and modified files."""
        local, cached = trees
        (local / "added.js").write_text("a")
        (local / "app.js").write_text("changed")
        (local / "stylesheets" / "app.css").unlink()

        diff = diff_trees(local, cached)

        assert diff.added == ["added.js"]
        assert diff.removed == ["stylesheets/app.css"]
        assert diff.modified == ["app.js"]
        assert diff.is_empty is False

    def test_empty_diff(self, trees):
        """Identical trees should produce an empty diff."""
        local, cached = trees
        assert diff_trees(local, cached).is_empty is True
