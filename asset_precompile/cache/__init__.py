"""Build cache module.

This module handles:
- Storing and restoring directory trees keyed by logical path
- Detecting changes between a source tree and its cached copy
"""

from asset_precompile.cache.diff import has_changed
from asset_precompile.cache.store import ContentCache

__all__ = ["ContentCache", "has_changed"]
