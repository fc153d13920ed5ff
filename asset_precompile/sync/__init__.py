"""Remote sync module.

This module handles:
- Loading remote sync credentials
- Authenticating against the object store
- Uploading compiled assets that are not yet published
"""

from asset_precompile.sync.config import RemoteSyncConfig, load_sync_config
from asset_precompile.sync.service import RemoteSyncer

__all__ = ["RemoteSyncConfig", "RemoteSyncer", "load_sync_config"]
