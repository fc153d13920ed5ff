"""Remote sync service.

Pushes a compiled asset directory to the object store, one file at a
time. Files the public endpoint already serves are skipped; everything
else is uploaded with its MD5 as ETag. A failed upload is logged and
the remaining files are still attempted.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from asset_precompile.builds.artifacts import compute_file_md5, iter_files
from asset_precompile.errors import SyncTransferError
from asset_precompile.sync.client import (
    PROBE_TIMEOUT,
    UPLOAD_TIMEOUT,
    authenticate,
    object_exists,
    object_url,
    upload_object,
)
from asset_precompile.sync.config import RemoteSyncConfig
from asset_precompile.types import SyncReport

logger = logging.getLogger(__name__)


def object_key(relative_path: str, key_prefix: str = "") -> str:
    """Compute the remote object key for a file relative to the synced dir."""
    prefix = key_prefix.strip("/")
    return f"{prefix}/{relative_path}" if prefix else relative_path


def _local_md5(key: str, path: Path) -> str:
    try:
        return compute_file_md5(path)
    except OSError as e:
        raise SyncTransferError(key, str(e), code="read_error") from e


class RemoteSyncer:
    """Upload new or changed assets to a remote object store.

    Args:
        client: HTTPX client; a private one is created per sync if omitted.
        probe_timeout: Timeout for existence probes in seconds.
        upload_timeout: Timeout for each upload in seconds.
        verify_etag: Only skip a present object when its ETag matches the
            local MD5. When False, any HTTP 200 probe skips the upload.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        probe_timeout: float = PROBE_TIMEOUT,
        upload_timeout: float = UPLOAD_TIMEOUT,
        verify_etag: bool = False,
    ) -> None:
        self.client = client
        self.probe_timeout = probe_timeout
        self.upload_timeout = upload_timeout
        self.verify_etag = verify_etag

    def sync(
        self,
        local_dir: Path,
        config: RemoteSyncConfig,
        key_prefix: str = "",
    ) -> SyncReport:
        """Sync every file under local_dir to the configured container.

        Args:
            local_dir: Directory of compiled assets.
            config: Resolved credentials and destination.
            key_prefix: Prefix prepended to each object key.

        Returns:
            SyncReport listing uploaded, skipped, and failed keys.

        Raises:
            SyncAuthError: If the credential exchange fails.
        """
        if self.client is not None:
            return self._sync(self.client, local_dir, config, key_prefix)
        with httpx.Client() as client:
            return self._sync(client, local_dir, config, key_prefix)

    def _sync(
        self,
        client: httpx.Client,
        local_dir: Path,
        config: RemoteSyncConfig,
        key_prefix: str,
    ) -> SyncReport:
        session = authenticate(client, config.auth_url, config.username, config.api_key)
        logger.info("Authenticated, storing assets in container %s", config.container)

        report = SyncReport()
        for relative_path, path in iter_files(local_dir):
            key = object_key(relative_path, key_prefix)

            probe = object_exists(
                client, object_url(config.cdn_url, key), timeout=self.probe_timeout
            )
            if probe.present and not self.verify_etag:
                report.skipped.append(key)
                continue

            try:
                md5 = _local_md5(key, path)
                if probe.present:
                    if probe.etag == md5:
                        report.skipped.append(key)
                        continue
                    logger.debug("Remote ETag for %s is stale", key)

                logger.info("Storing %s...", key)
                upload_object(
                    client,
                    session,
                    config.container,
                    key,
                    path,
                    etag=md5,
                    timeout=self.upload_timeout,
                )
            except SyncTransferError as e:
                logger.warning("%s", e)
                report.failed.append(key)
                continue
            report.uploaded.append(key)

        logger.info(
            "Sync finished: %d uploaded, %d skipped, %d failed",
            len(report.uploaded),
            len(report.skipped),
            len(report.failed),
        )
        return report


__all__ = ["RemoteSyncer", "object_key"]
