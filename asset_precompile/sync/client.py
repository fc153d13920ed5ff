"""Object store client.

This module handles:
- Exchanging long-lived credentials for a storage URL and session token
- Probing whether an object is already published
- Uploading an object with its content identity (ETag)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

import httpx

from asset_precompile.errors import SyncAuthError, SyncTransferError

logger = logging.getLogger(__name__)

# Timeout for the credential exchange (seconds)
AUTH_TIMEOUT = 30

# Timeout for existence probes (seconds). httpx applies it to each phase
# (connect, write, read, pool) separately, so a probe that stalls in more
# than one phase can take a small multiple of it.
PROBE_TIMEOUT = 2.0

# Timeout for uploads (seconds)
UPLOAD_TIMEOUT = 120.0


@dataclass
class SyncSession:
    """Short-lived destination and token from the credential exchange."""

    storage_url: str
    token: str


@dataclass
class ProbeResult:
    """Outcome of an existence probe.

    Attributes:
        present: Whether the object answered with HTTP 200.
        etag: ETag reported by the remote, if any.
    """

    present: bool
    etag: str | None = None


def object_url(base_url: str, key: str) -> str:
    """Join a base URL and an object key, escaping the key."""
    return f"{base_url.rstrip('/')}/{quote(key)}"


def authenticate(
    client: httpx.Client,
    auth_url: str,
    username: str,
    api_key: str,
    timeout: float = AUTH_TIMEOUT,
) -> SyncSession:
    """Exchange credentials for a storage URL and session token.

    Args:
        client: HTTPX client instance.
        auth_url: Authentication endpoint.
        username: Account user name.
        api_key: Account API key.
        timeout: Request timeout in seconds.

    Returns:
        SyncSession used for every upload of a sync.

    Raises:
        SyncAuthError: If the exchange fails or the response is incomplete.
    """
    logger.debug("Authenticating against %s as %s", auth_url, username)

    try:
        response = client.get(
            auth_url,
            headers={"X-Auth-User": username, "X-Auth-Key": api_key},
            timeout=timeout,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise SyncAuthError(
            f"Authentication rejected: {e.response.status_code} {e.response.reason_phrase}",
            code="auth_rejected",
        ) from e
    except httpx.TimeoutException as e:
        raise SyncAuthError(
            f"Timeout authenticating against {auth_url}",
            code="timeout",
        ) from e
    except httpx.RequestError as e:
        raise SyncAuthError(
            f"Network error authenticating against {auth_url}: {e}",
            code="network_error",
        ) from e

    storage_url = response.headers.get("X-Storage-Url")
    token = response.headers.get("X-Auth-Token")
    if not storage_url or not token:
        raise SyncAuthError(
            "Authentication response is missing X-Storage-Url or X-Auth-Token",
            code="auth_incomplete",
        )

    return SyncSession(storage_url=storage_url.rstrip("/"), token=token)


def object_exists(
    client: httpx.Client,
    url: str,
    timeout: float = PROBE_TIMEOUT,
) -> ProbeResult:
    """Probe a published object with a HEAD request.

    Any error or timeout is reported as not present so that the caller
    uploads rather than silently skipping. The timeout bounds every
    phase of the request, not the request as a whole.

    Args:
        client: HTTPX client instance.
        url: Public URL of the object.
        timeout: Per-phase request timeout in seconds.

    Returns:
        ProbeResult for the object.
    """
    try:
        response = client.head(url, timeout=httpx.Timeout(timeout))
    except httpx.HTTPError as e:
        logger.debug("Probe of %s failed: %s", url, e)
        return ProbeResult(present=False)

    if response.status_code != 200:
        return ProbeResult(present=False)

    etag = response.headers.get("ETag")
    return ProbeResult(present=True, etag=etag.strip('"').lower() if etag else None)


def upload_object(
    client: httpx.Client,
    session: SyncSession,
    container: str,
    key: str,
    file_path: Path,
    etag: str,
    timeout: float = UPLOAD_TIMEOUT,
) -> None:
    """Upload a file to {storage_url}/{container}/{key}.

    The body is streamed from disk rather than read into memory.

    Args:
        client: HTTPX client instance.
        session: Authenticated session.
        container: Destination container.
        key: Object key.
        file_path: Local file to upload.
        etag: MD5 hex digest of the file.
        timeout: Request timeout in seconds.

    Raises:
        SyncTransferError: If the upload fails.
    """
    url = object_url(f"{session.storage_url}/{quote(container)}", key)
    headers = {"ETag": etag, "X-Auth-Token": session.token}

    try:
        with file_path.open("rb") as f:
            response = client.put(url, content=f, headers=headers, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise SyncTransferError(
            key,
            f"HTTP {e.response.status_code} {e.response.reason_phrase}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise SyncTransferError(key, "timeout", code="timeout") from e
    except httpx.RequestError as e:
        raise SyncTransferError(key, str(e), code="network_error") from e
    except OSError as e:
        raise SyncTransferError(key, str(e), code="read_error") from e


__all__ = [
    "AUTH_TIMEOUT",
    "PROBE_TIMEOUT",
    "UPLOAD_TIMEOUT",
    "ProbeResult",
    "SyncSession",
    "authenticate",
    "object_exists",
    "object_url",
    "upload_object",
]
