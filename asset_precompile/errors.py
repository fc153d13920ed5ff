"""Exception taxonomy for asset_precompile.

Every error carries a short machine-readable ``code`` so callers can
branch on it without string matching.
"""

from __future__ import annotations


class PrecompileError(Exception):
    """Base error for asset precompilation."""

    def __init__(self, message: str, code: str = "precompile_error") -> None:
        super().__init__(message)
        self.code = code


class StorageError(PrecompileError):
    """Raised when the build cache cannot be read or written."""

    def __init__(self, message: str, code: str = "storage_error") -> None:
        super().__init__(message, code=code)


class CacheMissError(StorageError):
    """Raised when no cache entry exists for a path."""

    def __init__(self, path: str, code: str = "cache_miss") -> None:
        super().__init__(f"No cache entry for: {path}", code=code)
        self.path = path


class BuildTaskFailure(PrecompileError):
    """Raised when the external build task reports failure."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "build_failed",
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code


class SyncError(PrecompileError):
    """Base error for remote sync operations."""

    def __init__(self, message: str, code: str = "sync_error") -> None:
        super().__init__(message, code=code)


class SyncConfigError(SyncError):
    """Raised when the remote sync configuration is invalid."""

    def __init__(self, message: str, code: str = "sync_config_error") -> None:
        super().__init__(message, code=code)


class SyncAuthError(SyncError):
    """Raised when the remote credential exchange fails."""

    def __init__(self, message: str, code: str = "sync_auth_error") -> None:
        super().__init__(message, code=code)


class SyncTransferError(SyncError):
    """Raised when a single object upload fails."""

    def __init__(self, key: str, message: str, code: str = "transfer_error") -> None:
        super().__init__(f"Failed to upload {key}: {message}", code=code)
        self.key = key


__all__ = [
    "BuildTaskFailure",
    "CacheMissError",
    "PrecompileError",
    "StorageError",
    "SyncAuthError",
    "SyncConfigError",
    "SyncError",
    "SyncTransferError",
]
