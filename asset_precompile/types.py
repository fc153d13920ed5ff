"""Shared type definitions for asset_precompile.

This module contains dataclasses and enums shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum


class BuildOutcome(str, Enum):
    """Terminal outcome of one precompile run."""

    SKIPPED_MANIFEST_PRESENT = "skipped_manifest_present"
    SKIPPED_CACHE_HIT = "skipped_cache_hit"
    REBUILT_SUCCESS = "rebuilt_success"
    REBUILT_FAILURE = "rebuilt_failure"


@dataclass
class SyncReport:
    """Result of pushing a directory to the remote store."""

    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


@dataclass
class PrecompileReport:
    """Result of one precompile run.

    Attributes:
        outcome: Terminal state reached.
        elapsed: Build task wall time in seconds, if it ran.
        output: Captured build task output, if it ran.
        cached: Whether the rebuilt trees were stored in the cache.
        fallback_enabled: Whether runtime compilation was enabled.
        sync: Remote sync result, if a sync was attempted and authenticated.
        sync_error: Message of a sync failure that aborted the sync.
        error: Build task error message on failure.
    """

    outcome: BuildOutcome
    elapsed: float | None = None
    output: str = ""
    cached: bool = False
    fallback_enabled: bool = False
    sync: SyncReport | None = None
    sync_error: str | None = None
    error: str | None = None


__all__ = [
    "BuildOutcome",
    "PrecompileReport",
    "SyncReport",
]
