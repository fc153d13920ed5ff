"""Asset build service module.

This module provides the high-level precompile API:
- precompile_assets(): Main entry point - build with cache awareness
- Manifest detection for assets prepared outside the pipeline
- Cache restore when sources are unchanged
- Rebuild, cache store, and remote sync on success
- Runtime compilation fallback on failure

Each step is strictly cheaper than the next, so the first one that
applies wins: manifest skip, then cache restore, then rebuild.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from asset_precompile.builds.artifacts import manifest_present
from asset_precompile.builds.fallback import enable_runtime_compilation
from asset_precompile.builds.runner import BuildTask, SubprocessBuildTask
from asset_precompile.cache.diff import has_changed
from asset_precompile.cache.store import ContentCache
from asset_precompile.config import Settings, get_settings
from asset_precompile.errors import StorageError, SyncConfigError, SyncError
from asset_precompile.report import TROUBLESHOOTING_URL, StatusReporter
from asset_precompile.sync.config import RemoteSyncConfig, load_sync_config
from asset_precompile.sync.service import RemoteSyncer
from asset_precompile.types import BuildOutcome, PrecompileReport

logger = logging.getLogger(__name__)


class AssetBuildOrchestrator:
    """Decide between skipping, restoring, and rebuilding compiled assets.

    Args:
        settings: Application settings (paths, manifest name, sync options).
        cache: Build cache for the source and output trees.
        task: External build task.
        syncer: Remote syncer used after a successful rebuild.
        sync_config: Remote destination; sync is skipped when None.
        reporter: Status line printer.
        on_failure: Hook enabling runtime compilation after a failed build.
    """

    def __init__(
        self,
        settings: Settings,
        cache: ContentCache,
        task: BuildTask,
        syncer: RemoteSyncer | None = None,
        sync_config: RemoteSyncConfig | None = None,
        reporter: StatusReporter | None = None,
        on_failure: Callable[[], object] | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.task = task
        self.syncer = syncer or RemoteSyncer()
        self.sync_config = sync_config
        self.reporter = reporter or StatusReporter()
        self.on_failure = on_failure or self._install_fallback_plugin

    @property
    def source_dir(self) -> Path:
        return self.settings.resolve(self.settings.source_dir)

    @property
    def output_dir(self) -> Path:
        return self.settings.resolve(self.settings.output_dir)

    def run(self) -> PrecompileReport:
        """Run one precompile step.

        Returns:
            PrecompileReport describing the terminal outcome.

        Raises:
            BuildTaskFailure: If the build task cannot be started at all.
        """
        self.reporter.topic("Preparing app for Rails asset pipeline")

        if manifest_present(self.output_dir, self.settings.manifest_name):
            self.reporter.status(
                f"Detected {self.settings.manifest_name}, "
                "assuming assets were compiled locally"
            )
            return PrecompileReport(outcome=BuildOutcome.SKIPPED_MANIFEST_PRESENT)

        if self._sources_unchanged():
            try:
                self.cache.load(self.settings.output_dir)
            except StorageError as e:
                logger.warning("Cache restore failed, rebuilding: %s", e)
            else:
                self.reporter.status("Assets already compiled, loading from cache")
                return PrecompileReport(outcome=BuildOutcome.SKIPPED_CACHE_HIT)

        return self._rebuild()

    def _sources_unchanged(self) -> bool:
        try:
            cached_dir = self.cache.entry_path(self.settings.source_dir)
            return not has_changed(self.source_dir, cached_dir)
        except StorageError as e:
            logger.warning("Cannot check asset cache, rebuilding: %s", e)
            return False

    def _rebuild(self) -> PrecompileReport:
        self.reporter.status(f"Running: {self.settings.build_command}")
        result = self.task.run()
        self.reporter.output(result.output)

        if not result.success:
            return self._handle_failure(result.elapsed, result.output, result.error_message)

        logger.info("assets_precompile status=success elapsed=%.2f", result.elapsed)
        self.reporter.status(f"Asset precompilation completed ({result.elapsed:.2f}s)")
        report = PrecompileReport(
            outcome=BuildOutcome.REBUILT_SUCCESS,
            elapsed=result.elapsed,
            output=result.output,
        )

        self.reporter.status("Caching assets")
        report.cached = self._store_trees()

        if self.sync_config is not None:
            self._sync(report, self.sync_config)

        return report

    def _store_trees(self) -> bool:
        # Output goes first: the source entry is what marks the output as
        # current, so it must never be newer than the output entry.
        for path in (self.settings.output_dir, self.settings.source_dir):
            try:
                self.cache.store(path)
            except StorageError as e:
                logger.warning("Failed to cache %s: %s", path, e)
                self.reporter.warning(f"Caching assets failed: {e}")
                return False
        return True

    def _handle_failure(
        self,
        elapsed: float,
        output: str,
        error_message: str | None,
    ) -> PrecompileReport:
        logger.error("assets_precompile status=failure: %s", error_message)
        self.reporter.error(
            "Precompiling assets failed, enabling runtime asset compilation"
        )

        fallback_enabled = True
        try:
            self.on_failure()
        except OSError as e:
            logger.warning("Could not enable runtime asset compilation: %s", e)
            fallback_enabled = False

        self.reporter.status("Please see this article for troubleshooting help:")
        self.reporter.status(TROUBLESHOOTING_URL)

        return PrecompileReport(
            outcome=BuildOutcome.REBUILT_FAILURE,
            elapsed=elapsed,
            output=output,
            fallback_enabled=fallback_enabled,
            error=error_message,
        )

    def _install_fallback_plugin(self) -> Path:
        return enable_runtime_compilation(
            self.settings.app_dir, self.settings.fallback_plugin
        )

    def _sync(self, report: PrecompileReport, sync_config: RemoteSyncConfig) -> None:
        self.reporter.status("Storing assets on Rackspace")
        try:
            report.sync = self.syncer.sync(
                self.output_dir,
                sync_config,
                key_prefix=self.settings.sync_key_prefix,
            )
        except SyncError as e:
            logger.error("Asset sync aborted: %s", e)
            self.reporter.warning(f"Asset sync aborted: {e}")
            report.sync_error = str(e)
            return

        for key in report.sync.uploaded:
            self.reporter.status(f"Stored {key}")
        if report.sync.failed:
            self.reporter.warning(
                f"{len(report.sync.failed)} asset(s) failed to upload"
            )


def _load_sync_config(
    settings: Settings,
    reporter: StatusReporter,
) -> RemoteSyncConfig | None:
    path = settings.resolve(settings.sync_config_path)
    try:
        return load_sync_config(path, settings.sync_environment)
    except SyncConfigError as e:
        logger.warning("Ignoring remote sync config: %s", e)
        reporter.warning(f"Remote asset sync disabled: {e}")
        return None


def precompile_assets(
    settings: Settings | None = None,
    task: BuildTask | None = None,
    cache: ContentCache | None = None,
    syncer: RemoteSyncer | None = None,
    reporter: StatusReporter | None = None,
    task_defined: bool = True,
) -> PrecompileReport | None:
    """Compile assets, or reuse them if nothing changed.

    This is the main entry point for the deployment tool. It:
    1. Skips everything if a manifest shows assets were prepared already
    2. Restores compiled assets from the cache if sources are unchanged
    3. Otherwise runs the build task, caches the result, and syncs it
       to the remote store when a sync config is present

    Args:
        settings: Application settings.
        task: Build task; defaults to the configured subprocess command.
        cache: Build cache; defaults to settings.cache_dir.
        syncer: Remote syncer; defaults to one built from settings.
        reporter: Status line printer.
        task_defined: Whether the application declares the build task.

    Returns:
        PrecompileReport, or None if the application has no build task.

    Raises:
        BuildTaskFailure: If the build task cannot be started at all.
    """
    if not task_defined:
        logger.info("No asset build task defined, skipping asset precompilation")
        return None

    if settings is None:
        settings = get_settings()
    if reporter is None:
        reporter = StatusReporter()
    if cache is None:
        cache = ContentCache(settings.cache_dir, settings.app_dir)
    if task is None:
        task = SubprocessBuildTask.from_settings(settings)
    if syncer is None:
        syncer = RemoteSyncer(
            probe_timeout=settings.sync_probe_timeout,
            upload_timeout=settings.sync_upload_timeout,
            verify_etag=settings.sync_verify_etag,
        )

    orchestrator = AssetBuildOrchestrator(
        settings=settings,
        cache=cache,
        task=task,
        syncer=syncer,
        sync_config=_load_sync_config(settings, reporter),
        reporter=reporter,
    )
    return orchestrator.run()


__all__ = ["AssetBuildOrchestrator", "precompile_assets"]
