"""Configuration settings for asset_precompile.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: explicit arguments > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_cache_dir() -> Path:
    """Return the default cache directory."""
    return Path.home() / ".cache" / "asset-precompile"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the
    ASSET_PRECOMPILE_ prefix. Paths other than cache_dir are relative
    to app_dir unless given as absolute paths.
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSET_PRECOMPILE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    app_dir: Path = Field(
        default_factory=Path.cwd,
        description="Root of the application being deployed",
    )
    cache_dir: Path = Field(
        default_factory=_default_cache_dir,
        description="Build cache directory, outside the build workspace",
    )
    source_dir: str = Field(
        default="app/assets",
        description="Source asset directory, relative to app_dir",
    )
    output_dir: str = Field(
        default="public/assets",
        description="Compiled asset directory, relative to app_dir",
    )
    manifest_name: str = Field(
        default="manifest.yml",
        description="Marker file in output_dir for externally prepared assets",
    )

    # Build task
    build_command: str = Field(
        default="bundle exec rake assets:precompile",
        description="External command that compiles assets",
    )
    build_timeout: int = Field(
        default=1800,
        ge=1,
        description="Timeout for the build task in seconds",
    )
    build_groups: str = Field(
        default="assets",
        description="Default for RAILS_GROUPS when not already set",
    )
    build_env_name: str = Field(
        default="production",
        description="Default for RAILS_ENV when not already set",
    )
    fallback_plugin: str = Field(
        default="rails31_enable_runtime_asset_compilation",
        description="Plugin installed when the build task fails",
    )

    # Remote sync
    sync_config_path: str = Field(
        default="config/rackspace.yml",
        description="Remote sync credentials file, relative to app_dir",
    )
    sync_environment: str = Field(
        default="production",
        description="Section of the remote sync config to use",
    )
    sync_key_prefix: str = Field(
        default="assets",
        description="Prefix prepended to remote object keys",
    )
    sync_probe_timeout: float = Field(
        default=2.0,
        gt=0,
        description="Timeout for remote existence probes in seconds",
    )
    sync_upload_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout for each remote upload in seconds",
    )
    sync_verify_etag: bool = Field(
        default=False,
        description="Only skip uploads when the remote ETag matches local MD5",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    def resolve(self, relative: str) -> Path:
        """Resolve a configured path against app_dir."""
        return self.app_dir / relative


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
