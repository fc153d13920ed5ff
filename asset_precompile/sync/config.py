"""Remote sync configuration loading.

Credentials live in a YAML file inside the application, keyed by
environment name. YAML anchors and merge keys may be used to share
credentials between environments, e.g.::

    credentials: &credentials
      username: example
      api_key: 3b8f726a48b88dbf55939a5951b49f65

    production:
      <<: *credentials
      container: example_production
      cdn_url: https://c928372.ssl.cf1.rackcdn.com
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from asset_precompile.errors import SyncConfigError

DEFAULT_AUTH_URL = "https://auth.api.rackspacecloud.com/v1.0"


class RemoteSyncConfig(BaseModel):
    """Resolved credentials and destination for a remote sync."""

    username: str = Field(min_length=1)
    api_key: str = Field(min_length=1)
    container: str = Field(min_length=1)
    cdn_url: str = Field(min_length=1, description="Public base URL used for probes")
    auth_url: str = DEFAULT_AUTH_URL

    @field_validator("cdn_url", "auth_url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        value = value.rstrip("/")
        if "://" not in value:
            value = f"https://{value}"
        return value


def load_sync_config(path: Path, environment: str) -> RemoteSyncConfig | None:
    """Load remote sync settings for one environment.

    Args:
        path: Path to the YAML config file.
        environment: Top-level section to read.

    Returns:
        RemoteSyncConfig, or None if the file does not exist.

    Raises:
        SyncConfigError: If the file is unreadable or the section is invalid.
    """
    if not path.exists():
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise SyncConfigError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict):
        raise SyncConfigError(f"Expected a YAML mapping in {path}")

    section = data.get(environment)
    if not isinstance(section, dict):
        raise SyncConfigError(
            f"No '{environment}' section in {path}",
            code="missing_environment",
        )

    try:
        return RemoteSyncConfig.model_validate(section)
    except ValidationError as e:
        raise SyncConfigError(
            f"Invalid '{environment}' section in {path}: {e}",
            code="invalid_config",
        ) from e


__all__ = ["DEFAULT_AUTH_URL", "RemoteSyncConfig", "load_sync_config"]
