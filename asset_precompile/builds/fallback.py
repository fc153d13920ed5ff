"""Runtime asset compilation fallback.

When build-time compilation fails, the application is switched to
compiling assets on demand at request time by installing a small
plugin into the app's vendor/plugins directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

PLUGINS_DIR = Path("vendor") / "plugins"

RUNTIME_COMPILATION_INIT = """\
Rails.application.config.assets.compile = true
"""


def enable_runtime_compilation(app_dir: Path, plugin_name: str) -> Path:
    """Install the runtime compilation plugin into an application.

    Installing twice leaves the same plugin in place.

    Args:
        app_dir: Application root.
        plugin_name: Directory name of the plugin.

    Returns:
        Path to the installed plugin directory.

    Raises:
        OSError: If the plugin cannot be written.
    """
    plugin_dir = app_dir / PLUGINS_DIR / plugin_name
    plugin_dir.mkdir(parents=True, exist_ok=True)
    (plugin_dir / "init.rb").write_text(RUNTIME_COMPILATION_INIT, encoding="utf-8")
    logger.info("Installed plugin %s", plugin_name)
    return plugin_dir


__all__ = ["PLUGINS_DIR", "RUNTIME_COMPILATION_INIT", "enable_runtime_compilation"]
