"""Build runner for the external asset compile task.

This module handles:
- Merging build-time environment defaults without overriding values
  that are already set
- Executing the compile command with subprocess
- Capturing combined stdout/stderr and elapsed wall time
- Enforcing build timeouts

The task is opaque: only its exit status decides success.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from asset_precompile.errors import BuildTaskFailure

if TYPE_CHECKING:
    from asset_precompile.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a build task execution.

    Attributes:
        success: Whether the task exited successfully.
        elapsed: Wall time in seconds.
        output: Combined stdout/stderr of the task.
        exit_code: Process exit code (-1 on timeout).
        command: The command that was executed.
        error_message: Error message if the task failed.
    """

    success: bool
    elapsed: float
    output: str = ""
    exit_code: int = 0
    command: str = ""
    error_message: str | None = None


class BuildTask(Protocol):
    """An external task that compiles assets."""

    def run(self) -> BuildResult: ...


def build_env_defaults(settings: Settings) -> dict[str, str]:
    """Return the environment defaults for an asset build.

    Args:
        settings: Application settings.

    Returns:
        Mapping of variable name to default value.
    """
    return {
        "RAILS_GROUPS": settings.build_groups,
        "RAILS_ENV": settings.build_env_name,
    }


def apply_build_env_defaults(
    base_env: Mapping[str, str],
    defaults: Mapping[str, str] | None = None,
    overrides: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Compose the environment for a build task.

    Overrides win over the base environment; defaults only fill in
    variables that neither of them sets.

    Args:
        base_env: Inherited environment, usually os.environ.
        defaults: Values used only when the variable is absent.
        overrides: Values that replace inherited ones.

    Returns:
        New environment dictionary. base_env is not modified.
    """
    env = dict(base_env)
    if overrides:
        env.update(overrides)
    for key, value in (defaults or {}).items():
        env.setdefault(key, value)
    return env


def _decode_output(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


class SubprocessBuildTask:
    """Run the compile command as a subprocess of the application.

    Args:
        command: Command line, as a string or argument list.
        cwd: Application root; ``cwd/bin`` is appended to PATH.
        env_defaults: Variables set only when absent.
        env_override: Variables that replace inherited ones.
        timeout: Timeout in seconds (None = no timeout).
        log_path: Optional file receiving the task output.
    """

    def __init__(
        self,
        command: str | list[str],
        cwd: Path,
        env_defaults: Mapping[str, str] | None = None,
        env_override: Mapping[str, str] | None = None,
        timeout: float | None = None,
        log_path: Path | None = None,
    ) -> None:
        self.command = shlex.split(command) if isinstance(command, str) else command
        self.cwd = cwd
        self.env_defaults = dict(env_defaults or {})
        self.env_override = dict(env_override or {})
        self.timeout = timeout
        self.log_path = log_path

    @classmethod
    def from_settings(cls, settings: Settings) -> SubprocessBuildTask:
        """Create a task from application settings."""
        return cls(
            command=settings.build_command,
            cwd=settings.app_dir,
            env_defaults=build_env_defaults(settings),
            timeout=settings.build_timeout,
            log_path=settings.cache_dir / "logs" / "assets_precompile.log",
        )

    def environment(self) -> dict[str, str]:
        """Return the environment the task will run with."""
        env = apply_build_env_defaults(os.environ, self.env_defaults, self.env_override)
        bin_dir = str(self.cwd / "bin")
        path = env.get("PATH")
        env["PATH"] = f"{path}{os.pathsep}{bin_dir}" if path else bin_dir
        return env

    def run(self) -> BuildResult:
        """Execute the compile command.

        Returns:
            BuildResult with execution details.

        Raises:
            BuildTaskFailure: If the command cannot be started at all.
        """
        cmd_str = shlex.join(self.command)
        logger.info("Executing build task: %s", cmd_str)
        logger.info("Working directory: %s", self.cwd)

        started = time.monotonic()
        error_message: str | None = None

        try:
            result = subprocess.run(
                self.command,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
                env=self.environment(),
                check=False,
            )
            output = result.stdout or ""
            exit_code = result.returncode
            success = exit_code == 0
            if not success:
                error_message = f"Build task failed with exit code {exit_code}"
                logger.error(error_message)

        except subprocess.TimeoutExpired as e:
            output = _decode_output(e.output)
            exit_code = -1
            success = False
            error_message = f"Build task timed out after {self.timeout} seconds"
            logger.error(error_message)

        except OSError as e:
            error_message = f"Failed to execute build task: {e}"
            logger.error(error_message)
            raise BuildTaskFailure(
                error_message,
                exit_code=None,
                code="task_unavailable",
            ) from e

        elapsed = time.monotonic() - started
        if self.log_path is not None:
            self._write_log(self.log_path, cmd_str, output, exit_code, elapsed)

        return BuildResult(
            success=success,
            elapsed=elapsed,
            output=output,
            exit_code=exit_code,
            command=cmd_str,
            error_message=error_message,
        )

    def _write_log(
        self,
        log_path: Path,
        cmd_str: str,
        output: str,
        exit_code: int,
        elapsed: float,
    ) -> None:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with log_path.open("w", encoding="utf-8") as log_file:
                log_file.write(f"# Command: {cmd_str}\n")
                log_file.write(f"# Finished: {datetime.now(timezone.utc).isoformat()}\n")
                log_file.write(f"# CWD: {self.cwd}\n")
                log_file.write("# " + "=" * 70 + "\n\n")
                log_file.write(output)
                log_file.write(f"\n# Exit code: {exit_code}\n")
                log_file.write(f"# Duration: {elapsed:.1f}s\n")
        except OSError as e:
            logger.warning("Could not write build log %s: %s", log_path, e)


__all__ = [
    "BuildResult",
    "BuildTask",
    "SubprocessBuildTask",
    "apply_build_env_defaults",
    "build_env_defaults",
]
