"""Runtime configuration for the build script bootstrap."""

from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SCRIPT_PATH = Path(".build_bootstrap/entrypoint/build.py")
SNAPSHOT_SUFFIX = ".snapshot"


def default_compiler_command() -> tuple[str, ...]:
    return (sys.executable, "-m", "build_bootstrap.compiler")


@dataclass(slots=True)
class BootstrapSettings:
    """Fixed locations and external commands used by one bootstrap invocation."""

    script_path: Path = DEFAULT_SCRIPT_PATH
    snapshot_path: Path = DEFAULT_SCRIPT_PATH.with_name(DEFAULT_SCRIPT_PATH.name + SNAPSHOT_SUFFIX)
    compiler_command: tuple[str, ...] = field(default_factory=default_compiler_command)
    generator: str | None = None
    rerun_limit: int = 10

    @classmethod
    def from_env(
        cls,
        script_path: Path | None = None,
        snapshot_path: Path | None = None,
        generator: str | None = None,
    ) -> BootstrapSettings:
        """Load settings from environment, explicit arguments taking precedence."""

        resolved_script = script_path or Path(
            os.getenv("BUILD_BOOTSTRAP_SCRIPT_PATH", str(DEFAULT_SCRIPT_PATH)),
        )
        env_snapshot = os.getenv("BUILD_BOOTSTRAP_SNAPSHOT_PATH", "").strip()
        resolved_snapshot = snapshot_path or (
            Path(env_snapshot)
            if env_snapshot
            else resolved_script.with_name(resolved_script.name + SNAPSHOT_SUFFIX)
        )
        return cls(
            script_path=resolved_script,
            snapshot_path=resolved_snapshot,
            compiler_command=_compiler_command_from_env(),
            generator=generator or os.getenv("BUILD_BOOTSTRAP_GENERATOR") or None,
            rerun_limit=_env_int("BUILD_BOOTSTRAP_RERUN_LIMIT", default=10),
        )

    def validate(self) -> None:
        """Raise configuration error for settings that cannot work together."""

        if not self.compiler_command:
            raise ValueError("BUILD_BOOTSTRAP_COMPILER_COMMAND must not be empty.")
        if self.script_path.resolve() == self.snapshot_path.resolve():
            raise ValueError(
                "Build script and snapshot must live at different paths: "
                f"{self.script_path}",
            )
        if self.rerun_limit < 0:
            raise ValueError("BUILD_BOOTSTRAP_RERUN_LIMIT must be >= 0.")


def _compiler_command_from_env() -> tuple[str, ...]:
    raw = os.getenv("BUILD_BOOTSTRAP_COMPILER_COMMAND")
    if raw is None:
        return default_compiler_command()
    return tuple(shlex.split(raw))


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error
