"""Controllers for bootstrap CLI commands."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from build_bootstrap.bootstrap import generate_and_run
from build_bootstrap.config import BootstrapSettings
from build_bootstrap.exit_codes import ExitCode
from build_bootstrap.script import ScriptGenerator, load_generator
from build_bootstrap.snapshot import delete_snapshot

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunCommand:
    """CLI input for one bootstrap run."""

    script_path: Path | None
    snapshot_path: Path | None
    generator: str | None
    args: tuple[str, ...]


@dataclass(slots=True)
class CleanCommand:
    """CLI input for snapshot removal."""

    script_path: Path | None
    snapshot_path: Path | None


class BootstrapCliController:
    """Resolve settings and drive the bootstrap for CLI commands."""

    def resolve(self, command: RunCommand) -> tuple[ScriptGenerator, BootstrapSettings]:
        """Load settings and the generator callable for ``command``."""

        settings = self._settings(command.script_path, command.snapshot_path, command.generator)
        if not settings.generator:
            raise ValueError(
                "No build script generator configured. "
                "Pass --generator or set BUILD_BOOTSTRAP_GENERATOR.",
            )
        return load_generator(settings.generator), settings

    def clean(self, command: CleanCommand) -> list[str]:
        settings = self._settings(command.script_path, command.snapshot_path, None)
        if delete_snapshot(settings.snapshot_path):
            return [f"Deleted build script snapshot {settings.snapshot_path}"]
        return [f"No build script snapshot at {settings.snapshot_path}"]

    @staticmethod
    def _settings(
        script_path: Path | None,
        snapshot_path: Path | None,
        generator: str | None,
    ) -> BootstrapSettings:
        settings = BootstrapSettings.from_env(
            script_path=script_path,
            snapshot_path=snapshot_path,
            generator=generator,
        )
        settings.validate()
        return settings


def run_until_settled(
    args: tuple[str, ...],
    *,
    generate_script: ScriptGenerator,
    settings: BootstrapSettings,
) -> int:
    """Run the bootstrap, repeating while the build script asks to be re-run."""

    exit_code = asyncio.run(
        generate_and_run(args, generate_script=generate_script, settings=settings),
    )
    reruns = 0
    while exit_code == ExitCode.TEMP_FAIL and reruns < settings.rerun_limit:
        reruns += 1
        logger.info("Build script requested a re-run (%d/%d).", reruns, settings.rerun_limit)
        exit_code = asyncio.run(
            generate_and_run(args, generate_script=generate_script, settings=settings),
        )
    return int(exit_code)
