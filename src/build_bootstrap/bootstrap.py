"""Generate, snapshot and run the build script with one retry on launch failure."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from build_bootstrap.aggregator import collect_exit_code
from build_bootstrap.channels import WorkerChannels, open_channels
from build_bootstrap.config import BootstrapSettings
from build_bootstrap.errors import CannotBuildError, LaunchError
from build_bootstrap.exit_codes import ExitCode
from build_bootstrap.script import ScriptGenerator, write_build_script
from build_bootstrap.snapshot import create_snapshot_if_missing, delete_snapshot
from build_bootstrap.worker import WorkerHandle, spawn_worker

logger = logging.getLogger(__name__)

MAX_LAUNCH_ATTEMPTS = 2

Spawner = Callable[[Path, Sequence[str], WorkerChannels], Awaitable[WorkerHandle]]
Collector = Callable[[WorkerHandle], Awaitable[int]]


@dataclass(slots=True)
class Spawned:
    worker: WorkerHandle


@dataclass(slots=True)
class SpawnFailed:
    error: LaunchError


SpawnOutcome = Spawned | SpawnFailed


async def generate_and_run(  # noqa: PLR0913
    args: Sequence[str],
    *,
    generate_script: ScriptGenerator,
    settings: BootstrapSettings | None = None,
    logger: logging.Logger | None = None,
    spawner: Spawner = spawn_worker,
    collector: Collector = collect_exit_code,
) -> int:
    """Generate the build script, snapshot it if needed, and run it.

    Retries once when the worker cannot be launched from the snapshot, which
    usually means the snapshot was written by another Python version.

    Returns the exit code reported by the build script. ``ExitCode.TEMP_FAIL``
    (75) means the caller should run this again.
    """

    settings = settings or BootstrapSettings.from_env()
    log = logger or logging.getLogger(__name__)
    failure: LaunchError | None = None

    for attempt in range(1, MAX_LAUNCH_ATTEMPTS + 1):
        try:
            write_build_script(generate_script, settings.script_path)
        except CannotBuildError:
            return ExitCode.CONFIG

        snapshot_status = await create_snapshot_if_missing(
            script_path=settings.script_path,
            snapshot_path=settings.snapshot_path,
            compiler_command=settings.compiler_command,
            log=log,
        )
        if snapshot_status != 0:
            return snapshot_status

        with open_channels() as channels:
            outcome = await _spawn(spawner, settings.snapshot_path, args, channels)
            if isinstance(outcome, Spawned):
                return await collector(outcome.worker)

        failure = outcome.error
        try:
            delete_snapshot(settings.snapshot_path)
        except OSError as error:
            log.error(
                "Failed to delete build script snapshot %s after a launch failure (%s). "
                "Remove it manually and run again.",
                settings.snapshot_path,
                error,
            )
            return ExitCode.CONFIG
        if attempt < MAX_LAUNCH_ATTEMPTS:
            log.warning(
                "Error spawning build script worker, this is likely due to a Python "
                "update. Deleting snapshot and retrying...",
            )
            log.debug("Launch failure: %s (%s)", failure, failure.detail)

    log.error(
        "Failed to spawn build script after retry. "
        "This is likely due to a misconfigured builder definition. "
        "See the generated script at %s to find errors (snapshot: %s). %s%s",
        settings.script_path,
        settings.snapshot_path,
        failure,
        f": {failure.detail}" if failure is not None and failure.detail else "",
    )
    return ExitCode.CONFIG


async def _spawn(
    spawner: Spawner,
    snapshot_path: Path,
    args: Sequence[str],
    channels: WorkerChannels,
) -> SpawnOutcome:
    try:
        worker = await spawner(snapshot_path, args, channels)
    except LaunchError as error:
        return SpawnFailed(error)
    return Spawned(worker)
