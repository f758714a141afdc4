"""Snapshot cache for the generated build script."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from build_bootstrap.exit_codes import ExitCode
from build_bootstrap.logs import log_timed

logger = logging.getLogger(__name__)


async def create_snapshot_if_missing(
    *,
    script_path: Path,
    snapshot_path: Path,
    compiler_command: Sequence[str],
    log: logging.Logger | None = None,
) -> int:
    """Create a snapshot of the build script unless one is already cached.

    Returns zero for success or a number for failure which should be used as
    the exit code.
    """

    log = log or logger
    if snapshot_path.exists():
        return ExitCode.SUCCESS

    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    with log_timed(log, "Creating build script snapshot..."):
        stderr = await _run_compiler(
            [*compiler_command, f"--snapshot={snapshot_path}", str(script_path)],
        )

    # The compiler's own return code is not trusted; only the file counts.
    if not snapshot_path.exists():
        log.error(
            "Failed to snapshot build script %s.\n"
            "This is likely caused by a misconfigured builder definition.",
            script_path,
        )
        if stderr:
            log.error(stderr)
        return ExitCode.CONFIG
    return ExitCode.SUCCESS


def delete_snapshot(snapshot_path: Path) -> bool:
    """Remove a cached snapshot; returns whether a file was removed."""

    try:
        snapshot_path.unlink()
    except FileNotFoundError:
        return False
    return True


async def _run_compiler(run_args: list[str]) -> str:
    try:
        process = await asyncio.create_subprocess_exec(
            *run_args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as error:
        return f"Snapshot compiler failed to start: {error}"
    _, stderr = await process.communicate()
    return stderr.decode("utf-8", errors="replace").strip()
