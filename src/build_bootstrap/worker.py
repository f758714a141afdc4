"""Spawn a build script worker process from a snapshot."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from multiprocessing.process import BaseProcess
from pathlib import Path

from build_bootstrap.channels import ChannelClosed, ExitChannel, ReceiveChannel, WorkerChannels
from build_bootstrap.errors import LaunchError
from build_bootstrap.worker_host import LaunchReport, host_main


@dataclass(slots=True)
class WorkerHandle:
    """A running worker and the channels bound to it."""

    process: BaseProcess
    exit: ExitChannel
    faults: ReceiveChannel
    messages: ReceiveChannel


async def spawn_worker(
    snapshot_path: Path,
    args: Sequence[str],
    channels: WorkerChannels,
) -> WorkerHandle:
    """Start the worker and wait until it has loaded the snapshot.

    Raises :class:`LaunchError` when the process cannot be started or the
    snapshot cannot be loaded by the child interpreter.
    """

    process = channels.context.Process(
        target=host_main,
        args=(
            str(snapshot_path.absolute()),
            list(args),
            channels.launch.sender,
            channels.messages.sender,
            channels.faults.sender,
        ),
        name="build-script",
    )
    try:
        process.start()
    except OSError as error:
        raise LaunchError(f"Build script worker failed to start: {error}") from error
    finally:
        channels.release_senders()
    channels.exit.bind(process)

    try:
        report = await channels.launch.receive()
    except ChannelClosed:
        exit_code = await channels.exit.wait()
        raise LaunchError(
            f"Build script worker exited with code {exit_code} before loading {snapshot_path}",
        ) from None

    if not isinstance(report, LaunchReport) or not report.ok:
        await channels.exit.wait()
        detail = report.detail if isinstance(report, LaunchReport) else repr(report)
        raise LaunchError(f"Cannot load build script snapshot {snapshot_path}", detail=detail)

    return WorkerHandle(
        process=process,
        exit=channels.exit,
        faults=channels.faults,
        messages=channels.messages,
    )
