"""Reduce the events of a running worker to one exit code."""

from __future__ import annotations

import asyncio
import os
import re
import sys
import sysconfig
from collections.abc import Callable
from typing import TextIO

from build_bootstrap import worker_host
from build_bootstrap.channels import ChannelClosed, ReceiveChannel, UndecodableEvent
from build_bootstrap.errors import ProtocolViolationError
from build_bootstrap.worker import WorkerHandle

BUG_BANNER = (
    "\n\nYou have hit a bug in build_bootstrap\n"
    "Please file an issue with reproduction steps and the generated build script.\n\n"
)

_FRAME_RE = re.compile(r'^\s*File "(?P<file>[^"]+)", line (?P<line>\d+), in (?P<func>.+)$')
_HOST_FILE = os.path.normcase(os.path.abspath(worker_host.__file__))


class ExitCodeReducer:
    """Single status cell written by message and fault events."""

    def __init__(self, error_stream: TextIO) -> None:
        self._error_stream = error_stream
        self._status: int | None = None
        self._reported = False

    @property
    def status(self) -> int:
        return 0 if self._status is None else self._status

    def on_message(self, value: object) -> None:
        if self._reported:
            return
        if isinstance(value, bool) or not isinstance(value, int):
            raise ProtocolViolationError(
                f"Bad response from build script worker, expected an exit code but got {value!r}",
            )
        self._status = value
        self._reported = True

    def on_fault(self, event: object) -> None:
        error, trace = _split_fault(event)
        stream = self._error_stream
        stream.write(BUG_BANNER)
        stream.write(f"{error}\n")
        terse = terse_trace(trace)
        if terse:
            stream.write(f"{terse}\n")
        stream.flush()
        if self._status is None:
            self._status = 1


async def collect_exit_code(worker: WorkerHandle, *, error_stream: TextIO | None = None) -> int:
    """Listen on all worker channels until exit, then return the reduced status."""

    reducer = ExitCodeReducer(error_stream or sys.stderr)
    exit_task = asyncio.ensure_future(worker.exit.wait())
    listeners = [
        asyncio.ensure_future(_listen(worker.messages, reducer.on_message, once=True)),
        asyncio.ensure_future(_listen(worker.faults, reducer.on_fault)),
    ]
    try:
        pending: set[asyncio.Future[object]] = {exit_task, *listeners}
        while not exit_task.done():
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if task is not exit_task:
                    task.result()
    finally:
        for task in (exit_task, *listeners):
            task.cancel()
        await asyncio.gather(exit_task, *listeners, return_exceptions=True)

    # Events the worker wrote just before exiting may still sit in the pipes.
    for value in worker.messages.drain():
        reducer.on_message(value)
    for event in worker.faults.drain():
        reducer.on_fault(event)
    return reducer.status


def terse_trace(trace: str) -> str:
    """Render a Python traceback one line per frame, folding standard library frames."""

    stdlib_roots = tuple(
        path for path in {sysconfig.get_path("stdlib"), sysconfig.get_path("platstdlib")} if path
    )
    lines: list[str] = []
    folded = False
    for raw in trace.splitlines():
        match = _FRAME_RE.match(raw)
        if match is None:
            if raw.startswith("    ") or not raw.strip():
                continue
            lines.append(raw.strip())
            folded = False
            continue
        file_name = match.group("file")
        if os.path.normcase(os.path.abspath(file_name)) == _HOST_FILE:
            continue
        if file_name.startswith(stdlib_roots) and "site-packages" not in file_name:
            if not folded:
                lines.append("<python stdlib>")
                folded = True
            continue
        folded = False
        lines.append(f"{file_name} {match.group('line')}:{match.group('func')}")
    return "\n".join(lines)


async def _listen(
    channel: ReceiveChannel,
    handle: Callable[[object], None],
    *,
    once: bool = False,
) -> None:
    while True:
        try:
            value = await channel.receive()
        except ChannelClosed:
            return
        handle(value)
        if once:
            return


def _split_fault(event: object) -> tuple[str, str]:
    if isinstance(event, UndecodableEvent):
        return f"Unreadable fault report: {event.error}", ""
    if isinstance(event, (tuple, list)) and len(event) == 2:
        return str(event[0]), str(event[1])
    return repr(event), ""
