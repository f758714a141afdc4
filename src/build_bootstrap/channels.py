"""One-directional channels between the coordinator and a worker process.

Every launch attempt gets a fresh :class:`WorkerChannels` set from
:func:`open_channels`. The set is released when the ``with`` block exits, so a
retry never sees events from the previous worker.

Receive ends are read on the running asyncio loop (``loop.add_reader``), which
keeps the coordinator single threaded.
"""

from __future__ import annotations

import asyncio
import multiprocessing
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from multiprocessing.connection import Connection
from multiprocessing.context import BaseContext
from multiprocessing.process import BaseProcess

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised by :meth:`ReceiveChannel.receive` once no sender is left."""


@dataclass(frozen=True, slots=True)
class UndecodableEvent:
    """Placeholder for a payload the coordinator could not unpickle."""

    error: str


class ReceiveChannel:
    """Read end of a pipe whose events are delivered on the event loop."""

    def __init__(self, name: str, context: BaseContext) -> None:
        self.name = name
        self._reader, writer = context.Pipe(duplex=False)
        self._writer: Connection | None = writer
        self._events: asyncio.Queue[object] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._eof = False
        self._closed = False

    @property
    def sender(self) -> Connection:
        if self._writer is None:
            raise RuntimeError(f"{self.name} channel sender was already released")
        return self._writer

    def release_sender(self) -> None:
        """Drop the coordinator's copy of the write end once the worker owns it."""

        if self._writer is not None:
            self._writer.close()
            self._writer = None

    def listen(self) -> None:
        if self._loop is not None or self._closed or self._eof:
            return
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self._reader.fileno(), self._pump)

    async def receive(self) -> object:
        """Wait for the next event."""

        self.listen()
        if self._eof and self._events.empty():
            raise ChannelClosed(self.name)
        value = await self._events.get()
        if value is _CLOSED:
            raise ChannelClosed(self.name)
        return value

    def drain(self) -> list[object]:
        """Return events already delivered plus whatever is still buffered in the pipe."""

        pending: list[object] = []
        while not self._events.empty():
            value = self._events.get_nowait()
            if value is not _CLOSED:
                pending.append(value)
        while not self._eof and not self._closed and self._reader.poll():
            value = self._recv()
            if value is not _CLOSED:
                pending.append(value)
        return pending

    def close(self) -> None:
        if self._closed:
            return
        self._stop_reading()
        self._closed = True
        self._reader.close()
        self.release_sender()

    def _pump(self) -> None:
        self._events.put_nowait(self._recv())

    def _recv(self) -> object:
        try:
            return self._reader.recv()
        except (EOFError, OSError):
            self._stop_reading()
            self._eof = True
            return _CLOSED
        except Exception as error:  # noqa: BLE001
            return UndecodableEvent(error=f"{type(error).__name__}: {error}")

    def _stop_reading(self) -> None:
        if self._loop is not None and not self._eof and not self._closed:
            self._loop.remove_reader(self._reader.fileno())
        self._loop = None


class ExitChannel:
    """Fires once when the bound worker process terminates, whatever the cause."""

    def __init__(self) -> None:
        self._process: BaseProcess | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._fired: asyncio.Future[int | None] | None = None

    def bind(self, process: BaseProcess) -> None:
        self._process = process

    async def wait(self) -> int | None:
        """Block until the worker has exited; returns its process exit code."""

        if self._process is None:
            raise RuntimeError("exit channel is not bound to a worker")
        if self._fired is None:
            self._loop = asyncio.get_running_loop()
            self._fired = self._loop.create_future()
            if self._process.exitcode is not None:
                self._fired.set_result(self._process.exitcode)
            else:
                self._loop.add_reader(self._process.sentinel, self._on_exit)
        return await asyncio.shield(self._fired)

    def close(self) -> None:
        process = self._process
        if process is None:
            return
        if self._fired is not None and not self._fired.done() and self._loop is not None:
            self._loop.remove_reader(process.sentinel)
            self._fired.cancel()
        if process.is_alive():
            _terminate_process(process)
        else:
            process.join()

    def _on_exit(self) -> None:
        process = self._process
        if process is None or self._loop is None:
            return
        self._loop.remove_reader(process.sentinel)
        process.join()
        if self._fired is not None and not self._fired.done():
            self._fired.set_result(process.exitcode)


@dataclass(slots=True)
class WorkerChannels:
    """Channel set bound to one worker at spawn time."""

    context: BaseContext
    exit: ExitChannel
    faults: ReceiveChannel
    messages: ReceiveChannel
    launch: ReceiveChannel

    def release_senders(self) -> None:
        for channel in (self.launch, self.messages, self.faults):
            channel.release_sender()

    def close(self) -> None:
        for channel in (self.launch, self.messages, self.faults):
            channel.close()
        self.exit.close()


@contextmanager
def open_channels(context: BaseContext | None = None) -> Iterator[WorkerChannels]:
    """Allocate a channel set and release it, worker included, on exit."""

    context = context or multiprocessing.get_context("spawn")
    channels = WorkerChannels(
        context=context,
        exit=ExitChannel(),
        faults=ReceiveChannel("fault", context),
        messages=ReceiveChannel("message", context),
        launch=ReceiveChannel("launch", context),
    )
    try:
        yield channels
    finally:
        channels.close()


def _terminate_process(process: BaseProcess) -> None:
    try:
        process.terminate()
    except OSError:
        return
    process.join(timeout=2)
    if process.is_alive():
        try:
            process.kill()
        except OSError:
            return
        process.join(timeout=2)
