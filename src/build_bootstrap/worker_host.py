"""Child-process side of a build script worker.

The coordinator starts :func:`host_main` in a fresh interpreter. It loads the
snapshot, tells the coordinator whether that worked, and then hands control to
the build script's ``main(args, send_port)``.
"""

from __future__ import annotations

import importlib.util
import sys
import threading
import traceback
from collections.abc import Callable
from importlib.machinery import SourcelessFileLoader
from multiprocessing.connection import Connection
from pathlib import Path
from typing import NamedTuple

BUILD_SCRIPT_MODULE = "build_script"


class LaunchReport(NamedTuple):
    ok: bool
    detail: str | None = None


class SendPort:
    """Write end of a channel as seen by the build script."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._lock = threading.Lock()

    def send(self, value: object) -> None:
        with self._lock:
            self._connection.send(value)


BuildScriptMain = Callable[[list[str], SendPort], object]


def load_entrypoint(snapshot_path: Path) -> BuildScriptMain:
    """Execute the snapshot as a module and return its ``main`` callable."""

    loader = SourcelessFileLoader(BUILD_SCRIPT_MODULE, str(snapshot_path))
    spec = importlib.util.spec_from_loader(BUILD_SCRIPT_MODULE, loader)
    if spec is None:
        raise ImportError(f"Cannot create module spec for {snapshot_path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[BUILD_SCRIPT_MODULE] = module
    loader.exec_module(module)
    entrypoint = getattr(module, "main", None)
    if not callable(entrypoint):
        raise ImportError(f"{snapshot_path} does not define main(args, send_port)")
    return entrypoint


def format_fault(error: BaseException) -> tuple[str, str]:
    """Render an exception as the ``(error, trace)`` pair sent on the fault channel."""

    message = "".join(traceback.format_exception_only(type(error), error)).strip()
    trace = "".join(traceback.format_tb(error.__traceback__))
    return message, trace


def host_main(
    snapshot_path: str,
    args: list[str],
    launch: Connection,
    messages: Connection,
    faults: Connection,
) -> None:
    """Process target for the worker; never raises into multiprocessing."""

    fault_port = SendPort(faults)
    try:
        entrypoint = load_entrypoint(Path(snapshot_path))
    except Exception as error:  # noqa: BLE001
        launch.send(LaunchReport(ok=False, detail=f"{type(error).__name__}: {error}"))
        launch.close()
        return
    launch.send(LaunchReport(ok=True))
    launch.close()

    threading.excepthook = lambda hook_args: _report_thread_fault(fault_port, hook_args)
    try:
        entrypoint(list(args), SendPort(messages))
    except Exception as error:  # noqa: BLE001
        fault_port.send(format_fault(error))


def _report_thread_fault(fault_port: SendPort, hook_args: threading.ExceptHookArgs) -> None:
    if hook_args.exc_type is SystemExit:
        return
    error = hook_args.exc_value
    if error is None:
        error = hook_args.exc_type()
    fault_port.send(format_fault(error))
