"""Error types raised across the bootstrap boundary."""

from __future__ import annotations


class BootstrapError(Exception):
    """Base exception for build_bootstrap."""


class CannotBuildError(BootstrapError):
    """Raised by a script generator when no build script can be produced."""


class LaunchError(BootstrapError):
    """The worker process could not be started from the snapshot."""

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail


class ProtocolViolationError(BootstrapError, RuntimeError):
    """The worker sent something other than an exit code on its message channel."""
