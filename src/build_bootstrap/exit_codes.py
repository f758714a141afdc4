"""Process exit codes shared by the bootstrap and the build scripts it runs."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """BSD ``sysexits.h`` codes plus success."""

    SUCCESS = 0
    USAGE = 64
    DATA = 65
    NO_INPUT = 66
    NO_USER = 67
    NO_HOST = 68
    UNAVAILABLE = 69
    SOFTWARE = 70
    OS_ERROR = 71
    OS_FILE = 72
    CANT_CREATE = 73
    IO_ERROR = 74
    # Callers re-run the whole bootstrap when a build script reports this.
    TEMP_FAIL = 75
    PROTOCOL = 76
    NO_PERM = 77
    CONFIG = 78
