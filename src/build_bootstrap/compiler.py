"""Default snapshot compiler: byte-compiles a build script for the worker host."""

from __future__ import annotations

import argparse
import py_compile
import sys


def main(argv: list[str] | None = None) -> int:
    """Compile ``script`` into the file named by ``--snapshot``."""

    parser = argparse.ArgumentParser(prog="build_bootstrap.compiler")
    parser.add_argument("--snapshot", required=True)
    parser.add_argument("script")
    args = parser.parse_args(argv)

    try:
        py_compile.compile(args.script, cfile=args.snapshot, doraise=True)
    except py_compile.PyCompileError as error:
        sys.stderr.write(f"{error.msg}\n")
        return 1
    except OSError as error:
        sys.stderr.write(f"Cannot compile {args.script}: {error}\n")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
