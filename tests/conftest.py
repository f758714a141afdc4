"""Shared test fixtures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from build_bootstrap.compiler import main as compile_main
from build_bootstrap.config import BootstrapSettings
from build_bootstrap.logs import LOGGER_NAME


@pytest.fixture()
def settings(tmp_path: Path) -> BootstrapSettings:
    script_path = tmp_path / "entrypoint" / "build.py"
    return BootstrapSettings(
        script_path=script_path,
        snapshot_path=script_path.with_name("build.py.snapshot"),
    )


@pytest.fixture()
def compile_script(tmp_path: Path):
    """Write ``source`` next to the test and byte-compile it to a snapshot."""

    def _compile(source: str, name: str = "script") -> Path:
        script_path = tmp_path / f"{name}.py"
        snapshot_path = tmp_path / f"{name}.py.snapshot"
        script_path.write_text(source, "utf-8")
        assert compile_main([f"--snapshot={snapshot_path}", str(script_path)]) == 0
        return snapshot_path

    return _compile


@pytest.fixture(autouse=True)
def _restore_package_logger():
    package_logger = logging.getLogger(LOGGER_NAME)
    handlers = list(package_logger.handlers)
    level = package_logger.level
    propagate = package_logger.propagate
    yield
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate
