from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import allure

from build_bootstrap.exit_codes import ExitCode
from build_bootstrap.snapshot import create_snapshot_if_missing, delete_snapshot

pytestmark = [
    allure.epic("Build Bootstrap"),
    allure.feature("Snapshot Cache"),
]

# Records its arguments in $FAKE_COMPILER_LOG and writes a dummy snapshot.
RECORDING_COMPILER = """\
import os, pathlib, sys
snapshot_flag, script = sys.argv[1:3]
with open(os.environ["FAKE_COMPILER_LOG"], "a", encoding="utf-8") as log:
    log.write(f"{snapshot_flag} {script}\\n")
pathlib.Path(snapshot_flag.split("=", 1)[1]).write_bytes(b"snapshot")
"""


def _ensure(script: Path, snapshot: Path, compiler_command) -> int:
    return asyncio.run(
        create_snapshot_if_missing(
            script_path=script,
            snapshot_path=snapshot,
            compiler_command=compiler_command,
        ),
    )


def test_existing_snapshot_is_reused_without_compiling(tmp_path: Path, monkeypatch) -> None:
    calls = tmp_path / "calls.log"
    monkeypatch.setenv("FAKE_COMPILER_LOG", str(calls))
    snapshot = tmp_path / "build.py.snapshot"
    snapshot.write_bytes(b"cached")

    status = _ensure(tmp_path / "build.py", snapshot, (sys.executable, "-c", RECORDING_COMPILER))

    assert status == 0
    assert snapshot.read_bytes() == b"cached"
    assert not calls.exists()


def test_missing_snapshot_invokes_compiler_once(tmp_path: Path, monkeypatch) -> None:
    calls = tmp_path / "calls.log"
    monkeypatch.setenv("FAKE_COMPILER_LOG", str(calls))
    script = tmp_path / "build.py"
    script.write_text("def main(args, send_port):\n    pass\n", "utf-8")
    snapshot = tmp_path / "cache" / "build.py.snapshot"

    status = _ensure(script, snapshot, (sys.executable, "-c", RECORDING_COMPILER))

    assert status == 0
    assert snapshot.read_bytes() == b"snapshot"
    assert calls.read_text("utf-8").splitlines() == [f"--snapshot={snapshot} {script}"]


def test_real_compiler_produces_snapshot(settings) -> None:
    settings.script_path.parent.mkdir(parents=True)
    settings.script_path.write_text("def main(args, send_port):\n    pass\n", "utf-8")

    status = _ensure(settings.script_path, settings.snapshot_path, settings.compiler_command)

    assert status == 0
    assert settings.snapshot_path.exists()


def test_compiler_leaving_no_snapshot_is_config_error(tmp_path: Path, caplog) -> None:
    caplog.set_level(logging.INFO, logger="build_bootstrap")
    script = tmp_path / "build.py"
    script.write_text("broken", "utf-8")
    snapshot = tmp_path / "build.py.snapshot"

    status = _ensure(
        script,
        snapshot,
        (sys.executable, "-c", "import sys; sys.stderr.write('boom: bad builder')"),
    )

    assert status == ExitCode.CONFIG == 78
    assert not snapshot.exists()
    messages = [record.getMessage() for record in caplog.records]
    assert any("Creating build script snapshot" in message for message in messages)
    assert any(f"Failed to snapshot build script {script}" in message for message in messages)
    assert "boom: bad builder" in messages


def test_compiler_exit_code_is_ignored_when_snapshot_exists(tmp_path: Path) -> None:
    snapshot = tmp_path / "build.py.snapshot"

    status = _ensure(
        tmp_path / "build.py",
        snapshot,
        (
            sys.executable,
            "-c",
            "import pathlib, sys; "
            "pathlib.Path(sys.argv[1].split('=', 1)[1]).write_bytes(b'x'); sys.exit(3)",
        ),
    )

    assert status == 0


def test_compiler_that_cannot_start_is_config_error(tmp_path: Path, caplog) -> None:
    status = _ensure(
        tmp_path / "build.py",
        tmp_path / "build.py.snapshot",
        (str(tmp_path / "no-such-compiler"),),
    )

    assert status == ExitCode.CONFIG
    assert any("failed to start" in record.getMessage() for record in caplog.records)


def test_delete_snapshot(tmp_path: Path) -> None:
    snapshot = tmp_path / "build.py.snapshot"
    snapshot.write_bytes(b"x")

    assert delete_snapshot(snapshot) is True
    assert not snapshot.exists()
    assert delete_snapshot(snapshot) is False
