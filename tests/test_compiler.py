from __future__ import annotations

from pathlib import Path

import allure

from build_bootstrap.compiler import main

pytestmark = [
    allure.epic("Build Bootstrap"),
    allure.feature("Snapshot Cache"),
]


def test_compiler_writes_snapshot_for_valid_script(tmp_path: Path) -> None:
    script = tmp_path / "build.py"
    script.write_text("def main(args, send_port):\n    send_port.send(0)\n", "utf-8")
    snapshot = tmp_path / "out" / "build.py.snapshot"
    snapshot.parent.mkdir()

    assert main([f"--snapshot={snapshot}", str(script)]) == 0
    assert snapshot.exists()
    assert snapshot.stat().st_size > 0


def test_compiler_reports_syntax_error_without_snapshot(tmp_path: Path, capsys) -> None:
    script = tmp_path / "build.py"
    script.write_text("def main(args, send_port)\n    pass\n", "utf-8")
    snapshot = tmp_path / "build.py.snapshot"

    assert main([f"--snapshot={snapshot}", str(script)]) == 1
    assert not snapshot.exists()
    assert "SyntaxError" in capsys.readouterr().err


def test_compiler_reports_missing_script(tmp_path: Path, capsys) -> None:
    snapshot = tmp_path / "build.py.snapshot"

    assert main([f"--snapshot={snapshot}", str(tmp_path / "missing.py")]) == 1
    assert not snapshot.exists()
    assert "Cannot compile" in capsys.readouterr().err
