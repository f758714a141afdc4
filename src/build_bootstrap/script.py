"""Materialize the generated build script at its fixed location."""

from __future__ import annotations

import importlib
from collections.abc import Callable
from pathlib import Path

ScriptGenerator = Callable[[], str]


def write_build_script(generate_script: ScriptGenerator, script_path: Path) -> Path:
    """Generate the script source and write it out.

    :class:`~build_bootstrap.errors.CannotBuildError` from the generator is
    left to the caller.
    """

    source = generate_script()
    script_path.parent.mkdir(parents=True, exist_ok=True)
    script_path.write_text(source, "utf-8")
    return script_path


def load_generator(reference: str) -> ScriptGenerator:
    """Resolve a ``package.module:attribute`` reference to a generator callable."""

    module_name, separator, attribute = reference.strip().partition(":")
    if not separator or not module_name or not attribute:
        raise ValueError(
            f"Invalid generator reference {reference!r}. Expected 'package.module:attribute'.",
        )
    module = importlib.import_module(module_name)
    generator = module
    for part in attribute.split("."):
        generator = getattr(generator, part)
    if not callable(generator):
        raise ValueError(f"Generator {reference!r} is not callable.")
    return generator
