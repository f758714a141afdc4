"""CLI entrypoint for build-bootstrap."""

from pathlib import Path

import rich_click as click

from build_bootstrap import __version__
from build_bootstrap.controllers import (
    BootstrapCliController,
    CleanCommand,
    RunCommand,
    run_until_settled,
)
from build_bootstrap.logs import setup_logging

click.rich_click.USE_MARKDOWN = True
BOOTSTRAP_CONTROLLER = BootstrapCliController()


@click.group()
@click.version_option(version=__version__, prog_name="build-bootstrap")
def build_bootstrap() -> None:
    """Build script bootstrap CLI."""


@build_bootstrap.command("run", context_settings={"ignore_unknown_options": True})
@click.option(
    "--script-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Where the generated build script is written.",
)
@click.option(
    "--snapshot-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Cached snapshot location. Defaults to the script path plus `.snapshot`.",
)
@click.option(
    "--generator",
    default=None,
    help=(
        "Build script generator as `package.module:attribute`. "
        "If omitted, BUILD_BOOTSTRAP_GENERATOR is used."
    ),
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.argument("build_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(  # noqa: PLR0913
    ctx: click.Context,
    script_path: Path | None,
    snapshot_path: Path | None,
    generator: str | None,
    verbose: bool,
    build_args: tuple[str, ...],
) -> None:
    """Generate, snapshot and run the build script, exiting with its status."""

    setup_logging(verbose=verbose)
    command = RunCommand(
        script_path=script_path,
        snapshot_path=snapshot_path,
        generator=generator,
        args=build_args,
    )
    try:
        generate_script, settings = BOOTSTRAP_CONTROLLER.resolve(command)
    except (ValueError, ImportError, AttributeError) as error:
        raise click.ClickException(str(error)) from error
    ctx.exit(
        run_until_settled(command.args, generate_script=generate_script, settings=settings),
    )


@build_bootstrap.command("clean")
@click.option("--script-path", type=click.Path(path_type=Path), default=None)
@click.option("--snapshot-path", type=click.Path(path_type=Path), default=None)
def clean(script_path: Path | None, snapshot_path: Path | None) -> None:
    """Delete the cached build script snapshot."""

    try:
        lines = BOOTSTRAP_CONTROLLER.clean(
            CleanCommand(script_path=script_path, snapshot_path=snapshot_path),
        )
    except (ValueError, OSError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    build_bootstrap()
