"""
CLI interface for staticforge.

Commands:
    staticforge build [CONTEXT]   Run a full static build
    staticforge init [CONTEXT]    Write a default staticforge.yaml
    staticforge status [CONTEXT]  Show the result of the last build
"""

import sys
from pathlib import Path

import click

from staticforge import __version__
from staticforge.models import RunOptions
from staticforge.utils import format_duration, print_banner, print_error, print_success


def _context_argument(fn):
    return click.argument(
        "context",
        default=".",
        type=click.Path(file_okay=False, path_type=Path),
    )(fn)


@click.group()
@click.version_option(version=__version__, prog_name="staticforge")
def main():
    """
    staticforge - Static site build orchestrator.

    Compiles assets, renders pages and processes images for a site.
    """


@main.command("build")
@_context_argument
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: CONTEXT/staticforge.yaml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--no-workers", is_flag=True, help="Run worker operations in-process")
def build(context: Path, config_path: Path, verbose: bool, no_workers: bool):
    """
    Build the site in CONTEXT for production.

    Examples:

        staticforge build

        staticforge build ./site --config ./site/staticforge.prod.yaml
    """
    from staticforge.pipeline import run_build

    options = RunOptions(
        verbose=verbose,
        use_workers=not no_workers,
        config_path=config_path,
    )

    print_banner("staticforge build")

    try:
        app = run_build(context, options)
    except Exception as e:
        print_error(f"Build failed: {e}")
        raise SystemExit(1)

    result = app.result
    print_success(
        f"Built {result.pages} pages into {app.config.output_dir} "
        f"in {format_duration(result.duration_seconds)}"
    )


@main.command("init")
@_context_argument
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(context: Path, force: bool):
    """Write a default staticforge.yaml into CONTEXT."""
    from staticforge.config import write_default_config

    try:
        config_path = write_default_config(context, force=force)
    except FileExistsError as e:
        click.echo(str(e), err=True)
        raise SystemExit(1)

    click.echo(f"Initialized staticforge config at {config_path}")


@main.command("status")
@_context_argument
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: CONTEXT/staticforge.yaml)",
)
def status(context: Path, config_path: Path):
    """Show the result of the last build in CONTEXT."""
    from staticforge.pipeline import load_status

    try:
        result = load_status(context, config_path)
    except Exception as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)

    if result is None:
        click.echo("No previous build found")
        return

    state = "succeeded" if result.success else "failed"
    click.echo(f"Last build {state} at {result.ended_at.isoformat()}")
    click.echo(f"  Duration: {format_duration(result.duration_seconds)}")
    click.echo(f"  Pages:    {result.pages}")
    if result.hash:
        click.echo(f"  Hash:     {result.hash}")
    if result.error_message:
        click.echo(f"  Error:    {result.error_message}")

    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
