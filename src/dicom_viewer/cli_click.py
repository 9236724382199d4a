"""Click-based command-line interface for dicom-viewer."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional
from types import SimpleNamespace

import click

from .constants import DEFAULT_HOST, DEFAULT_PORT, STORAGE_DIR_ENV_VAR
from .cli_core import (
    setup_logging,
    serve_command,
    upload_command,
    list_command,
    render_command,
    attributes_command,
)


CommandCallable = Callable[[object, logging.Logger], int]


def _invoke_command(func: CommandCallable, **kwargs: Any) -> None:
    """Invoke command helpers and map errors to Click exceptions."""
    args = kwargs
    setup_logging(bool(args.get("verbose", False)))
    logger = logging.getLogger(__name__)
    rc = func(SimpleNamespace(**args), logger)
    if rc != 0:
        raise click.ClickException(f"{func.__name__} failed with exit code {rc}")


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator adding shared storage/verbose options."""
    func = click.option(
        "-v",
        "--verbose",
        is_flag=True,
        help="Enable detailed logging",
    )(func)
    func = click.option(
        "--storage-dir",
        type=click.Path(path_type=str),
        help=(
            "Directory or object storage URL (s3://, gs://, memory://) for stored files. "
            f"Defaults to ${STORAGE_DIR_ENV_VAR} or the user data directory."
        ),
    )(func)
    return func


@click.group()
def cli() -> None:
    """Upload, render and inspect DICOM files."""


@cli.command("serve")
@common_options
@click.option(
    "--host",
    default=DEFAULT_HOST,
    show_default=True,
    help="Interface to listen on.",
)
@click.option(
    "-p",
    "--port",
    type=int,
    default=DEFAULT_PORT,
    show_default=True,
    help="Listen port for the server.",
)
def serve_click(
    *,
    storage_dir: Optional[str],
    verbose: bool,
    host: str,
    port: int,
) -> None:
    """Serve the files HTTP API."""
    _invoke_command(
        serve_command,
        storage_dir=storage_dir,
        verbose=verbose,
        host=host,
        port=port,
    )


@cli.command("upload")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@common_options
def upload_click(
    *,
    paths: tuple[str, ...],
    storage_dir: Optional[str],
    verbose: bool,
) -> None:
    """Store DICOM files and print their identifiers."""
    _invoke_command(
        upload_command,
        paths=list(paths),
        storage_dir=storage_dir,
        verbose=verbose,
    )


@cli.command("list")
@common_options
def list_click(
    *,
    storage_dir: Optional[str],
    verbose: bool,
) -> None:
    """List stored file identifiers."""
    _invoke_command(
        list_command,
        storage_dir=storage_dir,
        verbose=verbose,
    )


@cli.command("render")
@click.argument("file_id")
@click.argument("output")
@common_options
@click.option(
    "--remap/--no-remap",
    default=True,
    show_default=True,
    help="Stretch the frame's value range onto 0-255.",
)
@click.option(
    "-f",
    "--frame",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Zero-indexed frame to render.",
)
def render_click(
    *,
    file_id: str,
    output: str,
    storage_dir: Optional[str],
    verbose: bool,
    remap: bool,
    frame: int,
) -> None:
    """Render a stored file as a greyscale PNG."""
    _invoke_command(
        render_command,
        file_id=file_id,
        output=output,
        storage_dir=storage_dir,
        verbose=verbose,
        remap=remap,
        frame=frame,
    )


@cli.command("attributes")
@click.argument("file_id")
@common_options
@click.option(
    "-t",
    "--tag",
    "tags",
    multiple=True,
    help="Tag to look up, as (gggg,eeee) or keyword (repeatable). Defaults to all elements.",
)
@click.option(
    "--indent",
    type=int,
    default=2,
    show_default=True,
    help="JSON indentation (0 disables pretty printing).",
)
def attributes_click(
    *,
    file_id: str,
    storage_dir: Optional[str],
    verbose: bool,
    tags: tuple[str, ...],
    indent: int,
) -> None:
    """Print the elements of a stored file as JSON."""
    _invoke_command(
        attributes_command,
        file_id=file_id,
        storage_dir=storage_dir,
        verbose=verbose,
        tags=list(tags),
        indent=indent,
    )
