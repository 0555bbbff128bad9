"""Command-line interface for staticweb.

This module defines the CLI commands using the Click framework.

Commands:
- build: Compile a source tree into an output directory.
- serve: Compile, watch for changes and serve the site with live reload.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__
from .build import CompileOptions
from .errors import CompileError, InvalidSourceRoot

MIN_PORT = 3000
MAX_PORT = 65535


def _default_output(src: Path) -> Path:
    """Default output directory: ``dist`` next to the source directory."""
    return src.resolve().parent / "dist"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _options(flat: bool, debug: bool) -> CompileOptions:
    return CompileOptions(minify=not debug, flat=flat)


@click.group()
@click.version_option(version=__version__, prog_name="staticweb")
@click.option("-v", "--verbose", is_flag=True, help="Log every compiled directory")
def cli(verbose: bool):
    """staticweb static site compiler."""
    _configure_logging(verbose)


@cli.command()
@click.argument("src", type=click.Path(path_type=Path))
@click.option(
    "-o", "--out", type=click.Path(path_type=Path), help="Output directory (default: dist next to SRC)"
)
@click.option("--page", help="Only compile this directory (relative to SRC) and its subtree")
@click.option("--flat", is_flag=True, help="Write leaf pages as NAME.html")
@click.option("--debug", is_flag=True, help="Skip minification and gzip output")
def build(src: Path, out: Path | None, page: str | None, flat: bool, debug: bool):
    """Compile SRC into the output directory."""
    from .build import compile_site

    out = out or _default_output(src)
    try:
        compile_site(src, out, page, _options(flat, debug))
    except InvalidSourceRoot as exc:
        raise click.ClickException(str(exc)) from None
    except CompileError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        for error in exc.errors:
            click.echo(click.style(f"  File: {error.source_path}", fg="yellow"), err=True)
            click.echo(click.style(f"  Error: {error.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    click.echo(f"Compiled {src} into {out}")


@cli.command()
@click.argument("src", type=click.Path(path_type=Path))
@click.option(
    "-o", "--out", type=click.Path(path_type=Path), help="Output directory (default: dist next to SRC)"
)
@click.option(
    "-p",
    "--port",
    type=click.IntRange(MIN_PORT, MAX_PORT),
    default=MIN_PORT,
    show_default=True,
    help="Port to serve the site on",
)
@click.option("--ws-port", type=int, required=False, help="Port for the live reload websocket (default: port + 1)")
@click.option("--flat", is_flag=True, help="Write leaf pages as NAME.html")
@click.option("--debug", is_flag=True, help="Skip minification and gzip output")
def serve(src: Path, out: Path | None, port: int, ws_port: int | None, flat: bool, debug: bool):
    """Compile SRC, recompile on changes and serve it with live reload."""
    from .server import DevServer

    if not src.is_dir():
        raise click.ClickException(f"src must be a directory: {src}")
    out = out or _default_output(src)
    server = DevServer(src, out, http_port=port, ws_port=ws_port, options=_options(flat, debug))
    server.start()


def main():
    """Entry point for the CLI application."""
    cli()
