"""CLI adapter for ``lib_layered_yaml`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the layered YAML provider on the command line so operators can check
how a stack of files merges and expands without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_read` – merges YAML files and prints the value at a key as JSON.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It calls :func:`lib_layered_yaml.core.new_yaml`
and never reaches into the merge engine or adapters directly.
``lib_cli_exit_tools`` centralises the exit code strategy so all commands
behave consistently across shells and CI.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .core import DEFAULT_NAME, Source, new_yaml
from .domain.tree import ROOT

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version("lib_layered_yaml")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Layered YAML configuration reader",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_layered_yaml",
    message="lib_layered_yaml version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("lib_layered_yaml")
    except metadata.PackageNotFoundError:
        click.echo("lib_layered_yaml (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_layered_yaml')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("read", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
)
@click.option("--key", default=ROOT, help="Dotted key to print (defaults to the whole document)")
@click.option("--name", default=DEFAULT_NAME, show_default=True, help="Provider name used in diagnostics")
@click.option(
    "--raw/--expand",
    default=False,
    show_default=True,
    help="Protect file contents from ${VAR} expansion",
)
@click.option(
    "--permissive/--strict",
    default=False,
    show_default=True,
    help="Accept duplicate keys (last wins) instead of failing",
)
@click.option(
    "--indent",
    type=int,
    default=None,
    help="Pretty-print JSON output with the provided indent size",
)
def cli_read(
    files: Sequence[Path],
    key: str,
    name: str,
    raw: bool,
    permissive: bool,
    indent: Optional[int],
) -> None:
    """Merge FILES (later files win) and print the value at ``--key`` as JSON.

    Variables are looked up in the process environment. A key without any
    configuration exits with status 1.
    """

    provider = new_yaml(*(Source.from_file(path, raw=raw) for path in files), name=name, strict=not permissive)
    value = provider.get(key)
    if not value.has_value():
        raise click.ClickException(f"no configuration at key {key!r}")
    click.echo(json.dumps(value.value(), indent=indent, separators=(",", ":"), ensure_ascii=False, default=str))


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_layered_yaml",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
