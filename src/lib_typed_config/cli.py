"""CLI adapter for ``lib_typed_config`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators inspect layered configuration files without writing Python:
merge files and environment variables, look up single keys, and check how
duration and size literals parse.

Contents
--------
* :func:`cli` – root group wiring traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – distribution metadata.
* :func:`cli_read` – merged tree (or flat map) as JSON, optionally with
  provenance.
* :func:`cli_get` – a single value from the merged tree.
* :func:`cli_duration` / :func:`cli_size` – literal parsers.
* :func:`main` – console script entry point.

System Role
-----------
Outermost layer: it calls the composition root (:func:`read_sources`) and
the domain parsers, never the adapters directly.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Any, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .core import read_sources
from .domain.tree import to_flat, to_hierarchical
from .domain.units import SizeInBytes, parse_duration

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

_FILES_ARGUMENT = click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(path_type=Path, dir_okay=False),
)
_ENV_PREFIX_OPTION = click.option(
    "--env-prefix",
    default=None,
    help="Layer environment variables starting with PREFIX_ over the files",
)
_OPTIONAL_OPTION = click.option(
    "--optional/--no-optional",
    default=False,
    help="Skip missing files instead of failing",
)


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version("lib_typed_config")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Typed layered configuration toolkit",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_typed_config",
    message="lib_typed_config version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command storing the traceback preference.

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
    """Print distribution metadata so users can confirm the installation."""

    try:
        meta = metadata.metadata("lib_typed_config")
    except metadata.PackageNotFoundError:
        click.echo("lib_typed_config (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_typed_config')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("read", context_settings=CLICK_CONTEXT_SETTINGS)
@_FILES_ARGUMENT
@_ENV_PREFIX_OPTION
@_OPTIONAL_OPTION
@click.option("--flat/--no-flat", default=False, help="Print dotted keys instead of a nested tree")
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include the source of every key in the output",
)
def cli_read(
    files: Sequence[Path],
    env_prefix: Optional[str],
    optional: bool,
    flat: bool,
    indent: Optional[int],
    provenance: bool,
) -> None:
    """Merge FILES (later files win) and print the result as JSON."""

    merged, meta = read_sources(files, optional=optional, env_prefix=env_prefix)
    data: Any = to_hierarchical(merged.tree)
    if flat:
        data = to_flat(data)
    if provenance:
        data = {"config": data, "provenance": meta}
    click.echo(json.dumps(data, indent=indent))


@cli.command("get", context_settings=CLICK_CONTEXT_SETTINGS)
@_FILES_ARGUMENT
@click.option("--key", required=True, help="Dotted path of the value to print")
@_ENV_PREFIX_OPTION
@_OPTIONAL_OPTION
def cli_get(files: Sequence[Path], key: str, env_prefix: Optional[str], optional: bool) -> None:
    """Print the value at KEY of the merged FILES.

    Strings print bare; everything else prints as JSON.
    """

    merged, _ = read_sources(files, optional=optional, env_prefix=env_prefix)
    value = merged.get(key).to_hierarchical()
    click.echo(value if isinstance(value, str) else json.dumps(value))


@cli.command("duration", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("text")
def cli_duration(text: str) -> None:
    """Parse TEXT as a duration and print it in seconds.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> CliRunner().invoke(cli, ["duration", "1m"]).output.strip()
    '60.0'
    """

    click.echo(str(parse_duration(text).total_seconds()))


@cli.command("size", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("text")
def cli_size(text: str) -> None:
    """Parse TEXT as a size and print it in bytes.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> CliRunner().invoke(cli, ["size", "2KiB"]).output.strip()
    '2048'
    """

    click.echo(str(SizeInBytes.parse(text).bytes))


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_typed_config",
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
