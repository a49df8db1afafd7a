"""CLI adapter for ``lib_live_config`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators inspect what an application would see for a given directory tree
and environment without writing Python code.

Contents
--------
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata.
* :func:`cli_env_prefix` – prints the normalised key prefix of an environment.
* :func:`cli_read` – fetches a files source and prints the snapshot as JSON.
* :func:`cli_get` – reads one key with typed conversion.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer: it only talks to the composition root and the public source
classes. ``lib_cli_exit_tools`` turns ``ConfigError`` subclasses into exit codes.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.files import DEFAULT_FILES, FilesConfigurationSource
from .application.provider import ConfigurationProvider
from .core import read_properties
from .domain.environment import Environment

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

TYPE_CHOICES: Final[dict[str, object]] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "list": list[str],
}


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version("lib_live_config")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Environment-scoped configuration reader",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_live_config",
    message="lib_live_config version %(version)s",
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
        meta = metadata.metadata("lib_live_config")
    except metadata.PackageNotFoundError:
        click.echo("lib_live_config (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_live_config')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.11')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("env-prefix", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("name")
def cli_env_prefix(name: str) -> None:
    """Print the key prefix used for environment NAME.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["env-prefix", "/us-west/prod"])
    >>> result.output.strip()
    'us-west/prod/'
    """

    click.echo(Environment(name).prefix)


def _source_options(func):
    """Attach the options shared by commands that read a files source."""

    func = click.option(
        "--file",
        "files",
        multiple=True,
        help=f"File name inside the environment directory, repeatable (default: {', '.join(DEFAULT_FILES)})",
    )(func)
    func = click.option("--env", "environment", default="", help="Environment name (slash-separated path)")(func)
    func = click.option(
        "--root",
        type=click.Path(path_type=Path, exists=True, file_okay=False, dir_okay=True, readable=True),
        required=True,
        help="Directory holding one sub-directory per environment",
    )(func)
    return func


@cli.command("read", context_settings=CLICK_CONTEXT_SETTINGS)
@_source_options
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include the source of each key in the output",
)
def cli_read(root: Path, environment: str, files: Sequence[str], indent: Optional[int], provenance: bool) -> None:
    """Fetch configuration for an environment and print it as JSON."""

    snapshot = read_properties(sources=_files_source(root, files), environment=environment)
    click.echo(snapshot.to_json(indent=indent, provenance=provenance))


@cli.command("get", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("key")
@_source_options
@click.option(
    "--type",
    "type_name",
    type=click.Choice(sorted(TYPE_CHOICES)),
    default="str",
    show_default=True,
    help="Target type used to convert the value",
)
@click.option("--default", "default", default=None, help="Value printed when KEY is absent")
def cli_get(
    key: str,
    root: Path,
    environment: str,
    files: Sequence[str],
    type_name: str,
    default: Optional[str],
) -> None:
    """Print KEY converted to the requested type (JSON encoded)."""

    snapshot = read_properties(sources=_files_source(root, files), environment=environment)
    provider = ConfigurationProvider.of(snapshot)
    target = TYPE_CHOICES[type_name]
    if default is None:
        value = provider.get_property(key, target)
    else:
        value = provider.get_property(key, target, default=default)
    click.echo(json.dumps(value))


def _files_source(root: Path, files: Sequence[str]) -> FilesConfigurationSource:
    return FilesConfigurationSource(root, tuple(files) or DEFAULT_FILES)


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_live_config",
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
