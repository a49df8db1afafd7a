"""End-to-end CLI coverage for the public commands exposed by lib-live-config.

The commands run against real directory trees so the tests double as
regression checks for the documented `read`/`get` workflows.
"""

from __future__ import annotations

import json
from pathlib import Path

import lib_cli_exit_tools
from click.testing import CliRunner

from lib_live_config import cli
from lib_live_config.domain.errors import ConversionError, KeyNotFoundError, MissingEnvironmentError
from tests.support import ConfigTree, create_config_tree


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def _tree(tmp_path: Path) -> ConfigTree:
    tree = create_config_tree(tmp_path)
    tree.write(
        "prod",
        "application.properties",
        """
        db.host = prod-db
        db.port = 5432
        feature.flags = a, b
        """,
    )
    tree.write("prod", "overrides.toml", "[db]\nport = 6543\n")
    return tree


def test_cli_read_outputs_json(tmp_path: Path) -> None:
    """`cli read` emits the flattened snapshot of the chosen environment."""

    tree = _tree(tmp_path)
    result = _runner().invoke(cli.cli, ["read", "--root", str(tree.root), "--env", "prod", "--indent", "2"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"db.host": "prod-db", "db.port": "5432", "feature.flags": "a, b"}


def test_cli_read_with_several_files_and_provenance(tmp_path: Path) -> None:
    """Later files win, and `--provenance` reports which source supplied each key."""

    tree = _tree(tmp_path)
    result = _runner().invoke(
        cli.cli,
        [
            "read",
            "--root",
            str(tree.root),
            "--env",
            "prod",
            "--file",
            "application.properties",
            "--file",
            "overrides.toml",
            "--provenance",
        ],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["config"]["db.port"] == "6543"
    assert set(payload["provenance"].values()) == {f"files:{tree.root}"}


def test_cli_read_missing_environment_fails(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    result = _runner().invoke(cli.cli, ["read", "--root", str(tree.root), "--env", "staging"])
    assert result.exit_code != 0
    assert isinstance(result.exception, MissingEnvironmentError)


def test_cli_get_converts_value(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    base = ["--root", str(tree.root), "--env", "prod"]
    port = _runner().invoke(cli.cli, ["get", "db.port", *base, "--type", "int"])
    flags = _runner().invoke(cli.cli, ["get", "feature.flags", *base, "--type", "list"])
    assert port.exit_code == 0, port.output
    assert json.loads(port.output) == 5432
    assert json.loads(flags.output) == ["a", "b"]


def test_cli_get_default_and_errors(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    base = ["--root", str(tree.root), "--env", "prod"]
    fallback = _runner().invoke(cli.cli, ["get", "db.user", *base, "--default", "admin"])
    missing = _runner().invoke(cli.cli, ["get", "db.user", *base])
    malformed = _runner().invoke(cli.cli, ["get", "db.host", *base, "--type", "int"])
    assert json.loads(fallback.output) == "admin"
    assert isinstance(missing.exception, KeyNotFoundError)
    assert isinstance(malformed.exception, ConversionError)


def test_cli_env_prefix_command() -> None:
    """`cli env-prefix` echoes the normalised environment prefix."""

    result = _runner().invoke(cli.cli, ["env-prefix", "/us-west/prod/"])
    assert result.exit_code == 0
    assert result.output.strip() == "us-west/prod/"


def test_cli_info_handles_missing_metadata(monkeypatch) -> None:
    """`cli info` must degrade gracefully when package metadata is unavailable."""

    def _raise_pkg_not_found(*_args, **_kwargs):
        raise cli.metadata.PackageNotFoundError()

    monkeypatch.setattr(cli.metadata, "metadata", _raise_pkg_not_found)
    result = _runner().invoke(cli.cli, ["info"])
    assert result.exit_code == 0
    assert "metadata unavailable" in result.output


def test_cli_main_restores_traceback_flag(tmp_path: Path) -> None:
    """`cli main` restores lib_cli_exit_tools traceback settings after execution."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    tree = _tree(tmp_path)
    exit_code = cli.main(["--traceback", "read", "--root", str(tree.root), "--env", "prod"], restore_traceback=True)
    assert exit_code == 0
    assert getattr(lib_cli_exit_tools.config, "traceback", False) == previous_traceback


def test_cli_main_reports_missing_environment_as_failure(tmp_path: Path) -> None:
    tree = _tree(tmp_path)
    exit_code = cli.main(["read", "--root", str(tree.root), "--env", "staging"])
    assert exit_code != 0
